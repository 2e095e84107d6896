"""
Due Diligence API endpoints.

Standalone comprehensive due diligence, outside the evaluation pipeline.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException

from venture_eval.agentic.llm_client import LLMClient
from venture_eval.agents.due_diligence import DueDiligenceAggregator
from venture_eval.agents.types import CompanyContext
from venture_eval.core.api_errors import ConfigurationError
from venture_eval.core.config import get_settings
from venture_eval.core.dependencies import ensure_configured, get_llm, get_search_client
from venture_eval.core.schemas import DueDiligenceRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/diligence", tags=["Due Diligence"])


@router.post("/report")
async def generate_report(
    request: DueDiligenceRequest,
    search_client=Depends(get_search_client),
    llm: LLMClient = Depends(get_llm),
):
    """
    Build a five-category due diligence report.

    Category failures degrade to defaults inside the report, so the only
    error here is missing configuration.
    """
    try:
        ensure_configured(search_client, llm)
    except ConfigurationError as e:
        raise HTTPException(status_code=503, detail=str(e))

    settings = get_settings()
    aggregator = DueDiligenceAggregator(
        search_client,
        llm,
        fund_name=settings.fund_name,
        focus_industry=settings.focus_industry,
    )
    report = await aggregator.generate_report(CompanyContext(
        company_name=request.company_name,
        website=request.website,
        industry=request.industry,
        description=request.description,
        founded_year=request.founded_year,
    ))
    return report.to_dict()
