"""
Startup evaluation endpoints.
"""
import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Query

from venture_eval.agentic.llm_client import LLMClient
from venture_eval.agents.evaluator import EvaluationError, EvaluationInput, StartupEvaluator
from venture_eval.core.api_errors import ConfigurationError
from venture_eval.core.config import get_settings
from venture_eval.core.dependencies import ensure_configured, get_llm, get_search_client, get_store
from venture_eval.core.repository import EvaluationStore
from venture_eval.core.schemas import EvaluationRequest

logger = logging.getLogger(__name__)

router = APIRouter(tags=["evaluations"])


def get_evaluator(
    search_client=Depends(get_search_client),
    llm: LLMClient = Depends(get_llm),
    store: EvaluationStore = Depends(get_store),
) -> StartupEvaluator:
    return StartupEvaluator(search_client, llm, store, settings=get_settings())


def evaluation_error_to_http(error: EvaluationError) -> HTTPException:
    """503 when the run failed on missing configuration, else 500 naming the step."""
    if isinstance(error.__cause__, ConfigurationError):
        return HTTPException(status_code=503, detail=str(error.__cause__))
    return HTTPException(
        status_code=500,
        detail={"step": error.step, "message": error.message},
    )


@router.post("/evaluations")
async def create_evaluation(
    request: EvaluationRequest,
    evaluator: StartupEvaluator = Depends(get_evaluator),
) -> Dict[str, Any]:
    """
    Run the full evaluation pipeline for one company.

    Companies scoring at or above the due diligence threshold also get a
    comprehensive due diligence report attached.
    """
    try:
        ensure_configured(evaluator.search_client, evaluator.llm)
    except ConfigurationError as e:
        raise HTTPException(status_code=503, detail=str(e))
    try:
        result = await evaluator.evaluate(EvaluationInput(
            company_name=request.company_name,
            website=request.website,
            description=request.description,
            founder_names=request.founder_names,
        ))
    except EvaluationError as e:
        raise evaluation_error_to_http(e)
    return result.to_dict()


@router.get("/evaluations/recent")
def recent_evaluations(
    limit: int = Query(default=10, ge=1, le=100),
    evaluator: StartupEvaluator = Depends(get_evaluator),
):
    evaluations = evaluator.get_recent_evaluations(limit)
    return {"count": len(evaluations), "evaluations": evaluations}


@router.get("/evaluations/high-score")
def high_score_evaluations(
    min_score: float = Query(default=70, ge=0, le=100),
    limit: int = Query(default=20, ge=1, le=100),
    evaluator: StartupEvaluator = Depends(get_evaluator),
):
    evaluations = evaluator.get_high_score_evaluations(min_score, limit)
    return {"count": len(evaluations), "evaluations": evaluations}


@router.get("/evaluations/{evaluation_id}")
def get_evaluation(
    evaluation_id: int,
    evaluator: StartupEvaluator = Depends(get_evaluator),
):
    evaluation = evaluator.get_evaluation(evaluation_id)
    if not evaluation:
        raise HTTPException(status_code=404, detail="Evaluation not found")
    return evaluation


@router.get("/companies/{company_id}/evaluations")
def company_evaluations(
    company_id: int,
    evaluator: StartupEvaluator = Depends(get_evaluator),
):
    company = evaluator.store.get_company(company_id)
    if not company:
        raise HTTPException(status_code=404, detail="Company not found")
    evaluations = evaluator.get_company_evaluations(company_id)
    return {
        "company": company.to_dict(),
        "count": len(evaluations),
        "evaluations": evaluations,
    }
