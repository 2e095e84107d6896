"""
Market intelligence endpoints.
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query

from venture_eval.agentic.llm_client import LLMClient
from venture_eval.agents.fields import to_jsonable
from venture_eval.agents.market_trends import MarketTrendsAgent
from venture_eval.core.api_errors import ConfigurationError
from venture_eval.core.config import get_settings
from venture_eval.core.dependencies import ensure_configured, get_llm, get_search_client
from venture_eval.core.schemas import MarketIntelligenceRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/market", tags=["market"])


def get_trends_agent(
    search_client=Depends(get_search_client),
    llm: LLMClient = Depends(get_llm),
) -> MarketTrendsAgent:
    try:
        ensure_configured(search_client, llm)
    except ConfigurationError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return MarketTrendsAgent(search_client, llm, focus_industry=get_settings().focus_industry)


@router.post("/intelligence")
async def market_intelligence(
    request: MarketIntelligenceRequest,
    agent: MarketTrendsAgent = Depends(get_trends_agent),
):
    """Trends, predictions, thesis evolutions, opportunities and risks per sector."""
    intel = await agent.generate_market_intelligence(request.sectors)
    return intel.to_dict()


@router.get("/trends")
async def trend_analysis(
    sectors: List[str] = Query(default=["fintech"]),
    agent: MarketTrendsAgent = Depends(get_trends_agent),
):
    """Trends across sectors, ranked by impact weight times confidence."""
    normalized = [s.strip().lower() for s in sectors if s.strip()]
    if not normalized:
        raise HTTPException(status_code=400, detail="At least one sector is required")
    trends = await agent.get_trend_analysis(normalized)
    return {"count": len(trends), "trends": to_jsonable(trends)}
