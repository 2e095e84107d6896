"""
Portfolio monitoring endpoints.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from venture_eval.agentic.llm_client import LLMClient
from venture_eval.agents.portfolio_monitor import PortfolioMonitor, Severity
from venture_eval.core.api_errors import ConfigurationError
from venture_eval.core.config import get_settings
from venture_eval.core.dependencies import ensure_configured, get_llm, get_search_client, get_store
from venture_eval.core.repository import EvaluationStore
from venture_eval.core.schemas import PortfolioMonitorRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/portfolio", tags=["portfolio"])


def get_monitor(
    search_client=Depends(get_search_client),
    llm: LLMClient = Depends(get_llm),
    store: EvaluationStore = Depends(get_store),
) -> PortfolioMonitor:
    settings = get_settings()
    return PortfolioMonitor(
        search_client,
        llm,
        store,
        window_days=settings.monitor_window_days,
        focus_industry=settings.focus_industry,
    )


@router.post("/monitor")
async def monitor_portfolio(
    request: PortfolioMonitorRequest,
    monitor: PortfolioMonitor = Depends(get_monitor),
):
    """
    Monitor the given companies and persist the alerts and metrics found.

    Unknown ids and companies whose monitoring fails are left out of the result.
    """
    try:
        ensure_configured(monitor.search_client, monitor.llm)
    except ConfigurationError as e:
        raise HTTPException(status_code=503, detail=str(e))
    result = await monitor.monitor_portfolio(request.company_ids)
    return result.to_dict()


@router.get("/alerts")
def list_alerts(
    company_ids: List[int] = Query(..., description="Portfolio company ids"),
    severity: Optional[Severity] = Query(default=None),
    include_acknowledged: bool = Query(default=False),
    monitor: PortfolioMonitor = Depends(get_monitor),
):
    alerts = monitor.get_portfolio_alerts(
        company_ids,
        severity=severity.value if severity else None,
        include_acknowledged=include_acknowledged,
    )
    return {"count": len(alerts), "alerts": alerts}


@router.post("/alerts/{alert_id}/acknowledge")
def acknowledge_alert(
    alert_id: str,
    monitor: PortfolioMonitor = Depends(get_monitor),
):
    if not monitor.acknowledge_alert(alert_id):
        raise HTTPException(status_code=404, detail="Alert not found")
    return {"id": alert_id, "acknowledged": True}


@router.get("/metrics")
def latest_metrics(
    company_ids: List[int] = Query(..., description="Portfolio company ids"),
    monitor: PortfolioMonitor = Depends(get_monitor),
):
    metrics = monitor.get_portfolio_metrics(company_ids)
    return {"count": len(metrics), "metrics": metrics}
