"""
Agentic Portfolio Monitor.

Watches portfolio companies over a short window (default 7 days): four
searches per company, keyword alert rules, a headline sentiment score,
and portfolio-wide insights. Companies are monitored concurrently; one
company failing never fails the batch.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from venture_eval.agentic.llm_client import LLMClient
from venture_eval.agentic.prompts import SENTIMENT_PROMPT, headline_list
from venture_eval.agents.fields import number, to_jsonable
from venture_eval.core.repository import EvaluationStore
from venture_eval.sources.exa.types import EvidenceItem, EvidenceQuery

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

class AlertCategory(str, Enum):
    NEWS = "news"
    FINANCIAL = "financial"
    COMPETITIVE = "competitive"
    REGULATORY = "regulatory"
    TEAM = "team"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class InsightType(str, Enum):
    TREND = "trend"
    RISK = "risk"
    OPPORTUNITY = "opportunity"


FINANCIAL_DOMAINS = ("techcrunch.com", "reuters.com", "bloomberg.com", "pitchbook.com")
TEAM_DOMAINS = ("linkedin.com", "techcrunch.com", "bloomberg.com")

RULE_ITEMS = 3

FUNDING_TERMS = ("funding", "investment", "round")
MA_TERMS = ("acquisition", "merger", "acquired")
LAUNCH_TERMS = ("launch", "new product", "announces")
LEADER_TERMS = ("ceo", "founder", "cto")
DEPARTURE_TERMS = ("leaves", "resigned", "stepping down")
APPOINTMENT_TERMS = ("joins", "appointed", "hired")
REGULATORY_TERMS = ("investigation", "lawsuit", "fine", "regulator", "enforcement")
CRITICAL_NEWS_TERMS = ("fraud", "bankruptcy")
NEGATIVE_NEWS_TERMS = ("breach", "layoffs")
POSITIVE_NEWS_TERMS = ("partnership", "expansion")
PRODUCT_TERMS = ("product", "launch", "feature")

NEGATIVE_SENTIMENT_THRESHOLD = -30
POSITIVE_SENTIMENT_THRESHOLD = 50
COMPETITIVE_ACTIVITY_THRESHOLD = 3


@dataclass
class PortfolioCompany:
    id: int
    name: str
    website: Optional[str] = None
    industry: Optional[str] = None


@dataclass
class MonitoringAlert:
    id: str
    company_id: int
    company_name: str
    category: AlertCategory
    severity: Severity
    title: str
    description: str
    source: str
    url: Optional[str] = None
    timestamp: str = field(default_factory=lambda: datetime.utcnow().isoformat())
    acknowledged: bool = False


@dataclass
class MonitoringMetrics:
    company_id: int
    date: str
    news_volume: int = 0
    sentiment: float = 0.0
    market_mentions: int = 0
    competitive_activity: int = 0
    funding_activity: bool = False
    team_changes: int = 0
    product_updates: int = 0


@dataclass
class PortfolioInsight:
    id: str
    type: InsightType
    title: str
    description: str
    affected_companies: List[int]
    priority: str
    action_required: bool = False
    timestamp: str = field(default_factory=lambda: datetime.utcnow().isoformat())


@dataclass
class MonitoringResult:
    alerts: List[MonitoringAlert] = field(default_factory=list)
    metrics: List[MonitoringMetrics] = field(default_factory=list)
    insights: List[PortfolioInsight] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return to_jsonable(self)


# =============================================================================
# Keyword rules
# =============================================================================


def _contains(text: str, terms: Sequence[str]) -> bool:
    return any(term in text for term in terms)


def _alert(
    company: PortfolioCompany,
    category: AlertCategory,
    severity: Severity,
    title: str,
    description: str,
    source: str,
    item: EvidenceItem,
) -> MonitoringAlert:
    return MonitoringAlert(
        id=f"{category.value}_{company.id}_{uuid.uuid4().hex[:10]}",
        company_id=company.id,
        company_name=company.name,
        category=category,
        severity=severity,
        title=title,
        description=description,
        source=source,
        url=item.url or None,
    )


def financial_alerts(company: PortfolioCompany, items: Sequence[EvidenceItem]) -> List[MonitoringAlert]:
    alerts = []
    for item in items[:RULE_ITEMS]:
        text = item.searchable_text()
        if _contains(text, FUNDING_TERMS):
            alerts.append(_alert(
                company, AlertCategory.FINANCIAL, Severity.HIGH, "Funding Activity Detected",
                f"Potential funding activity: {item.title}", "Financial Monitor", item,
            ))
        if _contains(text, MA_TERMS):
            alerts.append(_alert(
                company, AlertCategory.FINANCIAL, Severity.CRITICAL, "M&A Activity Detected",
                f"Potential M&A activity: {item.title}", "Financial Monitor", item,
            ))
    return alerts


def competitive_alerts(company: PortfolioCompany, items: Sequence[EvidenceItem]) -> List[MonitoringAlert]:
    """Launch announcements that do not mention the company itself."""
    alerts = []
    name = company.name.lower()
    for item in items[:RULE_ITEMS]:
        text = item.searchable_text()
        if _contains(text, LAUNCH_TERMS) and name not in text:
            alerts.append(_alert(
                company, AlertCategory.COMPETITIVE, Severity.MEDIUM, "Competitive Product Launch",
                f"Competitive activity detected: {item.title}", "Competitive Monitor", item,
            ))
    return alerts


def team_alerts(company: PortfolioCompany, items: Sequence[EvidenceItem]) -> List[MonitoringAlert]:
    alerts = []
    name = company.name.lower()
    for item in items[:RULE_ITEMS]:
        text = item.searchable_text()
        if name not in text or not _contains(text, LEADER_TERMS):
            continue
        if _contains(text, DEPARTURE_TERMS):
            severity, title = Severity.HIGH, "Leadership Departure"
        elif _contains(text, APPOINTMENT_TERMS):
            severity, title = Severity.MEDIUM, "Leadership Appointment"
        else:
            severity, title = Severity.MEDIUM, "Team Change"
        alerts.append(_alert(
            company, AlertCategory.TEAM, severity, title,
            f"Leadership change detected: {item.title}", "Team Monitor", item,
        ))
    return alerts


def news_alerts(company: PortfolioCompany, items: Sequence[EvidenceItem]) -> List[MonitoringAlert]:
    alerts = []
    for item in items[:RULE_ITEMS]:
        text = item.searchable_text()
        if _contains(text, REGULATORY_TERMS):
            alerts.append(_alert(
                company, AlertCategory.REGULATORY, Severity.HIGH, "Regulatory Issue Detected",
                f"Possible regulatory exposure: {item.title}", "News Monitor", item,
            ))
        if _contains(text, CRITICAL_NEWS_TERMS):
            alerts.append(_alert(
                company, AlertCategory.NEWS, Severity.CRITICAL, "Negative News Detected",
                f"Serious negative coverage: {item.title}", "News Monitor", item,
            ))
        elif _contains(text, NEGATIVE_NEWS_TERMS):
            alerts.append(_alert(
                company, AlertCategory.NEWS, Severity.HIGH, "Negative News Detected",
                f"Negative coverage: {item.title}", "News Monitor", item,
            ))
        if _contains(text, POSITIVE_NEWS_TERMS):
            alerts.append(_alert(
                company, AlertCategory.NEWS, Severity.LOW, "Partnership or Expansion",
                f"Growth signal: {item.title}", "News Monitor", item,
            ))
    return alerts


def portfolio_insights(
    alerts: Sequence[MonitoringAlert], metrics: Sequence[MonitoringMetrics]
) -> List[PortfolioInsight]:
    insights: List[PortfolioInsight] = []

    funding = [a for a in alerts if a.category == AlertCategory.FINANCIAL]
    if len(funding) >= 2:
        affected = sorted({a.company_id for a in funding})
        insights.append(PortfolioInsight(
            id=f"insight_funding_{uuid.uuid4().hex[:8]}",
            type=InsightType.TREND,
            title="Increased Funding Activity",
            description=f"{len(affected)} portfolio companies showing funding activity this week",
            affected_companies=affected,
            priority="medium",
        ))

    if metrics:
        average = sum(m.sentiment for m in metrics) / len(metrics)
        if average < NEGATIVE_SENTIMENT_THRESHOLD:
            insights.append(PortfolioInsight(
                id=f"insight_sentiment_{uuid.uuid4().hex[:8]}",
                type=InsightType.RISK,
                title="Negative Sentiment Trend",
                description=f"Portfolio showing negative sentiment ({average:.1f}) - may require attention",
                affected_companies=[
                    m.company_id for m in metrics if m.sentiment < NEGATIVE_SENTIMENT_THRESHOLD
                ],
                priority="high",
                action_required=True,
            ))

    pressured = [m.company_id for m in metrics if m.competitive_activity >= COMPETITIVE_ACTIVITY_THRESHOLD]
    if pressured:
        insights.append(PortfolioInsight(
            id=f"insight_competitive_{uuid.uuid4().hex[:8]}",
            type=InsightType.RISK,
            title="Increased Competitive Activity",
            description=f"{len(pressured)} companies facing increased competitive pressure",
            affected_companies=pressured,
            priority="medium",
            action_required=True,
        ))

    momentum = [
        m.company_id
        for m in metrics
        if m.sentiment >= POSITIVE_SENTIMENT_THRESHOLD and m.product_updates >= 1
    ]
    if momentum:
        insights.append(PortfolioInsight(
            id=f"insight_momentum_{uuid.uuid4().hex[:8]}",
            type=InsightType.OPPORTUNITY,
            title="Positive Product Momentum",
            description=f"{len(momentum)} companies shipping product with positive coverage",
            affected_companies=momentum,
            priority="low",
        ))

    return insights


# =============================================================================
# Monitor
# =============================================================================


class PortfolioMonitor:
    """
    Concurrent portfolio monitoring with persisted alerts and metrics.
    """

    def __init__(
        self,
        search_client,
        llm: LLMClient,
        store: EvaluationStore,
        window_days: int = 7,
        focus_industry: str = "fintech",
    ):
        self.search_client = search_client
        self.llm = llm
        self.store = store
        self.window_days = window_days
        self.focus_industry = focus_industry

    def _resolve_companies(self, company_ids: Sequence[int]) -> List[PortfolioCompany]:
        found = self.store.get_companies(company_ids)
        companies = []
        for company_id in company_ids:
            company = found.get(company_id)
            if company is None:
                logger.warning(f"Portfolio company {company_id} not found, skipping")
                continue
            companies.append(PortfolioCompany(
                id=company.id,
                name=company.name,
                website=company.website,
                industry=company.industry,
            ))
        return companies

    async def monitor_portfolio(self, company_ids: Sequence[int]) -> MonitoringResult:
        companies = self._resolve_companies(company_ids)
        logger.info(f"Monitoring {len(companies)} portfolio companies")

        outcomes = await asyncio.gather(
            *(self.monitor_company(c) for c in companies), return_exceptions=True
        )

        result = MonitoringResult()
        for company, outcome in zip(companies, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(f"Failed to monitor {company.name}: {outcome}")
                continue
            alerts, metrics = outcome
            result.alerts.extend(alerts)
            result.metrics.append(metrics)

        result.insights = portfolio_insights(result.alerts, result.metrics)
        self._store_results(result)
        return result

    async def monitor_company(self, company: PortfolioCompany):
        """Alerts and metrics for one company. Search failures propagate."""
        days = self.window_days
        news = await self.search_client.search(EvidenceQuery.within_days(
            f"{company.name} news announcement", days, num_results=5,
        ))
        financial = await self.search_client.search(EvidenceQuery.within_days(
            f"{company.name} funding investment acquisition merger valuation",
            days,
            num_results=5,
            include_domains=FINANCIAL_DOMAINS,
        ))
        competitive = await self.search_client.search(EvidenceQuery.within_days(
            f"{company.industry or self.focus_industry} competitor launch product new funding",
            days,
            num_results=5,
            exclude_domains=self._own_domain(company),
        ))
        team = await self.search_client.search(EvidenceQuery.within_days(
            f'{company.name} CEO founder "joins" "leaves" "appointed" "resigned"',
            days,
            num_results=3,
            include_domains=TEAM_DOMAINS,
        ))

        alerts = (
            news_alerts(company, news)
            + financial_alerts(company, financial)
            + competitive_alerts(company, competitive)
            + team_alerts(company, team)
        )

        metrics = MonitoringMetrics(
            company_id=company.id,
            date=datetime.utcnow().date().isoformat(),
            news_volume=len(news),
            sentiment=await self.headline_sentiment(company, news),
            market_mentions=len(news) + len(financial),
            competitive_activity=len(competitive),
            funding_activity=any(
                _contains(item.title.lower(), ("funding", "investment")) for item in financial
            ),
            team_changes=len(team),
            product_updates=sum(1 for item in news if _contains(item.title.lower(), PRODUCT_TERMS)),
        )
        return alerts, metrics

    @staticmethod
    def _own_domain(company: PortfolioCompany):
        if not company.website:
            return ()
        domain = company.website.replace("https://", "").replace("http://", "").strip("/")
        return (domain,) if domain else ()

    async def headline_sentiment(self, company: PortfolioCompany, news: Sequence[EvidenceItem]) -> float:
        """Sentiment -100..100 over up to three headlines; 0 without news or on failure."""
        headlines = [item.title for item in news[:3] if item.title]
        if not headlines:
            return 0.0
        try:
            result = await self.llm.try_extract(
                SENTIMENT_PROMPT.format(company_name=company.name, headlines=headline_list(headlines)),
                max_tokens=20,
                temperature=0.3,
            )
        except Exception as e:
            logger.warning(f"Sentiment unavailable for {company.name}: {e}")
            return 0.0
        if not result.ok:
            logger.warning(f"Sentiment extraction failed for {company.name}: {result.reason}")
            return 0.0
        return max(-100.0, min(100.0, number(result.data.get("sentiment"), 0.0)))

    def _store_results(self, result: MonitoringResult) -> None:
        try:
            for alert in result.alerts:
                self.store.save_alert(
                    id=alert.id,
                    company_id=alert.company_id,
                    company_name=alert.company_name,
                    category=alert.category.value,
                    severity=alert.severity.value,
                    title=alert.title,
                    description=alert.description,
                    source=alert.source,
                    url=alert.url,
                )
            for m in result.metrics:
                self.store.save_metrics(
                    company_id=m.company_id,
                    metric_date=m.date,
                    news_volume=m.news_volume,
                    sentiment=m.sentiment,
                    market_mentions=m.market_mentions,
                    competitive_activity=m.competitive_activity,
                    funding_activity=m.funding_activity,
                    team_changes=m.team_changes,
                    product_updates=m.product_updates,
                )
            self.store.commit()
        except Exception:
            self.store.rollback()
            raise
        logger.info(
            f"Stored {len(result.alerts)} alerts and {len(result.metrics)} metrics "
            f"({len(result.insights)} insights)"
        )

    # =========================================================================
    # Queries
    # =========================================================================

    def get_portfolio_alerts(
        self,
        company_ids: Sequence[int],
        severity: Optional[str] = None,
        include_acknowledged: bool = False,
    ) -> List[Dict[str, Any]]:
        records = self.store.list_alerts(company_ids, severity, include_acknowledged)
        return [r.to_dict() for r in records]

    def acknowledge_alert(self, alert_id: str) -> bool:
        acknowledged = self.store.acknowledge_alert(alert_id)
        if acknowledged:
            self.store.commit()
        return acknowledged

    def get_portfolio_metrics(self, company_ids: Sequence[int]) -> List[Dict[str, Any]]:
        return [r.to_dict() for r in self.store.latest_metrics(company_ids)]
