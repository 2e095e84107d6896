"""
Market Trends Agent.

Sector trend synthesis: four trend categories per sector (search plus
extraction each), predictions and an evolved investment thesis per
sector, then cross-sector opportunities and risks. Every stage degrades
to an empty result on failure.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence, Tuple

from venture_eval.agentic.llm_client import LLMClient
from venture_eval.agentic.prompts import (
    OPPORTUNITIES_PROMPT,
    PREDICTION_PROMPT,
    RISKS_PROMPT,
    THESIS_PROMPT,
    TREND_PROMPT,
    format_evidence,
    to_prompt_json,
)
from venture_eval.agents import fields as f
from venture_eval.sources.exa.types import EvidenceQuery

logger = logging.getLogger(__name__)

IMPACT_WEIGHTS = {"transformational": 4, "high": 3, "medium": 2, "low": 1}
TIMEFRAMES = ("immediate", "short-term", "medium-term", "long-term")

# category -> (query suffix, window in days, result cap, domains)
TREND_SOURCES: Dict[str, Tuple[str, int, int, Tuple[str, ...]]] = {
    "technology": (
        "technology trends AI blockchain machine learning automation innovation",
        30,
        10,
        ("techcrunch.com", "wired.com", "mit.edu", "stanford.edu", "accenture.com"),
    ),
    "regulation": (
        "regulation compliance policy government law",
        60,
        8,
        ("sec.gov", "federalreserve.gov", "reuters.com", "wsj.com", "bloomberg.com"),
    ),
    "market": (
        "market trends growth consumer behavior adoption rates",
        45,
        8,
        ("mckinsey.com", "bcg.com", "pwc.com", "deloitte.com", "statista.com"),
    ),
    "funding": (
        "venture capital funding investment trends startup",
        30,
        8,
        ("pitchbook.com", "crunchbase.com", "cbinsights.com", "techcrunch.com"),
    ),
}

DEFAULT_THESES = {
    "fintech": (
        "We focus on B2B fintech infrastructure companies that enable traditional financial "
        "institutions to modernize their technology stack. Priority areas include payments "
        "infrastructure, compliance tech, and embedded finance solutions."
    ),
    "healthtech": (
        "We invest in healthcare technology companies that improve patient outcomes while "
        "reducing costs. Focus areas include digital health platforms, medical devices, and "
        "healthcare analytics."
    ),
    "edtech": (
        "We target educational technology companies that address skill gaps and improve learning "
        "outcomes. Priority areas include corporate training, professional development, and "
        "certification platforms."
    ),
}

THESIS_REVIEW_DAYS = 90


def default_thesis(sector: str) -> str:
    return DEFAULT_THESES.get(
        sector.lower(),
        f"We invest in innovative {sector} companies that address large market opportunities "
        f"with scalable technology solutions.",
    )


@dataclass
class TrendData:
    id: str
    title: str
    description: str
    category: str
    sector: str
    impact: str = "medium"
    timeframe: str = "medium-term"
    confidence: float = 50.0
    sources: List[str] = field(default_factory=list)
    affected_sectors: List[str] = field(default_factory=list)
    investment_implications: List[str] = field(default_factory=list)
    key_metrics: Dict[str, float] = field(default_factory=dict)
    timestamp: str = field(default_factory=lambda: datetime.utcnow().isoformat())

    @property
    def weight(self) -> float:
        return IMPACT_WEIGHTS.get(self.impact, 2) * self.confidence

    def summary(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "impact": self.impact,
            "confidence": self.confidence,
        }


@dataclass
class MarketPrediction:
    id: str
    sector: str
    prediction: str
    likelihood: float = 50.0
    timeline: str = "Medium-term"
    trend_id: Optional[str] = None
    catalysts: List[str] = field(default_factory=list)
    risks: List[str] = field(default_factory=list)
    opportunities: List[str] = field(default_factory=list)
    strategic_recommendations: List[str] = field(default_factory=list)
    monitoring_indicators: List[str] = field(default_factory=list)


@dataclass
class ThesisEvolution:
    sector: str
    previous_thesis: str
    updated_thesis: str
    key_changes: List[str] = field(default_factory=list)
    confidence: float = 70.0
    reasoning: str = ""
    supporting_data: List[str] = field(default_factory=list)
    next_review_date: str = ""


@dataclass
class MarketIntelligence:
    trends: List[TrendData] = field(default_factory=list)
    predictions: List[MarketPrediction] = field(default_factory=list)
    thesis_evolutions: List[ThesisEvolution] = field(default_factory=list)
    emerging_opportunities: List[str] = field(default_factory=list)
    risks: List[str] = field(default_factory=list)
    timestamp: str = field(default_factory=lambda: datetime.utcnow().isoformat())

    def to_dict(self) -> Dict[str, Any]:
        return f.to_jsonable(self)


def rank_trends(trends: Sequence[TrendData]) -> List[TrendData]:
    """Highest impact weight x confidence first."""
    return sorted(trends, key=lambda t: t.weight, reverse=True)


class MarketTrendsAgent:
    """
    Usage:
        agent = MarketTrendsAgent(exa, llm)
        intel = await agent.generate_market_intelligence(["fintech"])
    """

    def __init__(self, search_client, llm: LLMClient, focus_industry: str = "fintech"):
        self.search_client = search_client
        self.llm = llm
        self.focus_industry = focus_industry

    async def generate_market_intelligence(
        self, sectors: Optional[Sequence[str]] = None
    ) -> MarketIntelligence:
        sectors = list(sectors or [self.focus_industry])
        intel = MarketIntelligence()

        for sector in sectors:
            trends = await self.analyze_sector_trends(sector)
            intel.trends.extend(trends)
            if not trends:
                continue
            intel.predictions.extend(await self.generate_predictions(sector, trends))
            evolution = await self.evolve_thesis(sector, trends)
            if evolution:
                intel.thesis_evolutions.append(evolution)

        intel.emerging_opportunities = await self.identify_opportunities(intel.trends)
        intel.risks = await self.identify_risks(intel.trends)
        logger.info(
            f"Market intelligence for {sectors}: {len(intel.trends)} trends, "
            f"{len(intel.predictions)} predictions"
        )
        return intel

    async def get_trend_analysis(self, sectors: Sequence[str]) -> List[TrendData]:
        trends: List[TrendData] = []
        for sector in sectors:
            trends.extend(await self.analyze_sector_trends(sector))
        return rank_trends(trends)

    async def analyze_sector_trends(self, sector: str) -> List[TrendData]:
        trends: List[TrendData] = []
        for category in TREND_SOURCES:
            trends.extend(await self._category_trends(sector, category))
        return trends

    async def _extract(self, prompt: str, description: str, **kwargs) -> Dict[str, Any]:
        """Extraction that degrades to an empty dict."""
        try:
            result = await self.llm.try_extract(prompt, **kwargs)
        except Exception as e:
            logger.warning(f"{description} failed: {e}")
            return {}
        if not result.ok:
            logger.warning(f"{description} failed: {result.reason}")
            return {}
        return result.data

    async def _category_trends(self, sector: str, category: str) -> List[TrendData]:
        suffix, days, limit, domains = TREND_SOURCES[category]
        try:
            items = await self.search_client.search(EvidenceQuery.within_days(
                f"{sector} {suffix} {date.today().year}",
                days,
                num_results=limit,
                include_domains=domains,
                bounded=False,
            ))
        except Exception as e:
            logger.warning(f"{category} trend search failed for {sector}: {e}")
            return []
        if not items:
            return []

        data = await self._extract(
            TREND_PROMPT.format(
                category=category,
                sector=sector,
                evidence=format_evidence([i.to_prompt_dict() for i in items[:5]]),
            ),
            f"{category} trend extraction for {sector}",
            max_tokens=2000,
            temperature=0.4,
        )
        trends = []
        for raw in f.dict_list(data.get("trends")):
            impact = f.text(raw.get("impact"), "medium").lower()
            timeframe = f.text(raw.get("timeframe"), "medium-term").lower()
            metrics = raw.get("key_metrics") if isinstance(raw.get("key_metrics"), dict) else {}
            trends.append(TrendData(
                id=f"{category}_{sector}_{uuid.uuid4().hex[:8]}",
                title=f.text(raw.get("title"), "Unknown Trend")[:60],
                description=f.text(raw.get("description"), ""),
                category=category,
                sector=sector,
                impact=impact if impact in IMPACT_WEIGHTS else "medium",
                timeframe=timeframe if timeframe in TIMEFRAMES else "medium-term",
                confidence=f.score(raw.get("confidence"), 50.0),
                sources=f.str_list(raw.get("sources")),
                affected_sectors=f.str_list(raw.get("affected_sectors")) or [sector],
                investment_implications=f.str_list(raw.get("investment_implications")),
                key_metrics={
                    k: v for k, v in ((k, f.optional_number(v)) for k, v in metrics.items())
                    if v is not None
                },
            ))
        return trends

    async def generate_predictions(self, sector: str, trends: Sequence[TrendData]) -> List[MarketPrediction]:
        data = await self._extract(
            PREDICTION_PROMPT.format(
                sector=sector, trends=to_prompt_json([t.summary() for t in trends[:5]])
            ),
            f"Prediction generation for {sector}",
            max_tokens=2000,
            temperature=0.5,
        )
        primary = trends[0].id if trends else None
        return [
            MarketPrediction(
                id=f"prediction_{sector}_{uuid.uuid4().hex[:8]}",
                sector=sector,
                prediction=f.text(raw.get("prediction"), ""),
                likelihood=f.score(raw.get("likelihood"), 50.0),
                timeline=f.text(raw.get("timeline"), "Medium-term"),
                trend_id=primary,
                catalysts=f.str_list(raw.get("catalysts")),
                risks=f.str_list(raw.get("risks")),
                opportunities=f.str_list(raw.get("opportunities")),
                strategic_recommendations=f.str_list(raw.get("strategic_recommendations")),
                monitoring_indicators=f.str_list(raw.get("monitoring_indicators")),
            )
            for raw in f.dict_list(data.get("predictions"))
        ]

    async def evolve_thesis(self, sector: str, trends: Sequence[TrendData]) -> Optional[ThesisEvolution]:
        previous = default_thesis(sector)
        data = await self._extract(
            THESIS_PROMPT.format(
                sector=sector,
                thesis=previous,
                trends=to_prompt_json([t.summary() for t in trends[:5]]),
            ),
            f"Thesis evolution for {sector}",
            max_tokens=1500,
            temperature=0.4,
        )
        if not data:
            return None
        return ThesisEvolution(
            sector=sector,
            previous_thesis=previous,
            updated_thesis=f.text(data.get("updated_thesis"), previous),
            key_changes=f.str_list(data.get("key_changes")),
            confidence=f.score(data.get("confidence"), 70.0),
            reasoning=f.text(data.get("reasoning"), ""),
            supporting_data=f.str_list(data.get("supporting_data")),
            next_review_date=(date.today() + timedelta(days=THESIS_REVIEW_DAYS)).isoformat(),
        )

    async def identify_opportunities(self, trends: Sequence[TrendData]) -> List[str]:
        impactful = [t for t in trends if t.impact in ("high", "transformational")]
        if not impactful:
            return []
        data = await self._extract(
            OPPORTUNITIES_PROMPT.format(trends=to_prompt_json([t.summary() for t in impactful[:10]])),
            "Opportunity identification",
            max_tokens=800,
            temperature=0.5,
        )
        return f.str_list(data.get("opportunities"))

    async def identify_risks(self, trends: Sequence[TrendData]) -> List[str]:
        if not trends:
            return []
        data = await self._extract(
            RISKS_PROMPT.format(
                industry=self.focus_industry,
                trends=to_prompt_json([t.summary() for t in trends[:10]]),
            ),
            "Risk identification",
            max_tokens=800,
            temperature=0.4,
        )
        return f.str_list(data.get("risks"))
