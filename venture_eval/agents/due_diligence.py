"""
Due Diligence Aggregator.

Runs the five category collectors concurrently, scores each category,
derives the overall score and recommendation tier, and synthesizes
findings into a DueDiligenceReport.
"""

import asyncio
import logging
import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from venture_eval.agentic.llm_client import LLMClient
from venture_eval.agentic.prompts import SYNTHESIS_PROMPT, analyst_system_prompt, to_prompt_json
from venture_eval.agents.collectors import BaseCollector, build_collectors
from venture_eval.agents.fields import count_populated_fields, str_list
from venture_eval.agents.types import (
    Architecture,
    CategoryRecord,
    CompanyContext,
    DueDiligenceReport,
    FinancialHealth,
    MarketValidation,
    TeamAssessment,
    TechnicalDiligence,
    recommendation_for_score,
)

logger = logging.getLogger(__name__)


class AggregatorState(str, Enum):
    IDLE = "idle"
    COLLECTING = "collecting"
    SCORING = "scoring"
    SYNTHESIZING = "synthesizing"
    DONE = "done"


CATEGORIES = ("financial", "legal", "technical", "market", "team")

# Category weights in percent; they sum to 100
CATEGORY_WEIGHTS = {
    "financial": 25,
    "legal": 15,
    "technical": 20,
    "market": 25,
    "team": 15,
}

# Sub-fields averaged into each category composite (dotted attribute paths)
DEFAULT_COMPOSITE_FIELDS: Dict[str, Tuple[str, ...]] = {
    "financial": ("unit_economics.profitability_score", "burn_rate.confidence"),
    "legal": ("regulatory.compliance_score",),
    "technical": (
        "architecture.scalability_score",
        "architecture.security_score",
        "architecture.maintainability_score",
    ),
    "market": ("competition.competitive_advantage", "penetration.growth_potential"),
    "team": (
        "team_score.experience_score",
        "team_score.domain_expertise",
        "team_score.execution_capability",
    ),
}

DEFAULT_KEY_FINDINGS = [
    "Strong technical foundation",
    "Experienced team",
    "Growing market opportunity",
]
DEFAULT_RED_FLAGS = ["Limited financial runway", "Regulatory uncertainty"]
DEFAULT_MITIGATION_STRATEGIES = ["Diversify revenue streams", "Engage regulatory consultants"]
DEFAULT_FOLLOW_UP_ACTIONS = [
    "Request detailed financial projections",
    "Schedule regulatory compliance review",
]
DEFAULT_INFORMATION_GAPS = [
    "Detailed financial statements",
    "Customer references",
    "Technical architecture documentation",
]

SYNTHESIS_KEYS = {
    "keyFindings": DEFAULT_KEY_FINDINGS,
    "redFlags": DEFAULT_RED_FLAGS,
    "mitigationStrategies": DEFAULT_MITIGATION_STRATEGIES,
    "followUpActions": DEFAULT_FOLLOW_UP_ACTIONS,
}


def _resolve(record: Any, path: str) -> float:
    value = record
    for part in path.split("."):
        value = getattr(value, part)
    return float(value)


def composite_score(record: CategoryRecord, paths: Sequence[str]) -> float:
    """Unweighted mean of the selected sub-fields."""
    values = [_resolve(record, p) for p in paths]
    return sum(values) / len(values) if values else 0.0


def weighted_overall(composites: Mapping[str, float]) -> int:
    """
    Weighted overall score, rounded half to even and clamped to 0-100.

    Computed in percent units so that e.g. 72.5 stays exact and rounds to 72.
    """
    total = sum(CATEGORY_WEIGHTS[c] * composites[c] for c in CATEGORIES)
    return max(0, min(100, round(total / 100)))


def data_quality(records: Sequence[CategoryRecord]) -> int:
    """Share of leaf fields (percent) that differ from their defaults."""
    populated = 0
    total = 0
    for record in records:
        p, t = count_populated_fields(record)
        populated += p
        total += t
    return round(100 * populated / total) if total else 0


def analysis_confidence(quality: int, records: Sequence[CategoryRecord]) -> int:
    extracted = sum(1 for r in records if not r.is_default)
    return round(0.5 * quality + 0.5 * 100 * extracted / len(CATEGORIES))


def information_gaps(
    financial: FinancialHealth,
    technical: TechnicalDiligence,
    market: MarketValidation,
    team: TeamAssessment,
    records: Sequence[CategoryRecord],
) -> List[str]:
    gaps = [
        f"{r.CATEGORY.capitalize()} data unavailable ({r.failure_reason})"
        for r in records
        if r.is_default
    ]
    if financial.revenue.mrr is None and financial.revenue.arr is None:
        gaps.append("Detailed financial statements")
    if not market.customers.interviews and market.customers.nps_score is None:
        gaps.append("Customer references")
    if technical.architecture == Architecture():
        gaps.append("Technical architecture documentation")
    if not team.founders:
        gaps.append("Founder backgrounds")
    return gaps or list(DEFAULT_INFORMATION_GAPS)


class DueDiligenceAggregator:
    """
    Comprehensive due diligence over five categories.

    State moves IDLE -> COLLECTING -> SCORING -> SYNTHESIZING -> DONE and is
    reset to IDLE at the start of each run.
    """

    def __init__(
        self,
        search_client,
        llm: LLMClient,
        collectors: Optional[List[BaseCollector]] = None,
        composite_fields: Optional[Dict[str, Tuple[str, ...]]] = None,
        fund_name: str = "Impression Ventures",
        focus_industry: str = "fintech",
    ):
        self.llm = llm
        self.collectors = collectors or build_collectors(search_client, llm)
        self.composite_fields = dict(DEFAULT_COMPOSITE_FIELDS)
        if composite_fields:
            self.composite_fields.update(composite_fields)
        self.fund_name = fund_name
        self.focus_industry = focus_industry
        self.state = AggregatorState.IDLE

    async def generate_report(self, context: CompanyContext) -> DueDiligenceReport:
        self.state = AggregatorState.IDLE
        logger.info(f"Starting due diligence for {context.company_name}")

        self.state = AggregatorState.COLLECTING
        records = await asyncio.gather(*(c.collect(context) for c in self.collectors))
        financial, legal, technical, market, team = records
        failed = [r.CATEGORY for r in records if r.is_default]
        if failed:
            logger.warning(f"Due diligence for {context.company_name} used defaults for: {failed}")

        self.state = AggregatorState.SCORING
        composites = {
            category: composite_score(record, self.composite_fields[category])
            for category, record in zip(CATEGORIES, records)
        }
        overall = weighted_overall(composites)
        recommendation = recommendation_for_score(overall)

        self.state = AggregatorState.SYNTHESIZING
        synthesis = await self._synthesize(context, overall, composites, records)
        quality = data_quality(records)

        report = DueDiligenceReport(
            report_id=f"dd_{uuid.uuid4().hex[:12]}",
            company_name=context.company_name,
            report_date=datetime.utcnow().isoformat(),
            overall_score=overall,
            recommendation=recommendation,
            financial=financial,
            legal=legal,
            technical=technical,
            market=market,
            team=team,
            composite_scores={k: round(v, 1) for k, v in composites.items()},
            key_findings=tuple(synthesis["keyFindings"]),
            red_flags=tuple(synthesis["redFlags"]),
            mitigation_strategies=tuple(synthesis["mitigationStrategies"]),
            follow_up_actions=tuple(synthesis["followUpActions"]),
            data_quality=quality,
            analysis_confidence=analysis_confidence(quality, records),
            information_gaps=tuple(information_gaps(financial, technical, market, team, records)),
        )

        self.state = AggregatorState.DONE
        logger.info(
            f"Due diligence for {context.company_name} complete: "
            f"{overall} ({recommendation.value})"
        )
        return report

    async def _synthesize(
        self,
        context: CompanyContext,
        overall: int,
        composites: Dict[str, float],
        records: Sequence[CategoryRecord],
    ) -> Dict[str, List[str]]:
        """Findings from one extraction call; any missing key takes its static default."""
        prompt = SYNTHESIS_PROMPT.format(
            company_name=context.company_name,
            overall_score=overall,
            composite_scores=to_prompt_json({k: round(v, 1) for k, v in composites.items()}),
            categories=to_prompt_json(
                {r.CATEGORY: {"is_default": r.is_default} for r in records}
            ),
        )
        data: Dict[str, Any] = {}
        try:
            result = await self.llm.try_extract(
                prompt,
                system_prompt=analyst_system_prompt(self.fund_name, self.focus_industry),
                max_tokens=800,
            )
            if result.ok:
                data = result.data
            else:
                logger.warning(f"Synthesis failed for {context.company_name}: {result.reason}")
        except Exception as e:
            logger.warning(f"Synthesis failed for {context.company_name}: {e}")

        return {
            key: str_list(data.get(key)) or list(default)
            for key, default in SYNTHESIS_KEYS.items()
        }

