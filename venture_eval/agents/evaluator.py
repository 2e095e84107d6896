"""
Startup Evaluator.

The outer evaluation pipeline. Steps run strictly in sequence and report
progress to an optional observer:

    initialization 0, database-check 10, data-gathering 20, news-search 30,
    competitor-analysis 40, market-research 50, founder-research 60,
    database-update 65, ai-analysis 70, memo-generation 80,
    due-diligence 85, storing-results 90, comprehensive-dd 95,
    completed 100

Research helpers absorb their own failures, so evidence gaps show up as
lower data quality rather than errors. Anything unrecovered emits an
error event and raises EvaluationError.
"""

import logging
import re
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from venture_eval.agentic.llm_client import LLMClient
from venture_eval.agentic.prompts import (
    DD_QUESTIONS_PROMPT,
    MEMO_PROMPT,
    SCORE_PROMPT,
    analyst_system_prompt,
    flatten_dd_questions,
    to_prompt_json,
)
from venture_eval.agents import fields as f
from venture_eval.agents.due_diligence import DueDiligenceAggregator
from venture_eval.agents.types import (
    CompanyContext,
    DueDiligenceReport,
    InvestmentMemo,
    InvestmentScore,
    ProgressEvent,
    parse_recommendation,
    recommendation_for_score,
)
from venture_eval.core.config import Settings, get_settings
from venture_eval.core.models import Company, Evaluation, Founder, MarketInsight
from venture_eval.core.repository import EvaluationStore
from venture_eval.sources.exa.types import (
    CompanyProfile,
    EvidenceItem,
    FounderBackground,
    MarketData,
    NewsBundle,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressEvent], None]

MARKET_SIZE_PATTERN = re.compile(r"\$(\d+(?:\.\d+)?)\s*(?:billion|bn)", re.IGNORECASE)
GROWTH_RATE_PATTERN = re.compile(r"(\d+(?:\.\d+)?)\s*%.*?(?:growth|cagr)", re.IGNORECASE)

POSITIVE_TREND_TERMS = ("growth", "adoption", "innovation")
DOMAIN_EXPERIENCE_TERMS = ("fintech", "financial", "banking")


class EvaluationError(Exception):
    """Terminal pipeline failure at ``step``."""

    def __init__(self, step: str, message: str):
        self.step = step
        self.message = message
        super().__init__(f"Evaluation failed at {step}: {message}")


@dataclass
class EvaluationInput:
    company_name: str
    website: Optional[str] = None
    description: Optional[str] = None
    founder_names: List[str] = field(default_factory=list)


@dataclass
class EvaluationResult:
    company: Company
    evaluation: Evaluation
    founders: List[Founder]
    market_insight: MarketInsight
    score: InvestmentScore
    memo: InvestmentMemo
    processing_time_ms: int
    data_quality: str
    dd_report: Optional[DueDiligenceReport] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "company": self.company.to_dict(),
            "evaluation": self.evaluation.to_dict(),
            "founders": [fd.to_dict() for fd in self.founders],
            "market_insight": self.market_insight.to_dict(),
            "score": self.score.to_dict(),
            "memo": self.memo.to_dict(),
            "dd_report": self.dd_report.to_dict() if self.dd_report else None,
            "processing_time_ms": self.processing_time_ms,
            "data_quality": self.data_quality,
        }


# =============================================================================
# Pure helpers
# =============================================================================


def assess_data_quality(
    profile: CompanyProfile,
    news: NewsBundle,
    competitors: Sequence[EvidenceItem],
    founders: Sequence[FounderBackground],
) -> Tuple[int, str]:
    """
    Evidence checklist score (max 100) and its tier.

    >= 70 high, >= 40 medium, else low.
    """
    score = 0

    # Company info (25)
    for value in (
        profile.description,
        profile.website,
        profile.industry,
        profile.founded_year,
        profile.location,
    ):
        if value:
            score += 5

    # News (25)
    if news.recent_news:
        score += 10
    if news.press_releases:
        score += 10
    if news.industry_trends:
        score += 5

    # Competitors (25)
    if len(competitors) >= 3:
        score += 15
    elif competitors:
        score += 8
    if any(c.highlights for c in competitors):
        score += 10

    # Founders (25)
    if founders:
        score += 10
    if any(fd.experience for fd in founders):
        score += 15

    return score, data_quality_tier(score)


def data_quality_tier(score: int) -> str:
    if score >= 70:
        return "high"
    if score >= 40:
        return "medium"
    return "low"


def _market_text(market: MarketData) -> str:
    return to_prompt_json(f.to_jsonable(market)).lower()


def extract_market_size(market: MarketData) -> Optional[float]:
    """Market size in USD billions from the first "$N billion" mention."""
    match = MARKET_SIZE_PATTERN.search(_market_text(market))
    return float(match.group(1)) if match else None


def extract_growth_rate(market: MarketData) -> Optional[float]:
    match = GROWTH_RATE_PATTERN.search(_market_text(market))
    return float(match.group(1)) if match else None


def assess_market_timing(market: MarketData, news: NewsBundle) -> str:
    trends = market.key_trends
    if not trends and not news.recent_news:
        return "Insufficient data for timing assessment"

    positive = sum(
        1 for t in trends if any(term in t.lower() for term in POSITIVE_TREND_TERMS)
    )
    ratio = positive / len(trends) if trends else 0.0
    if ratio > 0.6:
        return "Favorable market timing with strong positive trends"
    if ratio > 0.3:
        return "Moderate market timing with mixed signals"
    return "Challenging market timing with limited positive indicators"


def has_domain_experience(background: FounderBackground) -> bool:
    return any(
        term in line.lower() for line in background.experience for term in DOMAIN_EXPERIENCE_TERMS
    )


def score_from_extraction(data: Dict[str, Any]) -> InvestmentScore:
    return InvestmentScore(
        overall_score=f.score(data.get("overall_score"), 0.0),
        team_score=f.score(data.get("team_score"), 0.0),
        market_score=f.score(data.get("market_score"), 0.0),
        product_score=f.score(data.get("product_score"), 0.0),
        traction_score=f.score(data.get("traction_score"), 0.0),
        competitive_advantage_score=f.score(data.get("competitive_advantage_score"), 0.0),
        business_model_score=f.score(data.get("business_model_score"), 0.0),
        meets_criteria=f.flag(data.get("meets_criteria"), False),
        strengths=f.str_list(data.get("strengths")),
        red_flags=f.str_list(data.get("red_flags")),
        reasoning=f.text(data.get("reasoning"), ""),
    )


def memo_from_extraction(data: Dict[str, Any], score: InvestmentScore) -> InvestmentMemo:
    """Memo sections; an invalid recommendation falls back to the quick score's tier."""
    recommendation = parse_recommendation(data.get("recommendation"))
    return InvestmentMemo(
        executive_summary=f.text(data.get("executive_summary"), ""),
        investment_thesis=f.text(data.get("investment_thesis"), ""),
        market_opportunity=f.text(data.get("market_opportunity"), ""),
        competitive_landscape=f.text(data.get("competitive_landscape"), ""),
        team_assessment=f.text(data.get("team_assessment"), ""),
        financial_projections=f.text(data.get("financial_projections"), ""),
        risks_and_mitigations=f.text(data.get("risks_and_mitigations"), ""),
        recommendation=recommendation or recommendation_for_score(score.overall_score),
        due_diligence_questions=f.str_list(data.get("due_diligence_questions")),
    )


# =============================================================================
# Orchestrator
# =============================================================================


class StartupEvaluator:
    """
    Sequential evaluation pipeline.

    Usage:
        evaluator = StartupEvaluator(exa, llm, EvaluationStore(db))
        result = await evaluator.evaluate(EvaluationInput("Acme Pay"))
    """

    def __init__(
        self,
        search_client,
        llm: LLMClient,
        store: EvaluationStore,
        aggregator: Optional[DueDiligenceAggregator] = None,
        settings: Optional[Settings] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ):
        self.search_client = search_client
        self.llm = llm
        self.store = store
        self.settings = settings or get_settings()
        self.aggregator = aggregator or DueDiligenceAggregator(
            search_client,
            llm,
            fund_name=self.settings.fund_name,
            focus_industry=self.settings.focus_industry,
        )
        self.progress_callback = progress_callback
        self._step = "initialization"

    def _emit(
        self,
        step: str,
        progress: int,
        message: str,
        completed: bool = False,
        error: Optional[str] = None,
    ) -> None:
        self._step = step
        if step != "error":
            logger.info(f"[{step}] {message}")
        if self.progress_callback:
            self.progress_callback(
                ProgressEvent(step=step, progress=progress, message=message, completed=completed, error=error)
            )

    def _system_prompt(self) -> str:
        return analyst_system_prompt(self.settings.fund_name, self.settings.focus_industry)

    async def evaluate(self, request: EvaluationInput) -> EvaluationResult:
        started = time.monotonic()
        self._step = "initialization"
        try:
            result = await self._run(request, started)
        except Exception as e:
            failed_step = self._step
            message = str(e) or type(e).__name__
            logger.error(f"Evaluation of {request.company_name} failed at {failed_step}: {message}")
            self.store.rollback()
            self._emit("error", 0, f"Evaluation failed: {message}", completed=False, error=message)
            raise EvaluationError(failed_step, message) from e
        return result

    async def _run(self, request: EvaluationInput, started: float) -> EvaluationResult:
        name = request.company_name.strip()
        self._emit("initialization", 0, "Starting evaluation process...")

        self._emit("database-check", 10, "Checking existing records...")
        company = self.store.find_company_by_name(name)

        self._emit("data-gathering", 20, "Gathering company information...")
        profile = await self.search_client.search_company_info(name)

        self._emit("news-search", 30, "Searching recent news and updates...")
        news = await self.search_client.search_recent_news(name)

        industry = profile.industry or self.settings.focus_industry

        self._emit("competitor-analysis", 40, "Analyzing competitive landscape...")
        competitors = await self.search_client.search_competitors(name, industry)

        self._emit("market-research", 50, "Researching market trends...")
        market = await self.search_client.search_market_data(industry)

        self._emit("founder-research", 60, "Researching founder backgrounds...")
        backgrounds: List[FounderBackground] = []
        for founder_name in request.founder_names:
            backgrounds.append(
                await self.search_client.search_founder_background(founder_name, name)
            )

        self._emit("database-update", 65, "Updating company records...")
        company = self._upsert_company(company, name, request, profile)
        founders = [
            self.store.create_founder(
                company.id,
                bg.name,
                background="; ".join(bg.experience[:3]) or None,
                previous_companies=bg.previous_companies,
                education=bg.education,
                domain_experience=has_domain_experience(bg),
            )
            for bg in backgrounds
        ]

        evidence = self._evidence_summary(profile, news, competitors, market, backgrounds)

        self._emit("ai-analysis", 70, "Running AI analysis...")
        score = score_from_extraction(
            await self.llm.extract(
                SCORE_PROMPT.format(
                    company_name=name,
                    fund_name=self.settings.fund_name,
                    industry=self.settings.focus_industry,
                    data=evidence,
                ),
                system_prompt=self._system_prompt(),
                max_tokens=400,
                temperature=0.3,
            )
        )

        self._emit("memo-generation", 80, "Generating investment memo...")
        memo = memo_from_extraction(
            await self.llm.extract(
                MEMO_PROMPT.format(
                    company_name=name,
                    fund_name=self.settings.fund_name,
                    score=to_prompt_json(score.to_dict()),
                    data=evidence,
                ),
                system_prompt=self._system_prompt(),
                max_tokens=3000,
                temperature=0.4,
            ),
            score,
        )

        self._emit("due-diligence", 85, "Creating due diligence questions...")
        questions = await self._due_diligence_questions(name, industry, profile, memo)

        self._emit("storing-results", 90, "Storing evaluation results...")
        _, quality_tier = assess_data_quality(profile, news, competitors, backgrounds)
        evaluation = self.store.create_evaluation(
            company.id,
            overall_score=score.overall_score,
            team_score=score.team_score,
            market_score=score.market_score,
            product_score=score.product_score,
            traction_score=score.traction_score,
            competitive_advantage_score=score.competitive_advantage_score,
            business_model_score=score.business_model_score,
            meets_criteria=score.meets_criteria,
            strengths=score.strengths,
            red_flags=score.red_flags,
            reasoning=score.reasoning,
            investment_memo=memo.full_text(),
            recommendation=memo.recommendation.value,
            due_diligence_questions=questions,
            data_quality=quality_tier,
        )
        market_insight = self.store.create_market_insight(
            industry,
            company_id=company.id,
            market_size_billion=extract_market_size(market),
            growth_rate_percent=extract_growth_rate(market),
            key_trends=market.key_trends,
            competitive_landscape={
                "competitors": [c.to_prompt_dict(max_text=300) for c in competitors[:5]],
                "analysis": memo.competitive_landscape,
            },
            regulatory_environment=market.regulatory_environment,
            timing_assessment=assess_market_timing(market, news),
        )

        dd_report = None
        if score.overall_score >= self.settings.dd_score_threshold:
            self._emit("comprehensive-dd", 95, "Generating comprehensive due diligence report...")
            dd_report = await self.aggregator.generate_report(
                CompanyContext(
                    company_name=name,
                    website=request.website or profile.website,
                    industry=profile.industry,
                    description=request.description or profile.description,
                    founded_year=profile.founded_year,
                )
            )
            self.store.attach_dd_report(evaluation, dd_report.to_dict())

        self.store.commit()
        processing_ms = int((time.monotonic() - started) * 1000)
        self._emit("completed", 100, "Evaluation completed successfully!", completed=True)

        return EvaluationResult(
            company=company,
            evaluation=evaluation,
            founders=founders,
            market_insight=market_insight,
            score=score,
            memo=memo,
            processing_time_ms=processing_ms,
            data_quality=quality_tier,
            dd_report=dd_report,
        )

    def _upsert_company(
        self,
        company: Optional[Company],
        name: str,
        request: EvaluationInput,
        profile: CompanyProfile,
    ) -> Company:
        found = {
            "website": request.website or profile.website,
            "description": request.description or profile.description,
            "industry": profile.industry,
            "founded_year": profile.founded_year,
            "employee_count": profile.employee_count_number(),
            "location": profile.location,
        }
        if company is None:
            return self.store.create_company(name, **found)
        return self.store.fill_company(company, **found)

    def _evidence_summary(
        self,
        profile: CompanyProfile,
        news: NewsBundle,
        competitors: Sequence[EvidenceItem],
        market: MarketData,
        backgrounds: Sequence[FounderBackground],
    ) -> str:
        return to_prompt_json({
            "company_info": f.to_jsonable(profile),
            "recent_news": [n.title for n in news.recent_news[:5]],
            "press_releases": [p.title for p in news.press_releases[:3]],
            "competitors": [c.to_prompt_dict(max_text=300) for c in competitors[:3]],
            "market": {
                "key_trends": market.key_trends,
                "regulatory_environment": (market.regulatory_environment or "")[:500],
            },
            "founders": [f.to_jsonable(bg) for bg in backgrounds],
        })

    async def _due_diligence_questions(
        self,
        name: str,
        industry: str,
        profile: CompanyProfile,
        memo: InvestmentMemo,
    ) -> List[str]:
        """Six-category questions; the memo's own questions when extraction fails."""
        result = await self.llm.try_extract(
            DD_QUESTIONS_PROMPT.format(
                company_name=name,
                industry=industry,
                data=to_prompt_json(f.to_jsonable(profile)),
            ),
            system_prompt=self._system_prompt(),
            max_tokens=1000,
            temperature=0.4,
        )
        if result.ok:
            questions = flatten_dd_questions(result.data)
            if questions:
                return questions
        else:
            logger.warning(f"Due diligence questions failed for {name}: {result.reason}")
        return list(memo.due_diligence_questions)

    # =========================================================================
    # Read helpers
    # =========================================================================

    def _with_company(self, evaluation: Evaluation) -> Dict[str, Any]:
        data = evaluation.to_dict()
        company = self.store.get_company(evaluation.company_id)
        data["company"] = company.to_dict() if company else None
        return data

    def get_evaluation(self, evaluation_id: int) -> Optional[Dict[str, Any]]:
        evaluation = self.store.get_evaluation(evaluation_id)
        return self._with_company(evaluation) if evaluation else None

    def get_recent_evaluations(self, limit: int = 10) -> List[Dict[str, Any]]:
        return [self._with_company(e) for e in self.store.list_recent_evaluations(limit)]

    def get_high_score_evaluations(self, min_score: float = 70, limit: int = 20) -> List[Dict[str, Any]]:
        return [
            self._with_company(e)
            for e in self.store.list_high_score_evaluations(min_score, limit)
        ]

    def get_company_evaluations(self, company_id: int) -> List[Dict[str, Any]]:
        return [e.to_dict() for e in self.store.list_company_evaluations(company_id)]
