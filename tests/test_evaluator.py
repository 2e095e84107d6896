"""
Unit tests for the startup evaluation pipeline.

Search and LLM providers are mocked; persistence runs on in-memory SQLite.
"""
import pytest
from unittest.mock import AsyncMock, MagicMock

from venture_eval.agentic.llm_client import ExtractionResult
from venture_eval.agents.evaluator import (
    EvaluationError,
    EvaluationInput,
    StartupEvaluator,
    assess_data_quality,
    assess_market_timing,
    data_quality_tier,
    extract_growth_rate,
    extract_market_size,
    has_domain_experience,
    memo_from_extraction,
    score_from_extraction,
)
from venture_eval.agents.types import InvestmentScore, Recommendation
from venture_eval.core.api_errors import ConfigurationError, RetryableError
from venture_eval.core.config import Settings
from venture_eval.sources.exa.types import (
    CompanyProfile,
    EvidenceItem,
    FounderBackground,
    MarketData,
    NewsBundle,
)

MEMO = {
    "executive_summary": "Acme Pay builds B2B payment rails.",
    "investment_thesis": "Infrastructure play.",
    "market_opportunity": "Large.",
    "competitive_landscape": "Crowded but differentiated.",
    "team_assessment": "Strong.",
    "financial_projections": "Tripling ARR.",
    "risks_and_mitigations": "Regulatory.",
    "recommendation": "consider",
    "due_diligence_questions": ["What is churn?"],
}


def _item(title, text="", highlights=()):
    return EvidenceItem(title=title, url=f"https://example.com/{title}", text=text, highlights=highlights)


def _score(overall):
    return {
        "overall_score": overall,
        "team_score": 70,
        "market_score": 65,
        "product_score": 60,
        "traction_score": 55,
        "competitive_advantage_score": 50,
        "business_model_score": 62,
        "meets_criteria": overall >= 60,
        "strengths": ["B2B focus"],
        "red_flags": ["Early revenue"],
        "reasoning": "Solid team.",
    }


@pytest.fixture
def settings(clean_env):
    return Settings(_env_file=None)


@pytest.fixture
def aggregator():
    agg = MagicMock()
    report = MagicMock()
    report.to_dict.return_value = {"report_id": "dd_test", "overall_score": 51}
    agg.generate_report = AsyncMock(return_value=report)
    return agg


@pytest.fixture
def events():
    return []


@pytest.fixture
def evaluator(search_client, llm, store, aggregator, settings, events):
    return StartupEvaluator(
        search_client,
        llm,
        store,
        aggregator=aggregator,
        settings=settings,
        progress_callback=events.append,
    )


# ============================================================================
# Pipeline
# ============================================================================

class TestEvaluatePipeline:

    @pytest.mark.asyncio
    async def test_threshold_score_runs_due_diligence(self, evaluator, llm, aggregator, store, events):
        llm.extract = AsyncMock(side_effect=[_score(60), MEMO])

        result = await evaluator.evaluate(EvaluationInput(company_name="  Acme Pay "))

        aggregator.generate_report.assert_awaited_once()
        context = aggregator.generate_report.call_args.args[0]
        assert context.company_name == "Acme Pay"
        assert result.evaluation.dd_report == {"report_id": "dd_test", "overall_score": 51}
        assert [e.step for e in events][-2:] == ["comprehensive-dd", "completed"]
        assert events[-1].progress == 100
        assert events[-1].completed

        stored = store.get_evaluation(result.evaluation.id)
        assert stored.overall_score == 60
        assert stored.recommendation == "CONSIDER"

    @pytest.mark.asyncio
    async def test_below_threshold_skips_due_diligence(self, evaluator, llm, aggregator, events):
        llm.extract = AsyncMock(side_effect=[_score(59), MEMO])

        result = await evaluator.evaluate(EvaluationInput(company_name="Acme Pay"))

        aggregator.generate_report.assert_not_called()
        assert result.dd_report is None
        assert result.evaluation.dd_report is None
        assert "comprehensive-dd" not in [e.step for e in events]

    @pytest.mark.asyncio
    async def test_progress_sequence(self, evaluator, llm, events):
        llm.extract = AsyncMock(side_effect=[_score(40), MEMO])

        await evaluator.evaluate(EvaluationInput(company_name="Acme Pay"))

        assert [(e.step, e.progress) for e in events] == [
            ("initialization", 0),
            ("database-check", 10),
            ("data-gathering", 20),
            ("news-search", 30),
            ("competitor-analysis", 40),
            ("market-research", 50),
            ("founder-research", 60),
            ("database-update", 65),
            ("ai-analysis", 70),
            ("memo-generation", 80),
            ("due-diligence", 85),
            ("storing-results", 90),
            ("completed", 100),
        ]

    @pytest.mark.asyncio
    async def test_persists_company_founders_and_market_insight(self, evaluator, llm, search_client, store):
        llm.extract = AsyncMock(side_effect=[_score(40), MEMO])
        search_client.search_founder_background = AsyncMock(
            side_effect=lambda founder, company: FounderBackground(
                name=founder, experience=["Former VP at a banking startup"]
            )
        )
        search_client.search_market_data = AsyncMock(return_value=MarketData(
            key_trends=["Embedded finance will reach $45.5 billion", "Growing at 23% CAGR"],
        ))

        result = await evaluator.evaluate(
            EvaluationInput(company_name="Acme Pay", website="https://acmepay.com", founder_names=["Jane Doe"])
        )

        assert result.company.website == "https://acmepay.com"
        assert [f.name for f in store.get_founders(result.company.id)] == ["Jane Doe"]
        assert result.founders[0].domain_experience is True
        assert result.market_insight.industry == "fintech"
        assert result.market_insight.market_size_billion == 45.5
        assert result.market_insight.growth_rate_percent == 23.0
        assert result.data_quality == "low"

    @pytest.mark.asyncio
    async def test_existing_company_reused_and_filled(self, evaluator, llm, store, search_client):
        existing = store.create_company("Acme Pay Inc", website="https://acme.example")
        store.commit()
        search_client.search_company_info = AsyncMock(return_value=CompanyProfile(
            name="Acme Pay", website="https://other.example", location="Toronto"
        ))
        llm.extract = AsyncMock(side_effect=[_score(40), MEMO])

        result = await evaluator.evaluate(EvaluationInput(company_name="acme pay"))

        assert result.company.id == existing.id
        assert result.company.website == "https://acme.example"
        assert result.company.location == "Toronto"

    @pytest.mark.asyncio
    async def test_dd_questions_flattened(self, evaluator, llm):
        llm.extract = AsyncMock(side_effect=[_score(40), MEMO])
        llm.try_extract = AsyncMock(return_value=ExtractionResult.success({
            "technical": ["t1"],
            "business": ["b1"],
            "financial": ["f1"],
            "legal": [],
            "market": ["m1"],
            "team": ["p1"],
        }))

        result = await evaluator.evaluate(EvaluationInput(company_name="Acme Pay"))

        assert result.evaluation.due_diligence_questions == ["t1", "b1", "f1", "m1", "p1"]

    @pytest.mark.asyncio
    async def test_dd_questions_fall_back_to_memo(self, evaluator, llm):
        llm.extract = AsyncMock(side_effect=[_score(40), MEMO])

        result = await evaluator.evaluate(EvaluationInput(company_name="Acme Pay"))

        assert result.evaluation.due_diligence_questions == ["What is churn?"]

    @pytest.mark.asyncio
    async def test_result_serialises(self, evaluator, llm):
        llm.extract = AsyncMock(side_effect=[_score(40), MEMO])

        data = (await evaluator.evaluate(EvaluationInput(company_name="Acme Pay"))).to_dict()

        assert data["company"]["name"] == "Acme Pay"
        assert data["memo"]["recommendation"] == "CONSIDER"
        assert data["dd_report"] is None
        assert data["processing_time_ms"] >= 0


class TestEvaluateFailures:

    @pytest.mark.asyncio
    async def test_quick_score_failure_emits_error_and_raises(self, evaluator, llm, store, events):
        llm.extract = AsyncMock(side_effect=RetryableError("model down"))

        with pytest.raises(EvaluationError) as exc_info:
            await evaluator.evaluate(EvaluationInput(company_name="Acme Pay"))

        assert exc_info.value.step == "ai-analysis"
        assert "model down" in exc_info.value.message
        assert events[-1].step == "error"
        assert events[-1].progress == 0
        assert events[-1].error
        assert not events[-1].completed
        # Nothing from the failed run is kept
        assert store.find_company_by_name("Acme Pay") is None

    @pytest.mark.asyncio
    async def test_configuration_error_is_the_cause(self, evaluator, llm):
        llm.extract = AsyncMock(side_effect=ConfigurationError("no key", missing_config="OPENAI_API_KEY"))

        with pytest.raises(EvaluationError) as exc_info:
            await evaluator.evaluate(EvaluationInput(company_name="Acme Pay"))

        assert isinstance(exc_info.value.__cause__, ConfigurationError)

    @pytest.mark.asyncio
    async def test_memo_failure_names_memo_step(self, evaluator, llm):
        llm.extract = AsyncMock(side_effect=[_score(70), RetryableError("timeout")])

        with pytest.raises(EvaluationError) as exc_info:
            await evaluator.evaluate(EvaluationInput(company_name="Acme Pay"))

        assert exc_info.value.step == "memo-generation"


class TestReadHelpers:

    @pytest.mark.asyncio
    async def test_recent_and_high_score(self, evaluator, llm):
        llm.extract = AsyncMock(side_effect=[_score(40), MEMO, _score(80), MEMO])
        await evaluator.evaluate(EvaluationInput(company_name="Low Co"))
        await evaluator.evaluate(EvaluationInput(company_name="High Co"))

        recent = evaluator.get_recent_evaluations()
        high = evaluator.get_high_score_evaluations(min_score=70)

        assert [e["company"]["name"] for e in recent] == ["High Co", "Low Co"]
        assert [e["company"]["name"] for e in high] == ["High Co"]
        assert evaluator.get_evaluation(999) is None


# ============================================================================
# Pure helpers
# ============================================================================

class TestDataQuality:

    def test_full_checklist_is_high(self):
        profile = CompanyProfile(
            name="Acme", description="d", website="w", industry="Fintech", founded_year=2020, location="NYC"
        )
        news = NewsBundle(recent_news=[_item("n")], press_releases=[_item("p")])
        competitors = [_item("a"), _item("b"), _item("c")]
        founders = [FounderBackground(name="Jane")]

        score, tier = assess_data_quality(profile, news, competitors, founders)

        # 25 company + 20 news + 15 competitors + 10 founders
        assert score == 70
        assert tier == "high"

    def test_nothing_found_is_low(self):
        assert assess_data_quality(CompanyProfile(name="Acme"), NewsBundle(), [], []) == (0, "low")

    @pytest.mark.parametrize("score,tier", [(70, "high"), (69, "medium"), (40, "medium"), (39, "low")])
    def test_tiers(self, score, tier):
        assert data_quality_tier(score) == tier


class TestMarketSignals:

    def test_market_size_and_growth(self):
        market = MarketData(key_trends=["Market worth $12 bn today", "Expanding 18.5% annual growth"])

        assert extract_market_size(market) == 12.0
        assert extract_growth_rate(market) == 18.5

    def test_no_figures(self):
        market = MarketData(key_trends=["Open banking adoption"])

        assert extract_market_size(market) is None
        assert extract_growth_rate(market) is None

    def test_timing_favorable(self):
        market = MarketData(key_trends=["AI adoption", "Rapid growth", "Innovation hubs"])
        assert assess_market_timing(market, NewsBundle()).startswith("Favorable")

    def test_timing_moderate(self):
        market = MarketData(key_trends=["AI adoption", "New rules"])
        assert assess_market_timing(market, NewsBundle()).startswith("Moderate")

    def test_timing_news_without_trends(self):
        news = NewsBundle(recent_news=[_item("n")])
        assert assess_market_timing(MarketData(), news).startswith("Challenging")

    def test_timing_no_data(self):
        assert assess_market_timing(MarketData(), NewsBundle()) == "Insufficient data for timing assessment"

    def test_domain_experience(self):
        assert has_domain_experience(FounderBackground(name="J", experience=["Ex-Banking lead"]))
        assert not has_domain_experience(FounderBackground(name="J", experience=["Chef"]))


class TestExtractionMapping:

    def test_score_clamped(self):
        score = score_from_extraction({"overall_score": 120, "team_score": "75", "meets_criteria": "yes"})

        assert score.overall_score == 100.0
        assert score.team_score == 75.0
        assert score.meets_criteria is False

    def test_memo_invalid_recommendation_uses_score_tier(self):
        memo = memo_from_extraction({"recommendation": "BUY NOW"}, InvestmentScore(overall_score=78))

        assert memo.recommendation == Recommendation.STRONG_CONSIDER

    def test_memo_full_text(self):
        memo = memo_from_extraction(MEMO, InvestmentScore())

        assert memo.full_text().startswith("Acme Pay builds B2B payment rails.\n\nInfrastructure play.")
