"""
Unit tests for the due diligence category collectors.
"""
import pytest
from unittest.mock import AsyncMock

from venture_eval.agentic.llm_client import ExtractionResult
from venture_eval.agents.collectors import (
    FinancialCollector,
    LegalCollector,
    MarketCollector,
    TeamCollector,
    TechnicalCollector,
    build_collectors,
)
from venture_eval.agents.types import (
    CompanyContext,
    FinancialHealth,
    Level,
    MarketValidation,
    TechnicalDiligence,
    Trend,
)
from venture_eval.core.api_errors import ConfigurationError, RetryableError
from venture_eval.sources.exa.types import EvidenceItem


CONTEXT = CompanyContext(company_name="Acme Pay", industry="Fintech")


def _items(n):
    return [
        EvidenceItem(title=f"Result {i}", url=f"https://example.com/{i}", text="x" * 800)
        for i in range(n)
    ]


# ============================================================================
# Failure handling
# ============================================================================

class TestCollectorFailures:

    @pytest.mark.asyncio
    async def test_search_failure_returns_default(self, search_client, llm):
        search_client.search = AsyncMock(side_effect=RetryableError("down", source="exa"))

        record = await FinancialCollector(search_client, llm).collect(CONTEXT)

        assert isinstance(record, FinancialHealth)
        assert record.is_default
        assert "RetryableError" in record.failure_reason
        assert record.burn_rate.runway_months == 12.0
        llm.try_extract.assert_not_called()

    @pytest.mark.asyncio
    async def test_extraction_failure_returns_default(self, search_client, llm):
        search_client.search = AsyncMock(return_value=_items(2))
        llm.try_extract = AsyncMock(return_value=ExtractionResult.failure("parse: bad"))

        record = await MarketCollector(search_client, llm).collect(CONTEXT)

        assert isinstance(record, MarketValidation)
        assert record.is_default
        assert record.failure_reason == "extraction: parse: bad"
        assert record.penetration.tam == 1_000_000_000.0

    @pytest.mark.asyncio
    async def test_configuration_error_absorbed(self, search_client, llm):
        search_client.search = AsyncMock(return_value=_items(1))
        llm.try_extract = AsyncMock(side_effect=ConfigurationError("no key", missing_config="OPENAI_API_KEY"))

        record = await TeamCollector(search_client, llm).collect(CONTEXT)

        assert record.is_default
        assert record.failure_reason.startswith("ConfigurationError")

    @pytest.mark.asyncio
    async def test_every_collector_survives_total_failure(self, search_client, llm):
        search_client.search = AsyncMock(side_effect=RuntimeError("network down"))

        records = [await c.collect(CONTEXT) for c in build_collectors(search_client, llm)]

        assert [r.CATEGORY for r in records] == ["financial", "legal", "technical", "market", "team"]
        assert all(r.is_default for r in records)


# ============================================================================
# Query and prompt
# ============================================================================

class TestCollectorRequests:

    @pytest.mark.asyncio
    async def test_query_and_prompt_evidence(self, search_client, llm):
        search_client.search = AsyncMock(return_value=_items(5))
        llm.try_extract = AsyncMock(return_value=ExtractionResult.success({}))

        await LegalCollector(search_client, llm).collect(CONTEXT)

        query = search_client.search.call_args.args[0]
        assert query.text.startswith("Acme Pay legal compliance")
        assert query.num_results == 5
        assert "uspto.gov" in query.include_domains

        prompt = llm.try_extract.call_args.args[0]
        assert "Result 2" in prompt
        assert "Result 3" not in prompt
        assert "x" * 501 not in prompt
        assert llm.try_extract.call_args.kwargs["max_tokens"] == 1500


# ============================================================================
# Mapping
# ============================================================================

class TestFinancialMapping:

    def test_absent_fields_take_defaults(self, search_client, llm):
        record = FinancialCollector(search_client, llm).map_record({"mrr": 50000})

        assert not record.is_default
        assert record.revenue.mrr == 50000.0
        assert record.revenue.arr is None
        assert record.burn_rate.runway_months == 12.0
        assert record.unit_economics.profitability_score == 40.0

    def test_zero_is_a_real_value(self, search_client, llm):
        record = FinancialCollector(search_client, llm).map_record(
            {"runway_months": 0, "profitability_score": 0}
        )

        assert record.burn_rate.runway_months == 0.0
        assert record.unit_economics.profitability_score == 0.0

    def test_clamping_and_coercion(self, search_client, llm):
        record = FinancialCollector(search_client, llm).map_record({
            "burn_rate": -5,
            "burn_confidence": 140,
            "burn_trend": "Increasing",
            "total_raised": "$1,500,000",
            "lead_investors": ["Sequoia", "", 3],
        })

        assert record.burn_rate.monthly == 0.0
        assert record.burn_rate.confidence == 100.0
        assert record.burn_rate.trend == Trend.INCREASING
        assert record.funding.total_raised == 1_500_000.0
        assert record.funding.lead_investors == ["Sequoia"]

    def test_invalid_enum_falls_back(self, search_client, llm):
        record = FinancialCollector(search_client, llm).map_record({"burn_trend": "sideways"})
        assert record.burn_rate.trend == Trend.STABLE


class TestOtherMappings:

    def test_legal_nested_sections(self, search_client, llm):
        record = LegalCollector(search_client, llm).map_record({
            "compliance_score": 85,
            "governance": {"board_size": 7, "committees": ["audit"]},
            "customer_contracts": {"risk_score": 20},
            "contract_risk": "LOW",
            "litigation_risk": 10,
        })

        assert record.regulatory.compliance_score == 85.0
        assert record.corporate.governance.board_size == 7
        assert record.corporate.governance.independent_directors == 2
        assert record.corporate.governance.committees == ["audit"]
        assert record.contracts.customer_agreements.risk_score == 20.0
        assert record.contracts.supplier_agreements.risk_score == 50.0
        assert record.contracts.risk_level == Level.LOW
        assert record.litigation.risk_score == 10.0

    def test_technical_mapping(self, search_client, llm):
        record = TechnicalCollector(search_client, llm).map_record({
            "scalability_score": 90,
            "technical_debt": "high",
            "data_protection": {"encryption": 95},
            "dev_team_size": 12,
            "dependencies": [{"name": "stripe", "type": "critical"}, "junk"],
        })

        assert isinstance(record, TechnicalDiligence)
        assert record.architecture.scalability_score == 90.0
        assert record.architecture.security_score == 60.0
        assert record.architecture.technical_debt == Level.HIGH
        assert record.security.data_protection.encryption == 95.0
        assert record.security.data_protection.gdpr_compliance == 70.0
        assert record.development.team_size == 12
        assert record.integration.third_party_dependencies == [{"name": "stripe", "type": "critical"}]

    def test_team_mapping(self, search_client, llm):
        record = TeamCollector(search_client, llm).map_record({
            "founders": [{"name": "Jane Doe", "role": "CEO"}],
            "experience_score": 80,
            "compensation": {"retention_packages": False},
        })

        assert record.founders == [{"name": "Jane Doe", "role": "CEO"}]
        assert record.team_score.experience_score == 80.0
        assert record.team_score.domain_expertise == 60.0
        assert record.hiring.compensation.retention_packages is False
        assert record.hiring.compensation.performance_incentives is True


class TestNonFiniteValues:

    @pytest.mark.parametrize("value", ["NaN", "nan", "inf", "-Infinity", float("nan"), float("inf")])
    def test_score_takes_default(self, search_client, llm, value):
        record = FinancialCollector(search_client, llm).map_record(
            {"profitability_score": value, "burn_rate": value}
        )

        assert record.unit_economics.profitability_score == 40.0
        assert record.burn_rate.monthly == 0.0

    def test_optional_number_stays_absent(self, search_client, llm):
        record = FinancialCollector(search_client, llm).map_record({"mrr": float("nan"), "arr": "inf"})

        assert record.revenue.mrr is None
        assert record.revenue.arr is None

    def test_integer_field_takes_default(self, search_client, llm):
        record = LegalCollector(search_client, llm).map_record(
            {"compliance_score": 90, "governance": {"board_size": "inf"}}
        )

        assert record.corporate.governance.board_size == 5
        assert record.regulatory.compliance_score == 90.0

    @pytest.mark.asyncio
    async def test_bad_field_keeps_rest_of_record(self, search_client, llm):
        search_client.search = AsyncMock(return_value=_items(3))
        llm.try_extract = AsyncMock(return_value=ExtractionResult.success(
            {"compliance_score": 90, "governance": {"board_size": float("nan")}}
        ))

        record = await LegalCollector(search_client, llm).collect(CONTEXT)

        assert not record.is_default
        assert record.regulatory.compliance_score == 90.0
        assert record.corporate.governance.board_size == 5
