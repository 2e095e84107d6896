"""
Unit tests for the portfolio monitor.
"""
import pytest
from unittest.mock import AsyncMock

from venture_eval.agentic.llm_client import ExtractionResult
from venture_eval.agents.portfolio_monitor import (
    AlertCategory,
    InsightType,
    MonitoringAlert,
    MonitoringMetrics,
    PortfolioCompany,
    PortfolioMonitor,
    Severity,
    competitive_alerts,
    financial_alerts,
    news_alerts,
    portfolio_insights,
    team_alerts,
)
from venture_eval.core.api_errors import RetryableError
from venture_eval.sources.exa.types import EvidenceItem

ACME = PortfolioCompany(id=1, name="Acme Pay", website="https://acmepay.com", industry="Fintech")


def _item(title, text=""):
    return EvidenceItem(title=title, url="https://news.example/" + title.replace(" ", "-"), text=text)


def _metrics(company_id, sentiment=0.0, competitive=0, product=0):
    return MonitoringMetrics(
        company_id=company_id,
        date="2026-10-19",
        sentiment=sentiment,
        competitive_activity=competitive,
        product_updates=product,
    )


# ============================================================================
# Keyword rules
# ============================================================================

class TestNewsAlerts:

    def test_regulatory_terms(self):
        alerts = news_alerts(ACME, [_item("Regulator opens investigation into Acme Pay")])

        assert [(a.category, a.severity) for a in alerts] == [(AlertCategory.REGULATORY, Severity.HIGH)]

    def test_fraud_is_critical(self):
        alerts = news_alerts(ACME, [_item("Acme Pay accused of fraud")])

        assert alerts[0].category == AlertCategory.NEWS
        assert alerts[0].severity == Severity.CRITICAL

    def test_breach_is_high(self):
        alerts = news_alerts(ACME, [_item("Data breach at Acme Pay")])
        assert alerts[0].severity == Severity.HIGH

    def test_partnership_is_low(self):
        alerts = news_alerts(ACME, [_item("Acme Pay announces partnership with a bank")])
        assert alerts[0].severity == Severity.LOW

    def test_only_first_three_items(self):
        items = [_item("nothing"), _item("nothing"), _item("nothing"), _item("bankruptcy filing")]
        assert news_alerts(ACME, items) == []


class TestOtherRules:

    def test_funding_and_ma(self):
        alerts = financial_alerts(ACME, [
            _item("Acme Pay closes Series B funding round"),
            _item("Acme Pay acquired by BigBank"),
        ])

        assert [(a.title, a.severity) for a in alerts] == [
            ("Funding Activity Detected", Severity.HIGH),
            ("M&A Activity Detected", Severity.CRITICAL),
        ]
        assert alerts[0].url.startswith("https://news.example/")
        assert alerts[0].id.startswith("financial_1_")

    def test_competitive_launch_excludes_own_news(self):
        alerts = competitive_alerts(ACME, [
            _item("Rival launches new payment API"),
            _item("Acme Pay launches card issuing"),
        ])

        assert len(alerts) == 1
        assert alerts[0].severity == Severity.MEDIUM

    def test_team_departure_and_appointment(self):
        alerts = team_alerts(ACME, [
            _item("Acme Pay CTO resigned"),
            _item("Acme Pay appointed new CEO"),
            _item("Other Co CEO leaves"),
        ])

        assert [(a.title, a.severity) for a in alerts] == [
            ("Leadership Departure", Severity.HIGH),
            ("Leadership Appointment", Severity.MEDIUM),
        ]


class TestInsights:

    def _funding_alert(self, company_id):
        return MonitoringAlert(
            id=f"a{company_id}",
            company_id=company_id,
            company_name="x",
            category=AlertCategory.FINANCIAL,
            severity=Severity.HIGH,
            title="Funding Activity Detected",
            description="",
            source="Financial Monitor",
        )

    def test_funding_trend(self):
        insights = portfolio_insights([self._funding_alert(1), self._funding_alert(2)], [])

        assert insights[0].type == InsightType.TREND
        assert insights[0].affected_companies == [1, 2]

    def test_negative_sentiment_risk(self):
        insights = portfolio_insights([], [_metrics(1, sentiment=-60), _metrics(2, sentiment=-10)])

        risk = [i for i in insights if i.title == "Negative Sentiment Trend"][0]
        assert risk.action_required
        assert risk.affected_companies == [1]

    def test_competitive_pressure_and_momentum(self):
        insights = portfolio_insights([], [
            _metrics(1, competitive=3),
            _metrics(2, sentiment=60, product=2),
        ])

        titles = {i.title: i for i in insights}
        assert titles["Increased Competitive Activity"].affected_companies == [1]
        assert titles["Positive Product Momentum"].type == InsightType.OPPORTUNITY

    def test_quiet_portfolio(self):
        assert portfolio_insights([], [_metrics(1)]) == []


# ============================================================================
# Monitor
# ============================================================================

class TestPortfolioMonitor:

    @pytest.fixture
    def companies(self, store):
        ids = [
            store.create_company("Acme Pay", website="https://acmepay.com", industry="Fintech").id,
            store.create_company("Ledgerly").id,
            store.create_company("Broken Co").id,
        ]
        store.commit()
        return ids

    @pytest.mark.asyncio
    async def test_one_failure_does_not_fail_batch(self, search_client, llm, store, companies):
        async def search(query):
            if query.text.startswith("Broken Co"):
                raise RetryableError("search down")
            if query.text.startswith("Acme Pay news"):
                return [_item("Acme Pay announces partnership and new product")]
            return []

        search_client.search = AsyncMock(side_effect=search)
        llm.try_extract = AsyncMock(return_value=ExtractionResult.success({"sentiment": 250}))
        monitor = PortfolioMonitor(search_client, llm, store)

        result = await monitor.monitor_portfolio(companies)

        assert sorted(m.company_id for m in result.metrics) == companies[:2]
        acme = [m for m in result.metrics if m.company_id == companies[0]][0]
        assert acme.news_volume == 1
        assert acme.sentiment == 100.0
        assert acme.product_updates == 1
        assert [a.title for a in result.alerts] == ["Partnership or Expansion"]

        stored = monitor.get_portfolio_alerts(companies)
        assert len(stored) == 1
        assert len(monitor.get_portfolio_metrics(companies)) == 2

    @pytest.mark.asyncio
    async def test_unknown_ids_skipped(self, search_client, llm, store, companies):
        monitor = PortfolioMonitor(search_client, llm, store)

        result = await monitor.monitor_portfolio([companies[1], 9999])

        assert [m.company_id for m in result.metrics] == [companies[1]]

    @pytest.mark.asyncio
    async def test_queries_use_window_and_exclude_own_domain(self, search_client, llm, store, companies):
        monitor = PortfolioMonitor(search_client, llm, store, window_days=7)

        await monitor.monitor_portfolio([companies[0]])

        queries = [c.args[0] for c in search_client.search.call_args_list]
        assert len(queries) == 4
        assert all(q.start_published_date for q in queries)
        assert queries[2].exclude_domains == ("acmepay.com",)
        assert queries[2].text.startswith("Fintech competitor")

    @pytest.mark.asyncio
    async def test_sentiment_zero_without_news_or_on_failure(self, search_client, llm, store):
        monitor = PortfolioMonitor(search_client, llm, store)

        assert await monitor.headline_sentiment(ACME, []) == 0.0
        llm.try_extract.assert_not_called()

        llm.try_extract = AsyncMock(side_effect=RuntimeError("boom"))
        assert await monitor.headline_sentiment(ACME, [_item("Acme news")]) == 0.0

    @pytest.mark.asyncio
    async def test_acknowledge_alert(self, search_client, llm, store, companies):
        search_client.search = AsyncMock(side_effect=lambda query: (
            [_item("Acme Pay fraud probe")] if query.text.startswith("Acme Pay news") else []
        ))
        monitor = PortfolioMonitor(search_client, llm, store)
        result = await monitor.monitor_portfolio([companies[0]])
        alert_id = result.alerts[0].id

        assert monitor.acknowledge_alert(alert_id) is True
        assert monitor.acknowledge_alert("missing") is False
        assert monitor.get_portfolio_alerts([companies[0]]) == []
        assert len(monitor.get_portfolio_alerts([companies[0]], include_acknowledged=True)) == 1

    @pytest.mark.asyncio
    async def test_severity_filter(self, search_client, llm, store, companies):
        search_client.search = AsyncMock(side_effect=lambda query: (
            [_item("Acme Pay fraud and partnership")] if query.text.startswith("Acme Pay news") else []
        ))
        monitor = PortfolioMonitor(search_client, llm, store)
        await monitor.monitor_portfolio([companies[0]])

        critical = monitor.get_portfolio_alerts([companies[0]], severity="critical")

        assert [a["severity"] for a in critical] == ["critical"]
