"""
Unit tests for the Exa client.

HTTP is served by httpx.MockTransport; no network access.
"""
import asyncio
import json
from datetime import date

import httpx
import pytest
from unittest.mock import AsyncMock, patch

from venture_eval.core.api_errors import (
    AuthenticationError,
    ConfigurationError,
    RateLimitError,
    RetryableError,
)
from venture_eval.sources.exa.client import ExaClient
from venture_eval.sources.exa.parsers import collect_highlights, parse_company_profile
from venture_eval.sources.exa.types import CompanyProfile, EvidenceItem, EvidenceQuery


def _result(title, url="https://example.com/a", text="", highlights=()):
    return {
        "title": title,
        "url": url,
        "text": text,
        "highlights": list(highlights),
        "publishedDate": "2026-01-02",
    }


def make_client(handler, **kwargs) -> ExaClient:
    kwargs.setdefault("api_key", "test-key")
    kwargs.setdefault("min_interval", 0)
    kwargs.setdefault("throttle_cooldown", 0)
    client = ExaClient(**kwargs)
    client._client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return client


# ============================================================================
# Query Tests
# ============================================================================

class TestEvidenceQuery:

    def test_payload_defaults(self):
        payload = EvidenceQuery("acme payments").to_payload()

        assert payload["query"] == "acme payments"
        assert payload["type"] == "neural"
        assert payload["numResults"] == 3
        assert payload["contents"]["highlights"] == {"numSentences": 3, "highlightsPerUrl": 3}
        assert "includeDomains" not in payload
        assert "startPublishedDate" not in payload

    def test_within_days_bounded(self):
        query = EvidenceQuery.within_days("x", 30, today=date(2026, 3, 31))
        payload = query.to_payload()

        assert payload["startPublishedDate"] == "2026-03-01"
        assert payload["endPublishedDate"] == "2026-03-31"

    def test_within_days_open_ended(self):
        query = EvidenceQuery.within_days("x", 7, bounded=False, today=date(2026, 3, 31))

        assert query.start_published_date == "2026-03-24"
        assert query.end_published_date is None

    def test_domains_serialised(self):
        payload = EvidenceQuery(
            "x", include_domains=("a.com",), exclude_domains=("b.com",)
        ).to_payload()

        assert payload["includeDomains"] == ["a.com"]
        assert payload["excludeDomains"] == ["b.com"]


# ============================================================================
# Client Tests
# ============================================================================

class TestExaSearch:

    @pytest.mark.asyncio
    async def test_search_parses_results(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"results": [
                _result("Acme raises Series A", highlights=("Acme raised $10M",)),
                "not-a-dict",
            ]})

        client = make_client(handler)
        items = await client.search(EvidenceQuery("acme funding", num_results=5))
        await client.close()

        assert seen["auth"] == "Bearer test-key"
        assert seen["body"]["numResults"] == 5
        assert len(items) == 1
        assert items[0].title == "Acme raises Series A"
        assert items[0].highlights == ("Acme raised $10M",)
        assert items[0].published_date == "2026-01-02"

    @pytest.mark.asyncio
    async def test_missing_key_raises_configuration_error(self):
        handler = AsyncMock()
        client = make_client(handler, api_key=None)

        with pytest.raises(ConfigurationError):
            await client.search(EvidenceQuery("x"))
        handler.assert_not_called()

    @pytest.mark.asyncio
    async def test_throttled_request_retried_once(self):
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) == 1:
                return httpx.Response(429, text="slow down")
            return httpx.Response(200, json={"results": [_result("ok")]})

        client = make_client(handler)
        items = await client.search(EvidenceQuery("x"))

        assert len(calls) == 2
        assert items[0].title == "ok"

    @pytest.mark.asyncio
    async def test_throttled_twice_raises(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(429, text="slow down")

        client = make_client(handler)
        with pytest.raises(RateLimitError):
            await client.search(EvidenceQuery("x"))
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_other_errors_not_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(401, text="bad key")

        client = make_client(handler)
        with pytest.raises(AuthenticationError):
            await client.search(EvidenceQuery("x"))
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_invalid_json_is_retryable_error(self):
        client = make_client(lambda request: httpx.Response(200, text="<html>"))

        with pytest.raises(RetryableError):
            await client.search(EvidenceQuery("x"))

    @pytest.mark.asyncio
    async def test_requests_are_spaced(self):
        client = make_client(
            lambda request: httpx.Response(200, json={"results": []}), min_interval=0.05
        )
        loop = asyncio.get_running_loop()

        start = loop.time()
        await asyncio.gather(*(client.search(EvidenceQuery(f"q{i}")) for i in range(3)))
        elapsed = loop.time() - start

        assert elapsed >= 0.09
        assert client.get_request_stats()["request_count"] == 3


class TestResearchHelpers:

    @pytest.mark.asyncio
    async def test_company_info_absorbs_provider_failure(self):
        client = make_client(lambda request: httpx.Response(500, text="down"))

        profile = await client.search_company_info("Acme Pay")

        assert profile == CompanyProfile(name="Acme Pay")

    @pytest.mark.asyncio
    async def test_helpers_propagate_missing_key(self):
        client = make_client(lambda request: httpx.Response(200, json={}), api_key=None)

        with pytest.raises(ConfigurationError):
            await client.search_recent_news("Acme Pay")

    @pytest.mark.asyncio
    async def test_market_data_shapes_results(self):
        def handler(request):
            body = json.loads(request.content)
            if "regulation" in body["query"]:
                return httpx.Response(200, json={"results": [_result("Rules", text="KYC rules apply")]})
            return httpx.Response(200, json={"results": [
                _result("Trend", highlights=("Embedded finance growth", "Open banking adoption")),
            ]})

        client = make_client(handler)
        market = await client.search_market_data("fintech")

        assert market.key_trends == ["Embedded finance growth", "Open banking adoption"]
        assert market.regulatory_environment == "KYC rules apply"
        assert len(market.competitive_data) == 1

    @pytest.mark.asyncio
    async def test_news_uses_configured_window(self):
        bodies = []

        def handler(request):
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={"results": []})

        client = make_client(handler, news_days_back=30)
        with patch("venture_eval.sources.exa.types.date") as mock_date:
            mock_date.today.return_value = date(2026, 3, 31)
            await client.search_recent_news("Acme Pay")

        assert len(bodies) == 3
        assert all(b["startPublishedDate"] == "2026-03-01" for b in bodies)
        assert bodies[0]["endPublishedDate"] == "2026-03-31"
        assert "endPublishedDate" not in bodies[2]


# ============================================================================
# Parser Tests
# ============================================================================

class TestParseCompanyProfile:

    def test_first_value_wins(self):
        items = [
            EvidenceItem(
                title="Acme Pay | Crunchbase",
                url="https://www.crunchbase.com/organization/acmepay",
                text="Acme Pay is a payments company founded in 2019 based in Toronto, Canada. 50-100 employees.",
                highlights=("Acme Pay builds payment rails",),
            ),
            EvidenceItem(
                title="Acme Pay",
                url="https://acmepay.com/about",
                text="Established in 2015.",
            ),
        ]

        profile = parse_company_profile("Acme Pay", items)

        assert profile.website == "https://acmepay.com"
        assert profile.description == "Acme Pay builds payment rails"
        assert profile.industry == "Fintech"
        assert profile.founded_year == 2019
        assert profile.location == "Toronto"
        assert profile.employee_count_number() == 50

    def test_no_hits(self):
        assert parse_company_profile("Acme", []) == CompanyProfile(name="Acme")

    def test_collect_highlights_limit(self):
        items = [
            EvidenceItem(title="a", url="u", highlights=("1", "2")),
            EvidenceItem(title="b", url="u", highlights=("3",)),
        ]
        assert collect_highlights(items, 2) == ["1", "2"]
