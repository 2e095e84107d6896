"""
Exa search API client.

Official documentation: https://docs.exa.ai/reference/search

Every call goes through one pacing gate per client instance (default one
request per second). HTTP 429 is retried once after a cooldown; all other
failures propagate from search(). The research helpers absorb failures and
return empty results, except missing configuration which always propagates.
"""
import logging
from datetime import date
from typing import Dict, List, Optional

from venture_eval.core.api_errors import ConfigurationError
from venture_eval.core.config import Settings, get_settings
from venture_eval.core.http_client import BaseAPIClient
from venture_eval.sources.exa.parsers import collect_highlights, parse_company_profile
from venture_eval.sources.exa.types import (
    CompanyProfile,
    EvidenceItem,
    EvidenceQuery,
    FounderBackground,
    MarketData,
    NewsBundle,
)

logger = logging.getLogger(__name__)

PROFILE_DOMAINS = ("crunchbase.com", "linkedin.com", "pitchbook.com", "techcrunch.com")
NEWS_DOMAINS = ("techcrunch.com", "reuters.com", "bloomberg.com", "wsj.com", "prnewswire.com")
MARKET_RESEARCH_DOMAINS = ("statista.com", "mckinsey.com", "pwc.com", "deloitte.com", "accenture.com")
REGULATOR_DOMAINS = ("sec.gov", "federalreserve.gov", "occ.gov", "cftc.gov")
FOUNDER_DOMAINS = ("linkedin.com", "crunchbase.com", "bloomberg.com")


class ExaClient(BaseAPIClient):
    """
    Client for the Exa /search endpoint.

    Usage:
        async with ExaClient(api_key="...") as exa:
            items = await exa.search(EvidenceQuery("acme payments funding"))
    """

    SOURCE_NAME = "exa"
    BASE_URL = "https://api.exa.ai"

    def __init__(
        self,
        api_key: Optional[str] = None,
        min_interval: float = BaseAPIClient.DEFAULT_MIN_INTERVAL,
        throttle_cooldown: float = BaseAPIClient.DEFAULT_THROTTLE_COOLDOWN,
        timeout: float = BaseAPIClient.DEFAULT_TIMEOUT,
        focus_industry: str = "fintech",
        news_days_back: int = 90,
    ):
        super().__init__(
            api_key=api_key,
            min_interval=min_interval,
            throttle_cooldown=throttle_cooldown,
            timeout=timeout,
        )
        self.focus_industry = focus_industry
        self.news_days_back = news_days_back

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "ExaClient":
        settings = settings or get_settings()
        return cls(
            api_key=settings.exa_api_key,
            min_interval=settings.search_min_interval_seconds,
            throttle_cooldown=settings.search_throttle_cooldown_seconds,
            timeout=settings.search_timeout_seconds,
            focus_industry=settings.focus_industry,
            news_days_back=settings.news_days_back,
        )

    def _build_headers(self) -> Dict[str, str]:
        if not self.api_key:
            raise ConfigurationError(
                "EXA_API_KEY is required for evidence retrieval",
                source=self.SOURCE_NAME,
                missing_config="EXA_API_KEY",
            )
        headers = super()._build_headers()
        headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def search(self, query: EvidenceQuery) -> List[EvidenceItem]:
        """
        Run one search.

        Raises:
            ConfigurationError: EXA_API_KEY missing
            RateLimitError: Still throttled after the single retry
            APIError: Any other provider or network failure
        """
        data = await self.post(
            "/search", json_body=query.to_payload(), resource_id=query.text[:60]
        )
        results = data.get("results") or []
        return [EvidenceItem.from_api(r) for r in results if isinstance(r, dict)]

    # =========================================================================
    # Research helpers
    # =========================================================================

    async def search_company_info(self, company_name: str) -> CompanyProfile:
        """Company overview plus focus-industry hits, parsed into a profile."""
        try:
            basic = await self.search(EvidenceQuery(
                text=f"{company_name} company overview description products funding",
                num_results=3,
                include_domains=PROFILE_DOMAINS,
            ))
            industry = await self.search(EvidenceQuery(
                text=f"{company_name} {self.focus_industry} financial technology banking insurance",
                num_results=3,
            ))
            return parse_company_profile(company_name, basic + industry, self.focus_industry)
        except ConfigurationError:
            raise
        except Exception as e:
            logger.warning(f"Company info search failed for {company_name}: {e}")
            return CompanyProfile(name=company_name)

    async def search_recent_news(
        self, company_name: str, days_back: Optional[int] = None
    ) -> NewsBundle:
        """News, press releases and industry trend hits inside a date window."""
        days_back = days_back or self.news_days_back
        try:
            news = await self.search(EvidenceQuery.within_days(
                f"{company_name} news funding investment announcement",
                days_back,
                include_domains=NEWS_DOMAINS,
            ))
            press = await self.search(EvidenceQuery.within_days(
                f"{company_name} press release announcement", days_back
            ))
            trends = await self.search(EvidenceQuery.within_days(
                f"{self.focus_industry} trends {date.today().year} innovation {company_name}",
                days_back,
                bounded=False,
            ))
            return NewsBundle(recent_news=news, press_releases=press, industry_trends=trends)
        except ConfigurationError:
            raise
        except Exception as e:
            logger.warning(f"News search failed for {company_name}: {e}")
            return NewsBundle()

    async def search_competitors(
        self, company_name: str, industry: Optional[str] = None
    ) -> List[EvidenceItem]:
        industry = industry or self.focus_industry
        try:
            return await self.search(EvidenceQuery(
                text=f"{industry} companies similar to {company_name} competitors alternative",
                num_results=3,
                exclude_domains=("wikipedia.org",),
            ))
        except ConfigurationError:
            raise
        except Exception as e:
            logger.warning(f"Competitor search failed for {company_name}: {e}")
            return []

    async def search_market_data(
        self, industry: Optional[str] = None, vertical: Optional[str] = None
    ) -> MarketData:
        """Market size, trend highlights and regulatory context for an industry."""
        industry = industry or self.focus_industry
        subject = f"{industry} {vertical}" if vertical else industry
        try:
            sizing = await self.search(EvidenceQuery(
                text=f"{subject} market size growth rate forecast {date.today().year}",
                num_results=3,
                include_domains=MARKET_RESEARCH_DOMAINS,
            ))
            trends = await self.search(EvidenceQuery(
                text=f"{industry} trends innovation technology disruption",
                num_results=5,
            ))
            regulation = await self.search(EvidenceQuery(
                text=f"{industry} regulation compliance requirements laws",
                num_results=3,
                include_domains=REGULATOR_DOMAINS,
            ))
            return MarketData(
                key_trends=collect_highlights(trends, 5),
                competitive_data=sizing,
                regulatory_environment=regulation[0].text if regulation else None,
            )
        except ConfigurationError:
            raise
        except Exception as e:
            logger.warning(f"Market data search failed for {industry}: {e}")
            return MarketData()

    async def search_founder_background(
        self, founder_name: str, company_name: str
    ) -> FounderBackground:
        try:
            results = await self.search(EvidenceQuery(
                text=f"{founder_name} {company_name} CEO founder experience background LinkedIn",
                num_results=3,
                include_domains=FOUNDER_DOMAINS,
            ))
            return FounderBackground(
                name=founder_name,
                experience=collect_highlights(results, 9),
            )
        except ConfigurationError:
            raise
        except Exception as e:
            logger.warning(f"Founder search failed for {founder_name}: {e}")
            return FounderBackground(name=founder_name)

    async def search_industry_trends(self, industry: Optional[str] = None) -> List[str]:
        industry = industry or self.focus_industry
        try:
            results = await self.search(EvidenceQuery.within_days(
                f"{industry} trends {date.today().year} innovation technology "
                f"artificial intelligence blockchain",
                180,
                bounded=False,
            ))
            return collect_highlights(results, 10)
        except ConfigurationError:
            raise
        except Exception as e:
            logger.warning(f"Industry trend search failed for {industry}: {e}")
            return []
