"""
Type definitions for Exa retrieval.

Defines data classes for:
- Search queries and the request body they serialise to
- Search hits
- Research bundles built from several searches
"""

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Tuple


@dataclass(frozen=True)
class EvidenceQuery:
    """
    One search request.

    Attributes:
        text: Natural-language query
        num_results: Result-count cap
        include_domains: Only return hits from these domains
        exclude_domains: Never return hits from these domains
        start_published_date: ISO date lower bound
        end_published_date: ISO date upper bound
        search_type: "neural" or "keyword"
    """

    text: str
    num_results: int = 3
    include_domains: Tuple[str, ...] = ()
    exclude_domains: Tuple[str, ...] = ()
    start_published_date: Optional[str] = None
    end_published_date: Optional[str] = None
    search_type: str = "neural"

    @classmethod
    def within_days(
        cls,
        text: str,
        days_back: int,
        num_results: int = 3,
        include_domains: Tuple[str, ...] = (),
        exclude_domains: Tuple[str, ...] = (),
        bounded: bool = True,
        today: Optional[date] = None,
    ) -> "EvidenceQuery":
        """Build a query restricted to the last ``days_back`` days."""
        today = today or date.today()
        start = (today - timedelta(days=days_back)).isoformat()
        return cls(
            text=text,
            num_results=num_results,
            include_domains=include_domains,
            exclude_domains=exclude_domains,
            start_published_date=start,
            end_published_date=today.isoformat() if bounded else None,
        )

    def to_payload(self) -> Dict[str, Any]:
        """Exa /search request body."""
        payload: Dict[str, Any] = {
            "query": self.text,
            "type": self.search_type,
            "numResults": self.num_results,
            "contents": {
                "text": True,
                "highlights": {"numSentences": 3, "highlightsPerUrl": 3},
            },
        }
        if self.include_domains:
            payload["includeDomains"] = list(self.include_domains)
        if self.exclude_domains:
            payload["excludeDomains"] = list(self.exclude_domains)
        if self.start_published_date:
            payload["startPublishedDate"] = self.start_published_date
        if self.end_published_date:
            payload["endPublishedDate"] = self.end_published_date
        return payload


@dataclass(frozen=True)
class EvidenceItem:
    """One retrieved document."""

    title: str
    url: str
    text: str = ""
    highlights: Tuple[str, ...] = ()
    published_date: Optional[str] = None
    author: Optional[str] = None

    @classmethod
    def from_api(cls, raw: Dict[str, Any]) -> "EvidenceItem":
        return cls(
            title=raw.get("title") or "",
            url=raw.get("url") or "",
            text=raw.get("text") or "",
            highlights=tuple(h for h in (raw.get("highlights") or []) if isinstance(h, str)),
            published_date=raw.get("publishedDate"),
            author=raw.get("author"),
        )

    def searchable_text(self) -> str:
        """Lower-cased title and body for keyword rules."""
        return f"{self.title} {self.text}".lower()

    def to_prompt_dict(self, max_text: int = 500) -> Dict[str, Any]:
        """Compact form for LLM context."""
        return {
            "title": self.title,
            "url": self.url,
            "text": self.text[:max_text],
            "highlights": list(self.highlights),
            "publishedDate": self.published_date,
        }


@dataclass
class CompanyProfile:
    """Company facts parsed from search hits."""

    name: str
    website: Optional[str] = None
    description: Optional[str] = None
    industry: Optional[str] = None
    founded_year: Optional[int] = None
    employee_count: Optional[str] = None
    location: Optional[str] = None

    def employee_count_number(self) -> Optional[int]:
        """First number in employee_count ("50-100" -> 50)."""
        if not self.employee_count:
            return None
        digits = ""
        for ch in self.employee_count:
            if ch.isdigit():
                digits += ch
            elif digits:
                break
        return int(digits) if digits else None


@dataclass
class NewsBundle:
    recent_news: List[EvidenceItem] = field(default_factory=list)
    press_releases: List[EvidenceItem] = field(default_factory=list)
    industry_trends: List[EvidenceItem] = field(default_factory=list)


@dataclass
class MarketData:
    key_trends: List[str] = field(default_factory=list)
    competitive_data: List[EvidenceItem] = field(default_factory=list)
    regulatory_environment: Optional[str] = None


@dataclass
class FounderBackground:
    name: str
    experience: List[str] = field(default_factory=list)
    education: List[str] = field(default_factory=list)
    previous_companies: List[str] = field(default_factory=list)
    achievements: List[str] = field(default_factory=list)
