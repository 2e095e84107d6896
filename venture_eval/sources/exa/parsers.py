"""
Heuristic parsing of Exa search hits into company facts.

Pure functions; no network access.
"""
import re
from typing import Iterable, List, Optional, Sequence
from urllib.parse import urlparse

from venture_eval.sources.exa.types import CompanyProfile, EvidenceItem

FOUNDED_PATTERN = re.compile(
    r"founded\s+(?:in\s+)?(\d{4})|established\s+(?:in\s+)?(\d{4})", re.IGNORECASE
)
EMPLOYEES_PATTERN = re.compile(r"(\d+[-\s]*\d*)\s+employees?", re.IGNORECASE)
LOCATION_PATTERN = re.compile(
    r"(?:based in|headquarters in|located in)\s+([^,.]+)", re.IGNORECASE
)

# Aggregator sites never count as the company's own website
DIRECTORY_DOMAINS = ("crunchbase", "linkedin")

INDUSTRY_KEYWORDS = {
    "fintech": [
        "fintech",
        "financial technology",
        "banking",
        "insurance",
        "payments",
        "lending",
        "wealth management",
    ],
}


def industry_keywords_for(industry: str) -> List[str]:
    """Keyword list used to recognise a company as part of ``industry``."""
    return INDUSTRY_KEYWORDS.get(industry.lower(), [industry.lower()])


def industry_label(industry: str) -> str:
    if industry.lower() == "fintech":
        return "Fintech"
    return industry.title()


def _website_from(item: EvidenceItem, squashed_name: str) -> Optional[str]:
    if not squashed_name or squashed_name not in item.url.lower():
        return None
    domain = urlparse(item.url).hostname or ""
    if not domain or any(d in domain for d in DIRECTORY_DOMAINS):
        return None
    return f"https://{domain}"


def parse_company_profile(
    company_name: str,
    items: Iterable[EvidenceItem],
    focus_industry: str = "fintech",
) -> CompanyProfile:
    """
    Build a CompanyProfile from search hits.

    Each field keeps the first value found, scanning hits in order.
    """
    profile = CompanyProfile(name=company_name)
    squashed = re.sub(r"\s+", "", company_name.lower())
    keywords = industry_keywords_for(focus_industry)

    for item in items:
        text = item.text.lower()
        title = item.title.lower()

        if not profile.website:
            profile.website = _website_from(item, squashed)

        if not profile.description and item.highlights:
            profile.description = item.highlights[0]

        if not profile.industry:
            if any(k in text or k in title for k in keywords):
                profile.industry = industry_label(focus_industry)

        if not profile.founded_year:
            match = FOUNDED_PATTERN.search(text)
            if match:
                profile.founded_year = int(match.group(1) or match.group(2))

        if not profile.employee_count:
            match = EMPLOYEES_PATTERN.search(text)
            if match:
                profile.employee_count = match.group(1).strip()

        if not profile.location:
            match = LOCATION_PATTERN.search(item.text)
            if match:
                profile.location = match.group(1).strip()

    return profile


def collect_highlights(items: Sequence[EvidenceItem], limit: int) -> List[str]:
    """Flatten highlights across hits, keeping order, up to ``limit``."""
    highlights: List[str] = []
    for item in items:
        highlights.extend(item.highlights)
    return highlights[:limit]
