"""
Exa neural search source module.

Provides evidence retrieval for company research:
- Paced search with a single throttle retry
- Company profile, news, competitor, market and founder research helpers

Requires EXA_API_KEY.
"""

from venture_eval.sources.exa.client import ExaClient
from venture_eval.sources.exa.types import (
    CompanyProfile,
    EvidenceItem,
    EvidenceQuery,
    FounderBackground,
    MarketData,
    NewsBundle,
)

__all__ = [
    "ExaClient",
    "CompanyProfile",
    "EvidenceItem",
    "EvidenceQuery",
    "FounderBackground",
    "MarketData",
    "NewsBundle",
]
