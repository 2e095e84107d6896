"""
Process-wide clients for FastAPI dependency injection.

One search client and one LLM client per process, so the search pacing
gate and the request/token counters are shared by every request.
Tests override these with fakes via app.dependency_overrides.
"""
import logging
from typing import Optional

from fastapi import Depends
from sqlalchemy.orm import Session

from venture_eval.agentic.llm_client import LLMClient, get_llm_client
from venture_eval.core.api_errors import ConfigurationError
from venture_eval.core.database import get_db
from venture_eval.core.repository import EvaluationStore
from venture_eval.sources.exa.client import ExaClient

logger = logging.getLogger(__name__)

_search_client: Optional[ExaClient] = None
_llm_client: Optional[LLMClient] = None


def get_search_client() -> ExaClient:
    global _search_client
    if _search_client is None:
        _search_client = ExaClient.from_settings()
    return _search_client


def get_llm() -> LLMClient:
    global _llm_client
    if _llm_client is None:
        _llm_client = get_llm_client()
    return _llm_client


def get_store(db: Session = Depends(get_db)) -> EvaluationStore:
    return EvaluationStore(db)


async def close_clients() -> None:
    """Close the shared HTTP client and forget both singletons."""
    global _search_client, _llm_client
    if _search_client is not None:
        await _search_client.close()
        logger.info("Search client closed")
    _search_client = None
    _llm_client = None


def ensure_configured(search_client, llm: LLMClient) -> None:
    """
    Fail fast before running agents that would otherwise absorb a missing key.

    Raises:
        ConfigurationError: EXA_API_KEY or the LLM provider key is missing
    """
    if not search_client.api_key:
        raise ConfigurationError(
            "EXA_API_KEY is required for evidence retrieval",
            source="exa",
            missing_config="EXA_API_KEY",
        )
    if not llm.is_available:
        env_var = f"{llm.provider.upper()}_API_KEY"
        raise ConfigurationError(
            f"LLM provider '{llm.provider}' is not configured. Set {env_var}.",
            source=llm.provider,
            missing_config=env_var,
        )
