"""
Pytest configuration and shared fixtures.
"""
import pytest
from unittest.mock import AsyncMock, MagicMock
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from venture_eval.agentic.llm_client import ExtractionResult
from venture_eval.core.config import reset_settings
from venture_eval.core.models import Base
from venture_eval.core.repository import EvaluationStore
from venture_eval.sources.exa.types import (
    CompanyProfile,
    FounderBackground,
    MarketData,
    NewsBundle,
)


@pytest.fixture(scope="function")
def clean_env(monkeypatch):
    """
    Clean environment for testing.

    Removes all app-related env vars to ensure clean state.
    """
    env_vars = [
        "DATABASE_URL",
        "EXA_API_KEY",
        "OPENAI_API_KEY",
        "ANTHROPIC_API_KEY",
        "LLM_PROVIDER",
        "LLM_MODEL",
        "LLM_MAX_RETRIES",
        "LLM_RETRY_DELAY",
        "SEARCH_MIN_INTERVAL_SECONDS",
        "SEARCH_THROTTLE_COOLDOWN_SECONDS",
        "DD_SCORE_THRESHOLD",
        "FOCUS_INDUSTRY",
        "FUND_NAME",
        "NEWS_DAYS_BACK",
        "MONITOR_WINDOW_DAYS",
        "LOG_LEVEL",
    ]
    for var in env_vars:
        monkeypatch.delenv(var, raising=False)

    # Reset settings singleton
    reset_settings()

    yield

    # Reset again after test
    reset_settings()


@pytest.fixture(scope="function")
def test_db():
    """
    Create an in-memory SQLite database for testing.

    Fresh database for each test.
    """
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = TestingSessionLocal()

    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def store(test_db):
    return EvaluationStore(test_db)


# =============================================================================
# Provider fakes
# =============================================================================

@pytest.fixture
def search_client():
    """
    Search client double.

    search() returns no hits; the research helpers return empty bundles.
    Tests override the return values they care about.
    """
    client = MagicMock()
    client.api_key = "test-exa-key"
    client.search = AsyncMock(return_value=[])
    client.search_company_info = AsyncMock(
        side_effect=lambda name: CompanyProfile(name=name)
    )
    client.search_recent_news = AsyncMock(return_value=NewsBundle())
    client.search_competitors = AsyncMock(return_value=[])
    client.search_market_data = AsyncMock(return_value=MarketData())
    client.search_founder_background = AsyncMock(
        side_effect=lambda founder, company: FounderBackground(name=founder)
    )
    client.close = AsyncMock()
    return client


@pytest.fixture
def llm():
    """
    LLM client double.

    try_extract() fails with an empty response unless a test says otherwise.
    """
    client = MagicMock()
    client.provider = "openai"
    client.is_available = True
    client.extract = AsyncMock(return_value={})
    client.try_extract = AsyncMock(return_value=ExtractionResult.failure("empty"))
    return client
