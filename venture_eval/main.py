"""
Main FastAPI application.

Startup evaluation service: evaluation pipeline, due diligence reports,
portfolio monitoring and market intelligence.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from venture_eval.core.config import get_settings
from venture_eval.core.database import create_tables
from venture_eval.core.dependencies import close_clients
from venture_eval.api.v1 import diligence, evaluations, market, portfolio

logging.basicConfig(
    level=get_settings().log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Runs on startup and shutdown.
    """
    # Startup
    settings = get_settings()
    logger.info("Starting Venture Evaluation Service")
    logger.info(f"Log level: {settings.log_level}")
    logger.info(f"Fund: {settings.fund_name} (focus: {settings.focus_industry})")
    logger.info(f"Due diligence threshold: {settings.dd_score_threshold}")

    try:
        create_tables()
        logger.info("Database tables ready")
    except Exception as e:
        logger.error(f"Failed to create tables: {e}")
        raise

    yield

    # Shutdown
    await close_clients()
    logger.info("Shutting down")


app = FastAPI(
    title="Venture Evaluation Service",
    description="Evidence-driven startup evaluation and due diligence for venture investors",
    version="0.1.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(evaluations.router, prefix="/api/v1")
app.include_router(diligence.router, prefix="/api/v1")
app.include_router(portfolio.router, prefix="/api/v1")
app.include_router(market.router, prefix="/api/v1")


@app.get("/")
def root():
    """Root endpoint with service info."""
    return {
        "service": "Venture Evaluation Service",
        "version": "0.1.0",
        "capabilities": ["evaluations", "diligence", "portfolio", "market"],
        "docs": "/docs"
    }


@app.get("/health")
def health_check():
    """
    Health check endpoint.

    Returns status of the service, database connectivity and which
    provider keys are configured.
    """
    from venture_eval.core.database import get_engine
    from sqlalchemy import text

    settings = get_settings()
    health_status = {
        "status": "healthy",
        "service": "running",
        "database": "unknown",
        "search_configured": bool(settings.exa_api_key),
        "llm_configured": bool(settings.openai_api_key or settings.anthropic_api_key),
    }

    try:
        engine = get_engine()
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        health_status["database"] = "connected"
    except Exception as e:
        health_status["status"] = "degraded"
        health_status["database"] = f"error: {str(e)}"
        logger.warning(f"Database health check failed: {e}")

    return health_status
