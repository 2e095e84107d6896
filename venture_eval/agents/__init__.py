"""
Startup evaluation agents.

Provides the evaluation pipeline, due diligence aggregation, portfolio
monitoring and market trend synthesis.
"""

from venture_eval.agents.due_diligence import DueDiligenceAggregator
from venture_eval.agents.evaluator import EvaluationError, EvaluationInput, StartupEvaluator
from venture_eval.agents.market_trends import MarketTrendsAgent
from venture_eval.agents.portfolio_monitor import PortfolioMonitor

__all__ = [
    "DueDiligenceAggregator",
    "EvaluationError",
    "EvaluationInput",
    "MarketTrendsAgent",
    "PortfolioMonitor",
    "StartupEvaluator",
]
