"""
Metric computations for the four dashboard views, the recommendation
ranker and the engine facade that runs them.
"""

from .drivers import DriversComputation
from .engine import RevenueAnalyticsEngine
from .ranker import rank_findings
from .recommendations import RecommendationsComputation
from .risk_factors import RiskFactorsComputation
from .summary import SummaryComputation

__all__ = [
    # Engine
    'RevenueAnalyticsEngine',
    # Computations
    'SummaryComputation',
    'DriversComputation',
    'RiskFactorsComputation',
    'RecommendationsComputation',
    # Ranking
    'rank_findings',
]
