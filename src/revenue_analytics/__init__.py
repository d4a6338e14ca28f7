"""
Revenue Analytics Engine

Quarter-scoped revenue, pipeline, risk and recommendation views computed
over a sales dataset (accounts, reps, deals, activities, monthly targets)
stored in a relational database.
"""

__version__ = '0.1.0'

# Re-export key classes for convenience
from .analytics import (
    RevenueAnalyticsEngine,
    SummaryComputation,
    DriversComputation,
    RiskFactorsComputation,
    RecommendationsComputation,
    rank_findings,
)
from .clients import DatabaseClient
from .repository import RevenueRepository
from .quarters import Quarter, QuarterWindow, parse_quarter, resolve_window
from .logging import (
    configure_logging,
    get_logger,
    logging_context,
    StageTimer,
)
from .errors import (
    RevenueAnalyticsError,
    ValidationError,
    InvalidQuarterError,
    DataIntegrityError,
    DatabaseError,
    ComputationError,
)

__all__ = [
    # Version
    '__version__',
    # Engine
    'RevenueAnalyticsEngine',
    # Computations
    'SummaryComputation',
    'DriversComputation',
    'RiskFactorsComputation',
    'RecommendationsComputation',
    'rank_findings',
    # Storage
    'DatabaseClient',
    'RevenueRepository',
    # Quarters
    'Quarter',
    'QuarterWindow',
    'parse_quarter',
    'resolve_window',
    # Logging
    'configure_logging',
    'get_logger',
    'logging_context',
    'StageTimer',
    # Errors
    'RevenueAnalyticsError',
    'ValidationError',
    'InvalidQuarterError',
    'DataIntegrityError',
    'DatabaseError',
    'ComputationError',
]
