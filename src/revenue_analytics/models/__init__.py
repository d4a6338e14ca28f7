"""
Data models for the Revenue Analytics engine.

Provides the entity snapshots read from the relational store and the
derived view models returned to callers.
"""

from .entities import (
    CLOSED_STAGES,
    ENTERPRISE_SEGMENT,
    OPEN_STAGES,
    Account,
    Activity,
    ClosureBasis,
    Deal,
    DealStage,
    Rep,
    Target,
)
from .views import (
    Category,
    DashboardView,
    DriversView,
    Finding,
    LowActivityAccount,
    MonthlyPoint,
    Priority,
    RecommendationsView,
    RiskFactorsView,
    RiskSummary,
    StageBreakdown,
    StaleDeal,
    StaleDeals,
    SummaryView,
    UnderperformingRep,
)

__all__ = [
    # Entities
    'Account',
    'Rep',
    'Deal',
    'DealStage',
    'Activity',
    'Target',
    'ClosureBasis',
    'OPEN_STAGES',
    'CLOSED_STAGES',
    'ENTERPRISE_SEGMENT',
    # Views
    'SummaryView',
    'MonthlyPoint',
    'DriversView',
    'StageBreakdown',
    'RiskFactorsView',
    'StaleDeals',
    'StaleDeal',
    'UnderperformingRep',
    'LowActivityAccount',
    'RiskSummary',
    'RecommendationsView',
    'Finding',
    'Priority',
    'Category',
    'DashboardView',
]
