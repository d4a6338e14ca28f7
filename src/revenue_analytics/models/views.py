"""
Derived view models returned by the engine.

Field names are snake_case in Python and serialize to camelCase
(``model_dump(by_alias=True)``) for the presentation layer. Row identifiers
in the risk lists (``deal_id``, ``rep_name``, ``days_stale`` and friends)
keep their snake_case keys on the wire.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ViewModel(BaseModel):
    """Base for all view models: camelCase aliases, construct by field name."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Summary
# =============================================================================


class MonthlyPoint(ViewModel):
    """Revenue and target for one ``YYYY-MM`` month."""

    month: str
    revenue: int
    target: int


class SummaryView(ViewModel):
    """Quarterly revenue against target."""

    current_quarter_revenue: int
    target: int
    gap_amount: int
    gap_percent: float
    qoq_change: float
    yoy_change: float | None = Field(
        default=None, description='None when the year-ago quarter had no revenue'
    )
    quarter_label: str
    monthly_data: list[MonthlyPoint] = Field(default_factory=list)


# =============================================================================
# Drivers
# =============================================================================


class StageBreakdown(ViewModel):
    stage: str
    value: int
    count: int


class DriversView(ViewModel):
    """Pipeline, conversion, deal size and cycle time with period deltas."""

    pipeline_size: int
    pipeline_change: float
    win_rate: float
    win_rate_change: float
    avg_deal_size: int
    avg_deal_size_change: float
    sales_cycle_time: int
    sales_cycle_time_change: int
    pipeline_by_stage: list[StageBreakdown] = Field(default_factory=list)
    monthly_trend: list[MonthlyPoint] = Field(default_factory=list)


# =============================================================================
# Risk Factors
# =============================================================================


class StaleDeal(ViewModel):
    deal_id: str = Field(alias='deal_id')
    account_name: str = Field(alias='account_name')
    amount: int
    days_stale: int = Field(alias='days_stale')
    stage: str


class StaleDeals(ViewModel):
    """
    Open deals older than the staleness threshold.

    ``count`` is the true number of stale deals; ``total_value`` and ``deals``
    only cover the largest few.
    """

    count: int
    total_value: int
    deals: list[StaleDeal] = Field(default_factory=list)


class UnderperformingRep(ViewModel):
    rep_id: str = Field(alias='rep_id')
    rep_name: str = Field(alias='rep_name')
    win_rate: float
    deals_won: int
    deals_lost: int
    avg_win_rate: float


class LowActivityAccount(ViewModel):
    account_id: str = Field(alias='account_id')
    account_name: str = Field(alias='account_name')
    segment: str
    open_deals: int
    total_value: int
    last_activity_date: str | None = None
    days_since_activity: int


class RiskSummary(ViewModel):
    stale_deals_count: int
    underperforming_reps_count: int
    low_activity_accounts_count: int


class RiskFactorsView(ViewModel):
    stale_deals: StaleDeals
    underperforming_reps: list[UnderperformingRep] = Field(default_factory=list)
    low_activity_accounts: list[LowActivityAccount] = Field(default_factory=list)
    summary: RiskSummary


# =============================================================================
# Recommendations
# =============================================================================


class Priority(str, Enum):
    HIGH = 'high'
    MEDIUM = 'medium'
    LOW = 'low'

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {Priority.HIGH: 0, Priority.MEDIUM: 1, Priority.LOW: 2}


class Category(str, Enum):
    DEALS = 'deals'
    REPS = 'reps'
    ACCOUNTS = 'accounts'
    PIPELINE = 'pipeline'


class Finding(ViewModel):
    """One recommended action."""

    id: str
    priority: Priority
    category: Category
    title: str
    description: str
    impact: str
    metric: str | None = None


class RecommendationsView(ViewModel):
    recommendations: list[Finding] = Field(default_factory=list)
    total_recommendations: int


# =============================================================================
# Dashboard
# =============================================================================


class DashboardView(ViewModel):
    """All four views for one quarter, with per-view timings in ms."""

    quarter_label: str
    summary: SummaryView
    drivers: DriversView
    risk_factors: RiskFactorsView
    recommendations: RecommendationsView
    timings: dict[str, float] = Field(default_factory=dict)
