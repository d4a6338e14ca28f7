"""
Shared metric helpers: rounding, ratios with zero-denominator handling, and
the deal queries reused across views.
"""

from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from ..models.entities import OPEN_STAGES, DealStage
from ..models.views import MonthlyPoint
from ..quarters import DateRange, month_range
from ..repository import ClosureWindow, DealQuery, RevenueRepository

# Fixed risk heuristics shared by the Risk Factors view and the rules
STALE_DEAL_DAYS = 30
ACTIVITY_WINDOW_DAYS = 14


# =============================================================================
# Rounding
# =============================================================================


def round_half_away(value: float, ndigits: int = 0) -> float:
    """Round to ``ndigits`` decimals, halves away from zero (2.5 -> 3, -2.5 -> -3)."""
    quantum = Decimal(1).scaleb(-ndigits)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def round_currency(value: float) -> int:
    """Whole currency units (also used for day counts)."""
    return int(round_half_away(value, 0))


def round_percent(value: float) -> float:
    """One decimal place."""
    return round_half_away(value, 1)


# =============================================================================
# Ratios
# =============================================================================


def percent_change(current: float, previous: float) -> float:
    """(current - previous) / previous * 100, or 0 when there is no baseline."""
    if not previous:
        return 0.0
    return (current - previous) / previous * 100


def rate_percent(part: float, whole: float) -> float:
    """part / whole * 100, or 0 when whole is 0."""
    if not whole:
        return 0.0
    return part / whole * 100


# =============================================================================
# Common Queries
# =============================================================================


def won_revenue_query(window: DateRange) -> DealQuery:
    """Closed Won revenue attributed to ``window``, with the creation-date backfill."""
    return DealQuery(
        stages=(DealStage.CLOSED_WON,),
        amount_required=True,
        closed_within=ClosureWindow(window, allow_creation_fallback=True),
    )


def open_pipeline_query(
    reference: date,
    stages: tuple[DealStage, ...] = OPEN_STAGES,
    amount_required: bool = True,
) -> DealQuery:
    """Deals in ``stages`` that were open on ``reference``."""
    return DealQuery(
        stages=stages,
        open_as_of=reference,
        amount_required=amount_required,
    )


def revenue_for(repository: RevenueRepository, window: DateRange) -> float:
    return repository.sum_deal_amount(won_revenue_query(window))


def monthly_series(repository: RevenueRepository, months: list[str]) -> list[MonthlyPoint]:
    """Revenue (backfill rule) and target per month, in the order given."""
    targets = repository.targets_for_months(months)
    return [
        MonthlyPoint(
            month=month,
            revenue=round_currency(revenue_for(repository, month_range(month))),
            target=round_currency(targets.get(month, 0.0)),
        )
        for month in months
    ]
