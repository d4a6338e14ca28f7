"""
Summary view: quarterly revenue against target.

Revenue for any range counts Closed Won deals with an amount whose close
date falls in the range, or, for won deals missing a close date, whose
creation date does.
"""

import structlog

from ..models.views import SummaryView
from ..quarters import QuarterWindow
from ..repository import RevenueRepository
from .metrics import (
    monthly_series,
    percent_change,
    rate_percent,
    revenue_for,
    round_currency,
    round_percent,
)

logger = structlog.get_logger(__name__)


class SummaryComputation:
    """Computes the SummaryView for a resolved quarter window."""

    def __init__(self, repository: RevenueRepository):
        self.repository = repository

    def compute(self, window: QuarterWindow) -> SummaryView:
        current_revenue = revenue_for(self.repository, window.current)
        previous_revenue = revenue_for(self.repository, window.previous)
        year_ago_revenue = revenue_for(self.repository, window.year_ago)

        targets = self.repository.targets_for_months(window.months)
        target = sum(targets.values())

        gap_amount = target - current_revenue
        gap_percent = rate_percent(gap_amount, target)
        qoq_change = percent_change(current_revenue, previous_revenue)
        # No year-ago revenue means no comparison, not "no change"
        yoy_change = (
            round_percent(percent_change(current_revenue, year_ago_revenue))
            if year_ago_revenue
            else None
        )

        logger.debug(
            'summary.computed',
            current_revenue=current_revenue,
            previous_revenue=previous_revenue,
            year_ago_revenue=year_ago_revenue,
            target=target,
        )

        return SummaryView(
            current_quarter_revenue=round_currency(current_revenue),
            target=round_currency(target),
            gap_amount=round_currency(gap_amount),
            gap_percent=round_percent(gap_percent),
            qoq_change=round_percent(qoq_change),
            yoy_change=yoy_change,
            quarter_label=window.label,
            monthly_data=monthly_series(self.repository, window.months),
        )
