"""
Drivers view: the levers behind revenue.

Pipeline size and stage breakdown are reconstructed as of each quarter's
last day. Win rate uses the same close/backfill attribution as revenue;
average deal size and cycle time only count deals with a recorded close
date.
"""

import structlog

from ..models.entities import CLOSED_STAGES, OPEN_STAGES, DealStage
from ..models.views import DriversView, StageBreakdown
from ..quarters import DateRange, QuarterWindow
from ..repository import ClosureWindow, DealQuery, RevenueRepository
from .metrics import (
    monthly_series,
    open_pipeline_query,
    percent_change,
    rate_percent,
    round_currency,
    round_percent,
)

logger = structlog.get_logger(__name__)


class DriversComputation:
    """Computes the DriversView for a resolved quarter window."""

    def __init__(self, repository: RevenueRepository):
        self.repository = repository

    # =========================================================================
    # Per-period metrics
    # =========================================================================

    def pipeline_size(self, window: DateRange) -> float:
        return self.repository.sum_deal_amount(open_pipeline_query(window.end))

    def win_rate(self, window: DateRange) -> float:
        closure = ClosureWindow(window, allow_creation_fallback=True)
        won = self.repository.count_deals(
            DealQuery(stages=(DealStage.CLOSED_WON,), closed_within=closure)
        )
        total = self.repository.count_deals(DealQuery(stages=CLOSED_STAGES, closed_within=closure))
        return rate_percent(won, total)

    def avg_deal_size(self, window: DateRange) -> float:
        value = self.repository.avg_deal_amount(
            DealQuery(
                stages=(DealStage.CLOSED_WON,),
                amount_required=True,
                closed_within=ClosureWindow(window),
            )
        )
        return value or 0.0

    def sales_cycle_days(self, window: DateRange) -> float:
        value = self.repository.avg_deal_cycle_days(
            DealQuery(stages=(DealStage.CLOSED_WON,), closed_within=ClosureWindow(window))
        )
        return value or 0.0

    def pipeline_by_stage(self, window: DateRange) -> list[StageBreakdown]:
        aggregates = self.repository.group_deals_by_stage(
            open_pipeline_query(window.end, stages=OPEN_STAGES, amount_required=False)
        )
        return [
            StageBreakdown(stage=agg.stage.value, value=round_currency(agg.value), count=agg.count)
            for agg in aggregates
        ]

    # =========================================================================
    # View
    # =========================================================================

    def compute(self, window: QuarterWindow) -> DriversView:
        current_pipeline = self.pipeline_size(window.current)
        previous_pipeline = self.pipeline_size(window.previous)

        current_win_rate = self.win_rate(window.current)
        previous_win_rate = self.win_rate(window.previous)

        current_avg_deal = self.avg_deal_size(window.current)
        previous_avg_deal = self.avg_deal_size(window.previous)

        current_cycle = self.sales_cycle_days(window.current)
        previous_cycle = self.sales_cycle_days(window.previous)

        # Point and day deltas are suppressed without a baseline
        win_rate_change = current_win_rate - previous_win_rate if previous_win_rate else 0.0
        cycle_change = current_cycle - previous_cycle if previous_cycle else 0.0

        logger.debug(
            'drivers.computed',
            pipeline=current_pipeline,
            win_rate=current_win_rate,
            avg_deal_size=current_avg_deal,
            cycle_days=current_cycle,
        )

        return DriversView(
            pipeline_size=round_currency(current_pipeline),
            pipeline_change=round_percent(percent_change(current_pipeline, previous_pipeline)),
            win_rate=round_percent(current_win_rate),
            win_rate_change=round_percent(win_rate_change),
            avg_deal_size=round_currency(current_avg_deal),
            avg_deal_size_change=round_percent(percent_change(current_avg_deal, previous_avg_deal)),
            sales_cycle_time=round_currency(current_cycle),
            sales_cycle_time_change=round_currency(cycle_change),
            pipeline_by_stage=self.pipeline_by_stage(window.current),
            monthly_trend=monthly_series(self.repository, window.trailing_months),
        )
