"""
Risk Factors view: stale deals, underperforming reps, low-activity accounts.

All point-in-time state is taken as of the quarter's last day.
"""

import structlog

from ..models.entities import OPEN_STAGES
from ..models.views import (
    LowActivityAccount,
    RiskFactorsView,
    RiskSummary,
    StaleDeal,
    StaleDeals,
    UnderperformingRep,
)
from ..quarters import QuarterWindow
from ..repository import AgeFilter, DealQuery, RevenueRepository
from .metrics import ACTIVITY_WINDOW_DAYS, STALE_DEAL_DAYS, rate_percent, round_currency, round_percent

logger = structlog.get_logger(__name__)

STALE_TOP_N = 10
UNDERPERFORMING_REP_LIMIT = 5
LOW_ACTIVITY_ACCOUNT_LIMIT = 15
NO_ACTIVITY_DAYS = 999


class RiskFactorsComputation:
    """
    Computes the RiskFactorsView for a resolved quarter window.

    ``top_n`` caps the stale-deal list and its total value; the stale count
    is always the full count.
    """

    def __init__(
        self,
        repository: RevenueRepository,
        top_n: int = STALE_TOP_N,
        stale_after_days: int = STALE_DEAL_DAYS,
        activity_window_days: int = ACTIVITY_WINDOW_DAYS,
        rep_limit: int = UNDERPERFORMING_REP_LIMIT,
        account_limit: int = LOW_ACTIVITY_ACCOUNT_LIMIT,
    ):
        self.repository = repository
        self.top_n = top_n
        self.stale_after_days = stale_after_days
        self.activity_window_days = activity_window_days
        self.rep_limit = rep_limit
        self.account_limit = account_limit

    def stale_deals(self, window: QuarterWindow) -> StaleDeals:
        reference = window.reference_date
        query = DealQuery(
            stages=OPEN_STAGES,
            open_as_of=reference,
            amount_required=True,
            older_than=AgeFilter(reference=reference, days=self.stale_after_days),
        )
        count = self.repository.count_deals(query)
        top = self.repository.list_deals(query, limit=self.top_n)

        deals = [
            StaleDeal(
                deal_id=listing.deal.deal_id,
                account_name=listing.account_name,
                amount=round_currency(listing.deal.amount or 0),
                days_stale=listing.deal.age_days(reference),
                stage=listing.deal.stage.value,
            )
            for listing in top
        ]
        return StaleDeals(
            count=count,
            total_value=round_currency(sum(listing.deal.amount or 0 for listing in top)),
            deals=deals,
        )

    def underperforming_reps(self, window: QuarterWindow) -> list[UnderperformingRep]:
        reps = self.repository.rep_win_loss_counts(window.current)
        if not reps:
            return []

        cohort_won = sum(rep.won for rep in reps)
        cohort_total = sum(rep.total for rep in reps)
        cohort_rate = rate_percent(cohort_won, cohort_total)

        below = [rep for rep in reps if rep.win_rate < cohort_rate]
        below.sort(key=lambda rep: rep.win_rate)

        return [
            UnderperformingRep(
                rep_id=rep.rep_id,
                rep_name=rep.rep_name,
                win_rate=round_percent(rep.win_rate),
                deals_won=rep.won,
                deals_lost=rep.lost,
                avg_win_rate=round_percent(cohort_rate),
            )
            for rep in below[: self.rep_limit]
        ]

    def low_activity_accounts(self, window: QuarterWindow) -> list[LowActivityAccount]:
        accounts = self.repository.accounts_with_stale_activity(
            window.reference_date,
            self.activity_window_days,
            limit=self.account_limit,
        )
        return [
            LowActivityAccount(
                account_id=acc.account_id,
                account_name=acc.account_name,
                segment=acc.segment,
                open_deals=acc.open_deals,
                total_value=round_currency(acc.total_value),
                last_activity_date=acc.last_activity,
                days_since_activity=(
                    acc.days_since_activity
                    if acc.days_since_activity is not None
                    else NO_ACTIVITY_DAYS
                ),
            )
            for acc in accounts
        ]

    def compute(self, window: QuarterWindow) -> RiskFactorsView:
        stale = self.stale_deals(window)
        reps = self.underperforming_reps(window)
        accounts = self.low_activity_accounts(window)

        logger.debug(
            'risk_factors.computed',
            stale_count=stale.count,
            underperforming_reps=len(reps),
            low_activity_accounts=len(accounts),
        )

        return RiskFactorsView(
            stale_deals=stale,
            underperforming_reps=reps,
            low_activity_accounts=accounts,
            summary=RiskSummary(
                stale_deals_count=stale.count,
                underperforming_reps_count=len(reps),
                low_activity_accounts_count=len(accounts),
            ),
        )
