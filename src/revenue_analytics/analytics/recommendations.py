"""
Recommendations view: a fixed, ordered set of threshold rules.

Each rule looks at the current quarter only and emits at most one finding.
Rules are independent; the ranker orders the findings by priority and keeps
the first few.
"""

from typing import Callable

import structlog

from ..models.entities import ENTERPRISE_SEGMENT, OPEN_STAGES, DealStage
from ..models.views import Category, Finding, Priority, RecommendationsView
from ..quarters import QuarterWindow
from ..repository import AgeFilter, DealQuery, RevenueRepository
from .metrics import ACTIVITY_WINDOW_DAYS, STALE_DEAL_DAYS, round_currency
from .ranker import DEFAULT_LIMIT, rank_findings

logger = structlog.get_logger(__name__)

MIN_REP_DECISIONS = 3
REP_WIN_RATE_FLOOR = 40.0
INACTIVE_ACCOUNT_THRESHOLD = 5
NEGOTIATION_DEAL_THRESHOLD = 3


def _thousands(value: float) -> str:
    return f'${round_currency(value / 1000)}K'


class RecommendationsComputation:
    """Evaluates every rule against a quarter window and ranks the findings."""

    def __init__(
        self,
        repository: RevenueRepository,
        limit: int = DEFAULT_LIMIT,
        stale_after_days: int = STALE_DEAL_DAYS,
        activity_window_days: int = ACTIVITY_WINDOW_DAYS,
    ):
        self.repository = repository
        self.limit = limit
        self.stale_after_days = stale_after_days
        self.activity_window_days = activity_window_days

    @property
    def rules(self) -> list[Callable[[QuarterWindow], Finding | None]]:
        """Rules in evaluation order."""
        return [
            self.aging_enterprise_deals,
            self.worst_rep,
            self.worst_segment,
            self.inactive_accounts,
            self.negotiation_quick_wins,
        ]

    # =========================================================================
    # Rules
    # =========================================================================

    def aging_enterprise_deals(self, window: QuarterWindow) -> Finding | None:
        reference = window.reference_date
        query = DealQuery(
            stages=OPEN_STAGES,
            open_as_of=reference,
            amount_required=True,
            older_than=AgeFilter(reference=reference, days=self.stale_after_days),
            segment=ENTERPRISE_SEGMENT,
        )
        count = self.repository.count_deals(query)
        if count == 0:
            return None
        value = self.repository.sum_deal_amount(query)
        return Finding(
            id='rec-1',
            priority=Priority.HIGH,
            category=Category.DEALS,
            title='Focus on aging Enterprise deals',
            description=(
                f'{count} Enterprise deals worth {_thousands(value)} have been open '
                f'for over {self.stale_after_days} days.'
            ),
            impact=f'Potential to close {_thousands(value)} in revenue',
            metric=f'{count} deals',
        )

    def worst_rep(self, window: QuarterWindow) -> Finding | None:
        eligible = [
            rep
            for rep in self.repository.rep_win_loss_counts(window.current)
            if rep.total >= MIN_REP_DECISIONS
        ]
        if not eligible:
            return None
        rep = min(eligible, key=lambda r: r.win_rate)
        if rep.win_rate >= REP_WIN_RATE_FLOOR:
            return None
        rate = round_currency(rep.win_rate)
        return Finding(
            id='rec-2',
            priority=Priority.HIGH,
            category=Category.REPS,
            title=f'Coach {rep.rep_name} on win rate',
            description=(
                f'{rep.rep_name} has a {rate}% win rate in {window.label}, below team average.'
            ),
            impact='Improving win rate by 10% could add significant revenue',
            metric=f'{rate}% win rate',
        )

    def worst_segment(self, window: QuarterWindow) -> Finding | None:
        rated = [
            seg
            for seg in self.repository.segment_pipeline_and_win_rate(
                window.current, open_as_of=window.reference_date
            )
            if seg.win_rate is not None
        ]
        if not rated:
            return None
        segment = min(rated, key=lambda s: s.win_rate)
        if segment.open_value <= 0:
            return None
        return Finding(
            id='rec-3',
            priority=Priority.MEDIUM,
            category=Category.ACCOUNTS,
            title=f'Increase activity for {segment.segment} segment',
            description=(
                f'{segment.segment} segment has {segment.open_count} open deals '
                f'worth {_thousands(segment.open_value)}.'
            ),
            impact='Strategic focus could improve segment conversion',
            metric=f'{round_currency(segment.win_rate)}% win rate',
        )

    def inactive_accounts(self, window: QuarterWindow) -> Finding | None:
        count = len(
            self.repository.accounts_with_stale_activity(
                window.reference_date, self.activity_window_days
            )
        )
        if count <= INACTIVE_ACCOUNT_THRESHOLD:
            return None
        return Finding(
            id='rec-4',
            priority=Priority.MEDIUM,
            category=Category.ACCOUNTS,
            title='Increase outreach to inactive accounts',
            description=(
                f'{count} accounts with open deals have had no recent activity in {window.label}.'
            ),
            impact='Prevents deal stagnation and potential loss',
            metric=f'{count} accounts',
        )

    def negotiation_quick_wins(self, window: QuarterWindow) -> Finding | None:
        query = DealQuery(
            stages=(DealStage.NEGOTIATION,),
            open_as_of=window.reference_date,
            amount_required=True,
        )
        count = self.repository.count_deals(query)
        if count <= NEGOTIATION_DEAL_THRESHOLD:
            return None
        value = self.repository.sum_deal_amount(query)
        return Finding(
            id='rec-5',
            priority=Priority.HIGH,
            category=Category.DEALS,
            title='Accelerate negotiation-stage deals',
            description=f'{count} deals worth {_thousands(value)} are in negotiation stage.',
            impact=f'Potential quick wins: {_thousands(value)}',
            metric=f'{count} deals',
        )

    # =========================================================================
    # View
    # =========================================================================

    def evaluate(self, window: QuarterWindow) -> list[Finding]:
        """Run every rule in order; return the findings that fired, unranked."""
        findings = []
        for rule in self.rules:
            finding = rule(window)
            if finding is not None:
                findings.append(finding)
        return findings

    def compute(self, window: QuarterWindow) -> RecommendationsView:
        findings = self.evaluate(window)
        top, total = rank_findings(findings, limit=self.limit)
        logger.debug('recommendations.computed', fired=[f.id for f in findings])
        return RecommendationsView(recommendations=top, total_recommendations=total)
