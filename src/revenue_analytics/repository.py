"""
Read repository over the sales dataset.

Implements the query contract the metric computations depend on. Deal
filters are expressed as a ``DealQuery``: a conjunction of stage membership,
created/closed date windows, amount presence, point-in-time openness, age and
account segment. Every filter renders to parameterized SQL; nothing is
interpolated from caller input.

Key design decisions:
- "Open as of D" is reconstructed from created_at/closed_at, never stored.
- A closure window either matches strictly on closed_at, or also accepts
  closed-stage deals with no closed_at whose created_at falls in the window.
  The two paths are separate SQL fragments so each can be exercised alone.
- Day arithmetic uses SQLite ``julianday()``; activity recency compares on
  the calendar date of the timestamp.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any

import structlog
from pydantic import ValidationError as PydanticValidationError

from .clients.database_client import DatabaseClient
from .errors import DatabaseQueryError
from .models.entities import (
    OPEN_STAGES,
    ClosureBasis,
    Deal,
    DealStage,
)
from .quarters import DateRange

logger = structlog.get_logger(__name__)


# =============================================================================
# Query Model
# =============================================================================


@dataclass(frozen=True)
class ClosureWindow:
    """
    Deals whose outcome is attributed to ``window``.

    With ``allow_creation_fallback`` a closed-stage deal lacking closed_at is
    attributed to its created_at instead.
    """

    window: DateRange
    allow_creation_fallback: bool = False

    @property
    def bases(self) -> tuple[ClosureBasis, ...]:
        if self.allow_creation_fallback:
            return (ClosureBasis.CLOSED_BY_DATE, ClosureBasis.CLOSED_BY_FALLBACK_CREATION)
        return (ClosureBasis.CLOSED_BY_DATE,)


@dataclass(frozen=True)
class AgeFilter:
    """Deals created strictly more than ``days`` days before ``reference``."""

    reference: date
    days: int


@dataclass(frozen=True)
class DealQuery:
    """Conjunction of deal predicates. Unset fields do not filter."""

    stages: tuple[DealStage, ...] | None = None
    open_as_of: date | None = None
    closed_within: ClosureWindow | None = None
    amount_required: bool = False
    older_than: AgeFilter | None = None
    segment: str | None = None


# =============================================================================
# Result Records
# =============================================================================


@dataclass(frozen=True)
class StageAggregate:
    stage: DealStage
    value: float
    count: int


@dataclass(frozen=True)
class DealListing:
    """A deal joined with its account's name and segment."""

    deal: Deal
    account_name: str
    segment: str


@dataclass(frozen=True)
class RepWinLoss:
    rep_id: str
    rep_name: str
    won: int
    lost: int
    total: int

    @property
    def win_rate(self) -> float:
        return self.won / self.total * 100 if self.total > 0 else 0.0


@dataclass(frozen=True)
class SegmentPerformance:
    segment: str
    open_count: int
    open_value: float
    won: int
    decided: int

    @property
    def win_rate(self) -> float | None:
        """None when nothing in the segment closed during the window."""
        if self.decided == 0:
            return None
        return self.won / self.decided * 100


@dataclass(frozen=True)
class StaleActivityAccount:
    account_id: str
    account_name: str
    segment: str
    open_deals: int
    total_value: float
    last_activity: str | None = None
    reference: date | None = field(default=None, compare=False)

    @property
    def last_activity_date(self) -> date | None:
        if self.last_activity is None:
            return None
        return date.fromisoformat(self.last_activity[:10])

    @property
    def days_since_activity(self) -> int | None:
        """Whole days from the last activity to the reference date, None if never active."""
        last = self.last_activity_date
        if last is None or self.reference is None:
            return None
        return (self.reference - last).days


# =============================================================================
# SQL Rendering
# =============================================================================


def _closed_by_date_sql(prefix: str) -> str:
    return f'({prefix}.closed_at >= :closure_start AND {prefix}.closed_at <= :closure_end)'


def _closed_by_fallback_creation_sql(prefix: str) -> str:
    return (
        f'({prefix}.closed_at IS NULL'
        f' AND {prefix}.stage IN (:closure_won, :closure_lost)'
        f' AND {prefix}.created_at >= :closure_start AND {prefix}.created_at <= :closure_end)'
    )


_CLOSURE_SQL = {
    ClosureBasis.CLOSED_BY_DATE: _closed_by_date_sql,
    ClosureBasis.CLOSED_BY_FALLBACK_CREATION: _closed_by_fallback_creation_sql,
}


def _in_clause(column: str, name: str, values: tuple[Any, ...], params: dict[str, Any]) -> str:
    placeholders = []
    for i, value in enumerate(values):
        key = f'{name}_{i}'
        params[key] = value.value if isinstance(value, Enum) else value
        placeholders.append(f':{key}')
    return f"{column} IN ({', '.join(placeholders)})"


def render_deal_query(query: DealQuery, prefix: str = 'd') -> tuple[str, dict[str, Any]]:
    """
    Render a DealQuery as a SQL WHERE clause body and its parameters.

    The caller must join ``accounts`` as ``a`` when ``query.segment`` is set.
    """
    clauses: list[str] = []
    params: dict[str, Any] = {}

    if query.stages is not None:
        if not query.stages:
            clauses.append('1 = 0')
        else:
            clauses.append(_in_clause(f'{prefix}.stage', 'stage', query.stages, params))

    if query.open_as_of is not None:
        clauses.append(
            f'{prefix}.created_at <= :open_as_of'
            f' AND ({prefix}.closed_at IS NULL OR {prefix}.closed_at > :open_as_of)'
        )
        params['open_as_of'] = query.open_as_of.isoformat()

    if query.closed_within is not None:
        fragments = [_CLOSURE_SQL[basis](prefix) for basis in query.closed_within.bases]
        clauses.append('(' + ' OR '.join(fragments) + ')')
        params['closure_start'] = query.closed_within.window.start.isoformat()
        params['closure_end'] = query.closed_within.window.end.isoformat()
        if query.closed_within.allow_creation_fallback:
            params['closure_won'] = DealStage.CLOSED_WON.value
            params['closure_lost'] = DealStage.CLOSED_LOST.value

    if query.amount_required:
        clauses.append(f'{prefix}.amount IS NOT NULL')

    if query.older_than is not None:
        clauses.append(f'julianday(:age_reference) - julianday({prefix}.created_at) > :age_days')
        params['age_reference'] = query.older_than.reference.isoformat()
        params['age_days'] = query.older_than.days

    if query.segment is not None:
        clauses.append('a.segment = :segment')
        params['segment'] = query.segment

    where = ' AND '.join(clauses) if clauses else '1 = 1'
    return where, params


def _from_clause(query: DealQuery) -> str:
    if query.segment is not None:
        return 'deals d JOIN accounts a ON d.account_id = a.account_id'
    return 'deals d'


# =============================================================================
# Repository
# =============================================================================


class RevenueRepository:
    """
    Read-only queries over accounts, reps, deals, activities and targets.

    Holds an explicit DatabaseClient handle; construct one repository per
    client and share it freely (it keeps no per-request state).
    """

    def __init__(self, db: DatabaseClient):
        self.db = db

    # =========================================================================
    # Deal Aggregates
    # =========================================================================

    def sum_deal_amount(self, query: DealQuery) -> float:
        """Sum of non-null amounts over matching deals (0 when none)."""
        where, params = render_deal_query(query)
        rows = self.db.execute_query(
            f'SELECT COALESCE(SUM(d.amount), 0) AS value FROM {_from_clause(query)} WHERE {where}',
            params,
        )
        return float(rows[0]['value']) if rows else 0.0

    def count_deals(self, query: DealQuery) -> int:
        """Number of matching deals."""
        where, params = render_deal_query(query)
        rows = self.db.execute_query(
            f'SELECT COUNT(*) AS count FROM {_from_clause(query)} WHERE {where}',
            params,
        )
        return int(rows[0]['count']) if rows else 0

    def avg_deal_amount(self, query: DealQuery) -> float | None:
        """Mean non-null amount over matching deals, None when there are none."""
        where, params = render_deal_query(query)
        rows = self.db.execute_query(
            f'SELECT AVG(d.amount) AS value FROM {_from_clause(query)} WHERE {where}',
            params,
        )
        value = rows[0]['value'] if rows else None
        return float(value) if value is not None else None

    def avg_deal_cycle_days(self, query: DealQuery) -> float | None:
        """Mean days from created_at to closed_at over matching deals with a close date."""
        where, params = render_deal_query(query)
        rows = self.db.execute_query(
            f"""
            SELECT AVG(julianday(d.closed_at) - julianday(d.created_at)) AS value
            FROM {_from_clause(query)}
            WHERE d.closed_at IS NOT NULL AND {where}
            """,
            params,
        )
        value = rows[0]['value'] if rows else None
        return float(value) if value is not None else None

    def group_deals_by_stage(self, query: DealQuery) -> list[StageAggregate]:
        """Amount sum and deal count per stage, in stage enumeration order."""
        where, params = render_deal_query(query)
        rows = self.db.execute_query(
            f"""
            SELECT d.stage AS stage, COALESCE(SUM(d.amount), 0) AS value, COUNT(*) AS count
            FROM {_from_clause(query)}
            WHERE {where}
            GROUP BY d.stage
            """,
            params,
        )
        try:
            aggregates = [
                StageAggregate(stage=DealStage(r['stage']), value=float(r['value']), count=int(r['count']))
                for r in rows
            ]
        except (KeyError, ValueError) as e:
            raise DatabaseQueryError(f'Malformed stage aggregate row: {e}', context={'rows': rows}) from e
        order = list(DealStage)
        return sorted(aggregates, key=lambda agg: order.index(agg.stage))

    def list_deals(
        self,
        query: DealQuery,
        limit: int | None = None,
    ) -> list[DealListing]:
        """
        Matching deals joined with account name and segment, largest first.

        Unsized deals sort last; equal amounts fall back to ``deal_id``.

        Args:
            query: Deal predicates
            limit: Maximum rows to return (None for all)
        """
        where, params = render_deal_query(query)
        sql = f"""
            SELECT d.deal_id, d.account_id, d.rep_id, d.stage, d.amount,
                   d.created_at, d.closed_at,
                   a.name AS account_name, a.segment AS segment
            FROM deals d
            JOIN accounts a ON d.account_id = a.account_id
            WHERE {where}
            ORDER BY d.amount DESC, d.deal_id ASC
        """
        if limit is not None:
            sql += ' LIMIT :limit'
            params['limit'] = limit
        rows = self.db.execute_query(sql, params)
        return [self._row_to_listing(r) for r in rows]

    # =========================================================================
    # Rep / Segment / Account Aggregates
    # =========================================================================

    def rep_win_loss_counts(self, window: DateRange) -> list[RepWinLoss]:
        """
        Won/lost/total decisions per rep for deals with closed_at in ``window``.

        Only reps with at least one decision are returned, ordered by rep_id.
        """
        rows = self.db.execute_query(
            """
            SELECT r.rep_id AS rep_id, r.name AS rep_name,
                   SUM(CASE WHEN d.stage = :won THEN 1 ELSE 0 END) AS won,
                   SUM(CASE WHEN d.stage = :lost THEN 1 ELSE 0 END) AS lost,
                   COUNT(d.deal_id) AS total
            FROM reps r
            JOIN deals d ON r.rep_id = d.rep_id
            WHERE d.stage IN (:won, :lost)
                AND d.closed_at >= :start AND d.closed_at <= :end
            GROUP BY r.rep_id, r.name
            ORDER BY r.rep_id
            """,
            {
                'won': DealStage.CLOSED_WON.value,
                'lost': DealStage.CLOSED_LOST.value,
                'start': window.start.isoformat(),
                'end': window.end.isoformat(),
            },
        )
        return [
            RepWinLoss(
                rep_id=r['rep_id'],
                rep_name=r['rep_name'],
                won=int(r['won'] or 0),
                lost=int(r['lost'] or 0),
                total=int(r['total'] or 0),
            )
            for r in rows
        ]

    def segment_pipeline_and_win_rate(
        self,
        window: DateRange,
        open_as_of: date | None = None,
    ) -> list[SegmentPerformance]:
        """
        Open pipeline and closed-in-window decisions per account segment.

        Args:
            window: Range for won/lost decisions (strict closed_at)
            open_as_of: Point-in-time for open pipeline (defaults to window end)
        """
        reference = open_as_of or window.end
        params: dict[str, Any] = {
            'won': DealStage.CLOSED_WON.value,
            'lost': DealStage.CLOSED_LOST.value,
            'ref': reference.isoformat(),
            'start': window.start.isoformat(),
            'end': window.end.isoformat(),
        }
        open_stages = _in_clause('d.stage', 'open_stage', OPEN_STAGES, params)
        open_predicate = (
            f'{open_stages} AND d.created_at <= :ref'
            ' AND (d.closed_at IS NULL OR d.closed_at > :ref)'
        )
        rows = self.db.execute_query(
            f"""
            SELECT a.segment AS segment,
                   SUM(CASE WHEN {open_predicate} THEN 1 ELSE 0 END) AS open_count,
                   COALESCE(SUM(CASE WHEN {open_predicate} THEN d.amount ELSE 0 END), 0) AS open_value,
                   SUM(CASE WHEN d.stage = :won
                            AND d.closed_at >= :start AND d.closed_at <= :end
                       THEN 1 ELSE 0 END) AS won,
                   SUM(CASE WHEN d.stage IN (:won, :lost)
                            AND d.closed_at >= :start AND d.closed_at <= :end
                       THEN 1 ELSE 0 END) AS decided
            FROM accounts a
            JOIN deals d ON a.account_id = d.account_id
            GROUP BY a.segment
            ORDER BY a.segment
            """,
            params,
        )
        return [
            SegmentPerformance(
                segment=r['segment'],
                open_count=int(r['open_count'] or 0),
                open_value=float(r['open_value'] or 0),
                won=int(r['won'] or 0),
                decided=int(r['decided'] or 0),
            )
            for r in rows
        ]

    def accounts_with_stale_activity(
        self,
        open_as_of: date,
        activity_window_days: int,
        limit: int | None = None,
    ) -> list[StaleActivityAccount]:
        """
        Accounts with open pipeline but no recent engagement.

        An account qualifies when it has at least one deal in an open stage
        that is open as of ``open_as_of``, and its latest activity dated on or
        before ``open_as_of`` is missing or more than ``activity_window_days``
        days old. Ordered by open value, largest first.
        """
        params: dict[str, Any] = {
            'ref': open_as_of.isoformat(),
            'window_days': activity_window_days,
        }
        open_stages = _in_clause('d.stage', 'open_stage', OPEN_STAGES, params)
        sql = f"""
            SELECT a.account_id AS account_id,
                   a.name AS account_name,
                   a.segment AS segment,
                   COUNT(DISTINCT d.deal_id) AS open_deals,
                   COALESCE(SUM(d.amount), 0) AS total_value,
                   (
                       SELECT MAX(act.timestamp)
                       FROM activities act
                       JOIN deals deal ON act.deal_id = deal.deal_id
                       WHERE deal.account_id = a.account_id
                           AND date(act.timestamp) <= :ref
                   ) AS last_activity
            FROM accounts a
            JOIN deals d ON a.account_id = d.account_id
            WHERE {open_stages}
                AND d.created_at <= :ref
                AND (d.closed_at IS NULL OR d.closed_at > :ref)
            GROUP BY a.account_id, a.name, a.segment
            HAVING last_activity IS NULL
                OR julianday(:ref) - julianday(date(last_activity)) > :window_days
            ORDER BY total_value DESC, a.account_id ASC
        """
        if limit is not None:
            sql += ' LIMIT :limit'
            params['limit'] = limit
        rows = self.db.execute_query(sql, params)
        return [
            StaleActivityAccount(
                account_id=r['account_id'],
                account_name=r['account_name'],
                segment=r['segment'],
                open_deals=int(r['open_deals']),
                total_value=float(r['total_value'] or 0),
                last_activity=r['last_activity'],
                reference=open_as_of,
            )
            for r in rows
        ]

    # =========================================================================
    # Targets
    # =========================================================================

    def targets_for_months(self, months: list[str]) -> dict[str, float]:
        """Target per ``YYYY-MM`` month, in the order given; 0 for months with no target."""
        if not months:
            return {}
        params: dict[str, Any] = {}
        in_months = _in_clause('month', 'month', tuple(months), params)
        rows = self.db.execute_query(
            f'SELECT month, target FROM targets WHERE {in_months}',
            params,
        )
        found = {r['month']: float(r['target'] or 0) for r in rows}
        return {month: found.get(month, 0.0) for month in months}

    # =========================================================================
    # Row Helpers
    # =========================================================================

    @staticmethod
    def _row_to_listing(row: dict[str, Any]) -> DealListing:
        try:
            deal = Deal(
                deal_id=row['deal_id'],
                account_id=row['account_id'],
                rep_id=row['rep_id'],
                stage=row['stage'],
                amount=row['amount'],
                created_at=row['created_at'],
                closed_at=row['closed_at'],
            )
        except (KeyError, PydanticValidationError) as e:
            logger.warning('repository.malformed_deal_row', deal_id=row.get('deal_id'), error=str(e))
            raise DatabaseQueryError(
                f'Malformed deal row: {row.get("deal_id")}',
                context={'row': row},
            ) from e
        return DealListing(deal=deal, account_name=row['account_name'], segment=row['segment'])

