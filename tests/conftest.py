"""
Pytest configuration and shared fixtures.

Key fixtures:
- db: In-memory SQLite DatabaseClient with the schema created
- repository: RevenueRepository over ``db``
- engine: RevenueAnalyticsEngine over ``repository``
- data: SalesDataBuilder for inserting accounts, reps, deals, activities
  and targets into ``db``

Every test gets its own in-memory database; nothing is shared between tests.
"""

import sys
from datetime import date, datetime
from pathlib import Path

import pytest

# Add src to path for imports
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

from revenue_analytics.analytics.engine import RevenueAnalyticsEngine
from revenue_analytics.clients.database_client import DatabaseClient
from revenue_analytics.quarters import QuarterWindow, parse_quarter, resolve_window
from revenue_analytics.repository import RevenueRepository


def _iso(value: date | str | None) -> str | None:
    if value is None or isinstance(value, str):
        return value
    return value.isoformat()


class SalesDataBuilder:
    """
    Inserts rows straight into the store.

    Deals referencing an unknown account or rep create a default one, so
    tests only spell out what they care about.
    """

    def __init__(self, db: DatabaseClient):
        self.db = db

    def account(
        self,
        account_id: str,
        name: str | None = None,
        segment: str = 'Enterprise',
        industry: str = 'Technology',
    ) -> str:
        self.db.execute_write(
            'INSERT OR REPLACE INTO accounts (account_id, name, industry, segment) '
            'VALUES (:account_id, :name, :industry, :segment)',
            {
                'account_id': account_id,
                'name': name or f'Account {account_id}',
                'industry': industry,
                'segment': segment,
            },
        )
        return account_id

    def rep(self, rep_id: str, name: str | None = None) -> str:
        self.db.execute_write(
            'INSERT OR REPLACE INTO reps (rep_id, name) VALUES (:rep_id, :name)',
            {'rep_id': rep_id, 'name': name or f'Rep {rep_id}'},
        )
        return rep_id

    def deal(
        self,
        deal_id: str,
        stage: str,
        amount: float | None,
        created_at: date | str,
        closed_at: date | str | None = None,
        account_id: str = 'acc-1',
        rep_id: str = 'rep-1',
    ) -> str:
        self.db.execute_write(
            'INSERT OR IGNORE INTO accounts (account_id, name, industry, segment) '
            "VALUES (:account_id, :name, 'Technology', 'Enterprise')",
            {'account_id': account_id, 'name': f'Account {account_id}'},
        )
        self.db.execute_write(
            'INSERT OR IGNORE INTO reps (rep_id, name) VALUES (:rep_id, :name)',
            {'rep_id': rep_id, 'name': f'Rep {rep_id}'},
        )
        self.db.execute_write(
            'INSERT INTO deals (deal_id, account_id, rep_id, stage, amount, created_at, closed_at) '
            'VALUES (:deal_id, :account_id, :rep_id, :stage, :amount, :created_at, :closed_at)',
            {
                'deal_id': deal_id,
                'account_id': account_id,
                'rep_id': rep_id,
                'stage': stage,
                'amount': amount,
                'created_at': _iso(created_at),
                'closed_at': _iso(closed_at),
            },
        )
        return deal_id

    def activity(self, activity_id: str, deal_id: str, timestamp: datetime | str, type: str = 'call') -> str:
        value = timestamp.isoformat() if isinstance(timestamp, datetime) else timestamp
        self.db.execute_write(
            'INSERT INTO activities (activity_id, deal_id, type, timestamp) '
            'VALUES (:activity_id, :deal_id, :type, :timestamp)',
            {'activity_id': activity_id, 'deal_id': deal_id, 'type': type, 'timestamp': value},
        )
        return activity_id

    def target(self, month: str, target: float) -> None:
        self.db.execute_write(
            'INSERT OR REPLACE INTO targets (month, target) VALUES (:month, :target)',
            {'month': month, 'target': target},
        )


@pytest.fixture
def db():
    """In-memory database with the schema in place."""
    client = DatabaseClient('sqlite://')
    client.setup_schema()
    yield client
    client.close()


@pytest.fixture
def repository(db) -> RevenueRepository:
    return RevenueRepository(db)


@pytest.fixture
def engine(repository) -> RevenueAnalyticsEngine:
    return RevenueAnalyticsEngine(repository)


@pytest.fixture
def data(db) -> SalesDataBuilder:
    return SalesDataBuilder(db)


@pytest.fixture
def q1_2025() -> QuarterWindow:
    """Resolved window for Q1 2025 (2025-01-01 .. 2025-03-31)."""
    return resolve_window(parse_quarter('Q1', 2025))
