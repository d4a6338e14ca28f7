"""
Relational store client for the Revenue Analytics engine.

Wraps a SQLAlchemy 2.0 engine and executes raw parameterized SQL. The
schema mirrors the sales dataset: accounts, reps, deals, activities and
monthly targets. Dates are stored as ISO ``YYYY-MM-DD`` text and activity
timestamps as ISO datetimes, so range predicates compare lexically and day
arithmetic uses SQLite's ``julianday()``.

One client is built at process start and handed to the repository; there is
no module-level connection.
"""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterable, Iterator

import structlog
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Connection, Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from ..config import config
from ..errors import wrap_database_error

logger = structlog.get_logger(__name__)


_TABLES: list[tuple[str, str]] = [
    (
        'accounts',
        """
        CREATE TABLE IF NOT EXISTS accounts (
            account_id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            industry TEXT NOT NULL,
            segment TEXT NOT NULL
        )
        """,
    ),
    (
        'reps',
        """
        CREATE TABLE IF NOT EXISTS reps (
            rep_id TEXT PRIMARY KEY,
            name TEXT NOT NULL
        )
        """,
    ),
    (
        'deals',
        """
        CREATE TABLE IF NOT EXISTS deals (
            deal_id TEXT PRIMARY KEY,
            account_id TEXT NOT NULL,
            rep_id TEXT NOT NULL,
            stage TEXT NOT NULL,
            amount REAL,
            created_at TEXT NOT NULL,
            closed_at TEXT,
            FOREIGN KEY (account_id) REFERENCES accounts(account_id),
            FOREIGN KEY (rep_id) REFERENCES reps(rep_id)
        )
        """,
    ),
    (
        'activities',
        """
        CREATE TABLE IF NOT EXISTS activities (
            activity_id TEXT PRIMARY KEY,
            deal_id TEXT NOT NULL,
            type TEXT NOT NULL,
            timestamp TEXT NOT NULL,
            FOREIGN KEY (deal_id) REFERENCES deals(deal_id)
        )
        """,
    ),
    (
        'targets',
        """
        CREATE TABLE IF NOT EXISTS targets (
            month TEXT PRIMARY KEY,
            target REAL NOT NULL
        )
        """,
    ),
]

_INDEXES: list[tuple[str, str]] = [
    ('idx_deals_stage', 'CREATE INDEX IF NOT EXISTS idx_deals_stage ON deals(stage)'),
    ('idx_deals_rep_id', 'CREATE INDEX IF NOT EXISTS idx_deals_rep_id ON deals(rep_id)'),
    ('idx_deals_account_id', 'CREATE INDEX IF NOT EXISTS idx_deals_account_id ON deals(account_id)'),
    ('idx_deals_created_at', 'CREATE INDEX IF NOT EXISTS idx_deals_created_at ON deals(created_at)'),
    ('idx_activities_deal_id', 'CREATE INDEX IF NOT EXISTS idx_activities_deal_id ON activities(deal_id)'),
    ('idx_activities_timestamp', 'CREATE INDEX IF NOT EXISTS idx_activities_timestamp ON activities(timestamp)'),
]


def _is_memory_url(url: str) -> bool:
    return url in ('sqlite://', 'sqlite:///:memory:') or 'mode=memory' in url


def _ensure_sqlite_directory(url: str) -> None:
    """SQLite creates the file but not its parent directory."""
    database = make_url(url).database
    if database:
        Path(database).parent.mkdir(parents=True, exist_ok=True)


class DatabaseClient:
    """
    Synchronous SQL client over a single SQLAlchemy engine.

    Configuration:
    - database_url: SQLAlchemy URL (defaults to DATABASE_URL env var).
      In-memory SQLite URLs share one connection across the process so the
      seeded data stays visible to every query.
    """

    def __init__(self, database_url: str | None = None):
        """
        Initialize the client.

        Args:
            database_url: SQLAlchemy database URL (defaults to config.DATABASE_URL)
        """
        self.database_url = database_url or config.DATABASE_URL
        if not self.database_url:
            raise ValueError('database_url is required')
        self._engine: Engine | None = None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            self.connect()
        return self._engine

    def connect(self) -> None:
        """Create the engine. Idempotent: no-op if already connected."""
        if self._engine is not None:
            return

        if _is_memory_url(self.database_url):
            self._engine = create_engine(
                self.database_url,
                connect_args={'check_same_thread': False},
                poolclass=StaticPool,
            )
        elif self.database_url.startswith('sqlite'):
            _ensure_sqlite_directory(self.database_url)
            self._engine = create_engine(
                self.database_url,
                connect_args={'check_same_thread': False},
            )
        else:
            self._engine = create_engine(self.database_url, pool_pre_ping=True)
        logger.info('database_client.connected', url=self._engine.url.render_as_string(hide_password=True))

    def close(self) -> None:
        """Dispose of the engine and connection pool."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            logger.info('database_client.closed')

    def verify_connectivity(self) -> bool:
        """Run a trivial query; True if the store answers."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text('SELECT 1'))
            return True
        except SQLAlchemyError as e:
            logger.warning('database_client.connectivity_failed', error=str(e))
            return False

    def setup_schema(self) -> dict[str, list[str]]:
        """
        Create all tables and indexes if they do not exist.

        Returns:
            Dict with lists of ensured tables and indexes
        """
        created: dict[str, list[str]] = {'tables': [], 'indexes': []}
        try:
            with self.engine.begin() as conn:
                for name, ddl in _TABLES:
                    conn.execute(text(ddl))
                    created['tables'].append(name)
                for name, ddl in _INDEXES:
                    conn.execute(text(ddl))
                    created['indexes'].append(name)
        except SQLAlchemyError as e:
            raise wrap_database_error(e, context={'operation': 'setup_schema'}) from e

        logger.info(
            'database_client.schema_ready',
            tables=len(created['tables']),
            indexes=len(created['indexes']),
        )
        return created

    def execute_query(
        self,
        query: str,
        parameters: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """
        Execute a read query and return results.

        Args:
            query: SQL string with ``:name`` placeholders
            parameters: Query parameters

        Returns:
            List of result rows as dicts
        """
        try:
            with self.engine.connect() as conn:
                result = conn.execute(text(query), parameters or {})
                return [dict(row) for row in result.mappings()]
        except SQLAlchemyError as e:
            raise wrap_database_error(e, context={'operation': 'execute_query'}) from e

    def execute_write(
        self,
        query: str,
        parameters: dict[str, Any] | Iterable[dict[str, Any]] | None = None,
    ) -> int:
        """
        Execute a write statement within a transaction.

        Args:
            query: SQL string with ``:name`` placeholders
            parameters: One parameter dict, or an iterable of them for executemany

        Returns:
            Number of rows affected (as reported by the driver)
        """
        if parameters is None or isinstance(parameters, dict):
            params: Any = parameters or {}
        else:
            params = list(parameters)
            if not params:
                return 0
        try:
            with self.engine.begin() as conn:
                result = conn.execute(text(query), params)
                return result.rowcount
        except SQLAlchemyError as e:
            raise wrap_database_error(e, context={'operation': 'execute_write'}) from e

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        """
        Yield a connection bound to one transaction.

        Every statement run on the connection commits together when the block
        exits cleanly and rolls back together if anything in it raises.

        Usage:
            with db.transaction() as conn:
                conn.execute(text('DELETE FROM targets'))
                conn.execute(text('INSERT INTO targets ...'), rows)
        """
        try:
            with self.engine.begin() as conn:
                yield conn
        except SQLAlchemyError as e:
            raise wrap_database_error(e, context={'operation': 'transaction'}) from e
