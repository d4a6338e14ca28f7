"""
Load the sales dataset from JSON files into the relational store.

Reads accounts.json, reps.json, deals.json, activities.json and
targets.json from a data directory, validates every row through the entity
models, clears existing rows and inserts the new ones.

Usage:
    python -m revenue_analytics.seed --data-dir ./data
    python -m revenue_analytics.seed --data-dir ./data --database-url sqlite:///data/revenue.db --strict
"""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import text

from .clients.database_client import DatabaseClient
from .config import config
from .errors import DataIntegrityError, RevenueAnalyticsError, ValidationError
from .logging import get_logger
from .models.entities import Account, Activity, Deal, Rep, Target

logger = get_logger(__name__)

# Children first so foreign keys never dangle
_CLEAR_ORDER = ('activities', 'deals', 'targets', 'reps', 'accounts')

_INSERTS: dict[str, str] = {
    'accounts': (
        'INSERT INTO accounts (account_id, name, industry, segment) '
        'VALUES (:account_id, :name, :industry, :segment)'
    ),
    'reps': 'INSERT INTO reps (rep_id, name) VALUES (:rep_id, :name)',
    'deals': (
        'INSERT INTO deals (deal_id, account_id, rep_id, stage, amount, created_at, closed_at) '
        'VALUES (:deal_id, :account_id, :rep_id, :stage, :amount, :created_at, :closed_at)'
    ),
    'activities': (
        'INSERT INTO activities (activity_id, deal_id, type, timestamp) '
        'VALUES (:activity_id, :deal_id, :type, :timestamp)'
    ),
    'targets': 'INSERT INTO targets (month, target) VALUES (:month, :target)',
}


@dataclass
class Dataset:
    """Validated rows for every table."""

    accounts: list[Account] = field(default_factory=list)
    reps: list[Rep] = field(default_factory=list)
    deals: list[Deal] = field(default_factory=list)
    activities: list[Activity] = field(default_factory=list)
    targets: list[Target] = field(default_factory=list)


@dataclass
class SeedResult:
    """Row counts inserted per table, plus any invariant warnings."""

    accounts: int = 0
    reps: int = 0
    deals: int = 0
    activities: int = 0
    targets: int = 0
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            'accounts': self.accounts,
            'reps': self.reps,
            'deals': self.deals,
            'activities': self.activities,
            'targets': self.targets,
            'warnings': self.warnings,
        }


def _load_rows(path: Path, model: type[BaseModel]) -> list[Any]:
    try:
        raw = json.loads(path.read_text(encoding='utf-8'))
    except FileNotFoundError as e:
        raise ValidationError(f'Missing data file: {path.name}', context={'path': str(path)}) from e
    except json.JSONDecodeError as e:
        raise ValidationError(
            f'Invalid JSON in {path.name}: {e}',
            context={'path': str(path)},
        ) from e

    if not isinstance(raw, list):
        raise ValidationError(
            f'{path.name} must contain a JSON array',
            context={'path': str(path), 'type': type(raw).__name__},
        )

    rows = []
    for index, item in enumerate(raw):
        try:
            rows.append(model.model_validate(item))
        except PydanticValidationError as e:
            raise ValidationError(
                f'Invalid row {index} in {path.name}',
                context={'path': str(path), 'index': index, 'errors': e.errors()},
            ) from e
    return rows


def load_dataset(data_dir: str | Path) -> Dataset:
    """
    Read and validate all five data files.

    Raises:
        ValidationError: If a file is missing, malformed, or holds an invalid row
    """
    base = Path(data_dir)
    return Dataset(
        accounts=_load_rows(base / 'accounts.json', Account),
        reps=_load_rows(base / 'reps.json', Rep),
        deals=_load_rows(base / 'deals.json', Deal),
        activities=_load_rows(base / 'activities.json', Activity),
        targets=_load_rows(base / 'targets.json', Target),
    )


def check_integrity(deals: list[Deal], strict: bool = False) -> list[str]:
    """
    Check every deal against the stage / close date invariant.

    Returns:
        One message per offending deal

    Raises:
        DataIntegrityError: In strict mode, on the first offending deal
    """
    problems = []
    for deal in deals:
        violation = deal.integrity_violation()
        if violation is None:
            continue
        if strict:
            raise DataIntegrityError(violation, context={'deal_id': deal.deal_id})
        logger.warning('seed.integrity_violation', deal_id=deal.deal_id, detail=violation)
        problems.append(violation)
    return problems


def _deal_row(deal: Deal) -> dict[str, Any]:
    return {
        'deal_id': deal.deal_id,
        'account_id': deal.account_id,
        'rep_id': deal.rep_id,
        'stage': deal.stage.value,
        'amount': deal.amount,
        'created_at': deal.created_at.isoformat(),
        'closed_at': deal.closed_at.isoformat() if deal.closed_at else None,
    }


def _activity_row(activity: Activity) -> dict[str, Any]:
    return {
        'activity_id': activity.activity_id,
        'deal_id': activity.deal_id,
        'type': activity.type,
        'timestamp': activity.timestamp.isoformat(),
    }


def write_dataset(db: DatabaseClient, dataset: Dataset) -> SeedResult:
    """
    Replace every table's rows with the dataset in a single transaction.

    A failed insert rolls back the clear as well, so the store keeps its
    previous contents.
    """
    rows: dict[str, list[dict[str, Any]]] = {
        'accounts': [a.model_dump() for a in dataset.accounts],
        'reps': [r.model_dump() for r in dataset.reps],
        'deals': [_deal_row(d) for d in dataset.deals],
        'activities': [_activity_row(a) for a in dataset.activities],
        'targets': [t.model_dump() for t in dataset.targets],
    }

    with db.transaction() as conn:
        for table in _CLEAR_ORDER:
            conn.execute(text(f'DELETE FROM {table}'))
        for table, params in rows.items():
            if params:
                conn.execute(text(_INSERTS[table]), params)

    result = SeedResult(
        accounts=len(dataset.accounts),
        reps=len(dataset.reps),
        deals=len(dataset.deals),
        activities=len(dataset.activities),
        targets=len(dataset.targets),
    )

    logger.info(
        'seed.inserted',
        accounts=result.accounts,
        reps=result.reps,
        deals=result.deals,
        activities=result.activities,
        targets=result.targets,
    )
    return result


def seed_database(db: DatabaseClient, data_dir: str | Path, strict: bool = False) -> SeedResult:
    """
    Validate the dataset in ``data_dir`` and replace the store's contents with it.

    Args:
        db: Connected client; the schema is created if missing
        data_dir: Directory holding the five JSON files
        strict: Raise DataIntegrityError on the first deal breaking the
            stage / close date invariant instead of warning

    Returns:
        SeedResult with inserted counts and any integrity warnings
    """
    dataset = load_dataset(data_dir)
    warnings = check_integrity(dataset.deals, strict=strict)

    db.setup_schema()
    result = write_dataset(db, dataset)
    result.warnings = warnings
    return result


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description='Load the sales dataset JSON files into the revenue analytics database'
    )
    parser.add_argument(
        '--data-dir', '-d',
        default=config.DATA_DIR,
        help='Directory containing accounts/reps/deals/activities/targets JSON (default: DATA_DIR)',
    )
    parser.add_argument(
        '--database-url',
        default=None,
        help='SQLAlchemy database URL (default: DATABASE_URL)',
    )
    parser.add_argument(
        '--strict',
        action='store_true',
        help='Fail on deals whose stage and close date disagree',
    )
    args = parser.parse_args(argv)

    db = DatabaseClient(args.database_url)
    try:
        result = seed_database(db, args.data_dir, strict=args.strict)
    except RevenueAnalyticsError as e:
        logger.error('seed.failed', error=str(e), error_type=type(e).__name__)
        return 1
    finally:
        db.close()

    logger.info('seed.complete', **result.to_dict())
    return 0


if __name__ == '__main__':
    sys.exit(main())
