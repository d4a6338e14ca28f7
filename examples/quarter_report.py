#!/usr/bin/env python3
"""
Example: Print a quarter's revenue dashboard from a seeded database.

This script demonstrates:
1. Seeding a database from the JSON dataset (optional)
2. Computing all four views for one quarter through the engine
3. Printing the headline numbers and ranked recommendations

Prerequisites:
    - A data directory with accounts/reps/deals/activities/targets JSON, or
      an already-seeded DATABASE_URL

Usage:
    python examples/quarter_report.py Q1 2025
    python examples/quarter_report.py Q4 2024 --seed ./data
"""

import argparse
import sys
from pathlib import Path

# Add src to path for imports
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

from revenue_analytics.analytics import RevenueAnalyticsEngine
from revenue_analytics.clients import DatabaseClient
from revenue_analytics.errors import RevenueAnalyticsError
from revenue_analytics.seed import seed_database


def print_dashboard(engine: RevenueAnalyticsEngine, quarter: str, year: str) -> None:
    view = engine.dashboard(quarter, year)
    summary = view.summary
    drivers = view.drivers
    risk = view.risk_factors

    print('=' * 60)
    print(f'REVENUE DASHBOARD: {view.quarter_label}')
    print('=' * 60)

    print('\n--- Summary ---')
    print(f'  Revenue:     ${summary.current_quarter_revenue:,}')
    print(f'  Target:      ${summary.target:,}')
    print(f'  Gap:         ${summary.gap_amount:,} ({summary.gap_percent}%)')
    print(f'  QoQ change:  {summary.qoq_change}%')
    yoy = f'{summary.yoy_change}%' if summary.yoy_change is not None else 'n/a'
    print(f'  YoY change:  {yoy}')

    print('\n--- Drivers ---')
    print(f'  Pipeline:        ${drivers.pipeline_size:,} ({drivers.pipeline_change}%)')
    print(f'  Win rate:        {drivers.win_rate}% ({drivers.win_rate_change:+} pts)')
    print(f'  Avg deal size:   ${drivers.avg_deal_size:,} ({drivers.avg_deal_size_change}%)')
    print(f'  Sales cycle:     {drivers.sales_cycle_time} days ({drivers.sales_cycle_time_change:+})')
    for stage in drivers.pipeline_by_stage:
        print(f'    {stage.stage:<12} {stage.count:>4} deals  ${stage.value:,}')

    print('\n--- Risk Factors ---')
    print(f'  Stale deals:            {risk.summary.stale_deals_count}')
    print(f'  Underperforming reps:   {risk.summary.underperforming_reps_count}')
    print(f'  Low-activity accounts:  {risk.summary.low_activity_accounts_count}')

    print('\n--- Recommendations ---')
    for rec in view.recommendations.recommendations:
        print(f'  [{rec.priority.value.upper()}] {rec.title}')
        print(f'      {rec.description}')
    print(f'  ({view.recommendations.total_recommendations} total)')

    print('\n--- Timings (ms) ---')
    for stage, ms in view.timings.items():
        print(f'  {stage:<16} {ms}')


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(description='Print the revenue dashboard for a quarter')
    parser.add_argument('quarter', help='Quarter label, Q1..Q4')
    parser.add_argument('year', help='Four-digit year')
    parser.add_argument('--database-url', default=None, help='SQLAlchemy URL (default: DATABASE_URL)')
    parser.add_argument('--seed', metavar='DATA_DIR', default=None, help='Seed from this directory first')
    args = parser.parse_args()

    db = DatabaseClient(args.database_url)
    try:
        db.setup_schema()
        if args.seed:
            result = seed_database(db, args.seed)
            print(f'Seeded: {result.to_dict()}')
        print_dashboard(RevenueAnalyticsEngine(db), args.quarter, args.year)
    except RevenueAnalyticsError as e:
        print(f'Error: {e}')
        return 1
    finally:
        db.close()
    return 0


if __name__ == '__main__':
    sys.exit(main())
