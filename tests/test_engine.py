"""
Tests for the RevenueAnalyticsEngine facade.
"""

from unittest.mock import MagicMock

import pytest

from revenue_analytics.analytics.engine import RevenueAnalyticsEngine
from revenue_analytics.errors import (
    ComputationError,
    DatabaseConnectionError,
    DatabaseQueryError,
    InvalidQuarterError,
)
from revenue_analytics.models import DashboardView, SummaryView
from revenue_analytics.repository import RevenueRepository


def _failing_repository(error: Exception) -> MagicMock:
    repository = MagicMock(spec=RevenueRepository)
    for name in (
        'sum_deal_amount',
        'count_deals',
        'avg_deal_amount',
        'avg_deal_cycle_days',
        'group_deals_by_stage',
        'list_deals',
        'rep_win_loss_counts',
        'segment_pipeline_and_win_rate',
        'accounts_with_stale_activity',
        'targets_for_months',
    ):
        getattr(repository, name).side_effect = error
    return repository


class TestInputValidation:
    """Test that bad input is rejected before any query runs."""

    @pytest.mark.parametrize('quarter,year', [('Q5', 2025), ('Q1', 'twenty'), ('', 2025), ('Q2', 12)])
    def test_invalid_input_rejected(self, quarter, year):
        repository = MagicMock(spec=RevenueRepository)
        engine = RevenueAnalyticsEngine(repository)

        with pytest.raises(InvalidQuarterError):
            engine.summary(quarter, year)

        repository.sum_deal_amount.assert_not_called()

    def test_dashboard_validates_too(self, engine):
        with pytest.raises(InvalidQuarterError):
            engine.dashboard('Q0', 2025)


class TestViews:
    """Test the four views and the dashboard through the engine."""

    def test_accepts_database_client(self, db, data):
        data.deal('D-1', 'Closed Won', 10000, '2025-01-02', '2025-01-15')

        engine = RevenueAnalyticsEngine(db)
        view = engine.summary('Q1', '2025')

        assert isinstance(engine.repository, RevenueRepository)
        assert isinstance(view, SummaryView)
        assert view.current_quarter_revenue == 10000

    def test_each_view(self, engine, data):
        data.deal('D-1', 'Prospecting', 60000, '2024-11-01')

        assert engine.drivers('Q1', 2025).pipeline_size == 60000
        assert engine.risk_factors('Q1', 2025).stale_deals.count == 1
        assert engine.recommendations('Q1', 2025).total_recommendations == 1

    def test_dashboard(self, engine, data):
        data.deal('D-1', 'Closed Won', 10000, '2025-01-02', '2025-01-15')

        view = engine.dashboard('Q1', 2025)

        assert isinstance(view, DashboardView)
        assert view.quarter_label == 'Q1 2025'
        assert view.summary.current_quarter_revenue == 10000
        assert set(view.timings) == {'summary', 'drivers', 'risk_factors', 'recommendations', 'total'}
        assert all(ms >= 0 for ms in view.timings.values())

    def test_dashboard_serializes_camel_case(self, engine):
        payload = engine.dashboard('Q2', 2025).model_dump(by_alias=True)

        assert set(payload) == {
            'quarterLabel',
            'summary',
            'drivers',
            'riskFactors',
            'recommendations',
            'timings',
        }


class TestFailureHandling:
    """Test that repository failures surface as a single computation error."""

    @pytest.mark.parametrize('view', ['summary', 'drivers', 'risk_factors', 'recommendations', 'dashboard'])
    def test_database_failure_becomes_computation_error(self, view):
        engine = RevenueAnalyticsEngine(_failing_repository(DatabaseQueryError('no such table: deals')))

        with pytest.raises(ComputationError) as exc_info:
            getattr(engine, view)('Q1', 2025)

        error = exc_info.value
        assert error.message == 'computation failed'
        assert error.context['quarter'] == 'Q1 2025'
        assert error.context['cause_type'] == 'DatabaseQueryError'
        assert isinstance(error.__cause__, DatabaseQueryError)

    def test_connection_failure(self):
        engine = RevenueAnalyticsEngine(_failing_repository(DatabaseConnectionError('unable to open')))

        with pytest.raises(ComputationError) as exc_info:
            engine.summary('Q1', 2025)

        assert exc_info.value.context['view'] == 'summary'

    def test_other_errors_propagate_unchanged(self):
        engine = RevenueAnalyticsEngine(_failing_repository(KeyError('boom')))

        with pytest.raises(KeyError):
            engine.summary('Q1', 2025)
