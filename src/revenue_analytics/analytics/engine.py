"""
Engine facade for the Revenue Analytics views.

Every entry point follows the same path:
1. Validate the raw (quarter, year) request
2. Resolve all date ranges for the quarter once
3. Run the requested computation(s) against the repository
4. Convert any repository failure into a single ComputationError

Usage:
    db = DatabaseClient('sqlite:///data/revenue.db')
    engine = RevenueAnalyticsEngine(RevenueRepository(db))
    summary = engine.summary('Q1', 2025)
"""

from __future__ import annotations

from typing import Callable, TypeVar

from ..clients.database_client import DatabaseClient
from ..errors import ComputationError, DatabaseError
from ..logging import StageTimer, get_logger, logging_context
from ..models.views import (
    DashboardView,
    DriversView,
    RecommendationsView,
    RiskFactorsView,
    SummaryView,
)
from ..quarters import QuarterWindow, parse_quarter, resolve_window
from ..repository import RevenueRepository
from .drivers import DriversComputation
from .recommendations import RecommendationsComputation
from .risk_factors import RiskFactorsComputation
from .summary import SummaryComputation

logger = get_logger(__name__)

ViewT = TypeVar('ViewT')


class RevenueAnalyticsEngine:
    """
    Computes the four dashboard views for a quarter.

    Accepts either a RevenueRepository or a DatabaseClient (wrapped in a
    repository). The engine holds no per-request state.
    """

    def __init__(self, repository: RevenueRepository | DatabaseClient):
        if isinstance(repository, DatabaseClient):
            repository = RevenueRepository(repository)
        self.repository = repository

        self.summary_computation = SummaryComputation(repository)
        self.drivers_computation = DriversComputation(repository)
        self.risk_factors_computation = RiskFactorsComputation(repository)
        self.recommendations_computation = RecommendationsComputation(repository)

    def resolve(self, quarter: str, year: int | str) -> QuarterWindow:
        """
        Validate and resolve a (quarter, year) request.

        Raises:
            InvalidQuarterError: If quarter or year is not recognized
        """
        return resolve_window(parse_quarter(quarter, year))

    def _run(self, view: str, window: QuarterWindow, compute: Callable[[QuarterWindow], ViewT]) -> ViewT:
        try:
            return compute(window)
        except DatabaseError as e:
            logger.error(
                f'engine.{view}.failed',
                error=str(e),
                error_type=type(e).__name__,
            )
            raise ComputationError(
                'computation failed',
                context={
                    'view': view,
                    'quarter': window.label,
                    'cause': str(e),
                    'cause_type': type(e).__name__,
                },
            ) from e

    def _view(self, view: str, quarter: str, year: int | str, compute: Callable[[QuarterWindow], ViewT]) -> ViewT:
        window = self.resolve(quarter, year)
        with logging_context(quarter=window.label):
            timer = StageTimer()
            with timer.stage(view):
                result = self._run(view, window, compute)
            logger.info(f'engine.{view}.complete', duration_ms=timer.timings()[view])
            return result

    # =========================================================================
    # Views
    # =========================================================================

    def summary(self, quarter: str, year: int | str) -> SummaryView:
        return self._view('summary', quarter, year, self.summary_computation.compute)

    def drivers(self, quarter: str, year: int | str) -> DriversView:
        return self._view('drivers', quarter, year, self.drivers_computation.compute)

    def risk_factors(self, quarter: str, year: int | str) -> RiskFactorsView:
        return self._view('risk_factors', quarter, year, self.risk_factors_computation.compute)

    def recommendations(self, quarter: str, year: int | str) -> RecommendationsView:
        return self._view('recommendations', quarter, year, self.recommendations_computation.compute)

    def dashboard(self, quarter: str, year: int | str) -> DashboardView:
        """
        All four views for one quarter, resolved once.

        Views are computed one after another; ``timings`` holds each stage's
        duration in milliseconds plus the total.
        """
        window = self.resolve(quarter, year)
        timer = StageTimer()

        with logging_context(quarter=window.label):
            with timer.stage('summary'):
                summary = self._run('summary', window, self.summary_computation.compute)
            with timer.stage('drivers'):
                drivers = self._run('drivers', window, self.drivers_computation.compute)
            with timer.stage('risk_factors'):
                risk_factors = self._run('risk_factors', window, self.risk_factors_computation.compute)
            with timer.stage('recommendations'):
                recommendations = self._run(
                    'recommendations', window, self.recommendations_computation.compute
                )

            timings = timer.timings()
            logger.info('engine.dashboard.complete', **timings)

        return DashboardView(
            quarter_label=window.label,
            summary=summary,
            drivers=drivers,
            risk_factors=risk_factors,
            recommendations=recommendations,
            timings=timings,
        )
