"""GET /api/* routes for the quarter-scoped dashboard views."""

from typing import Any

from fastapi import APIRouter, Query, Request

from revenue_analytics.analytics.engine import RevenueAnalyticsEngine

router = APIRouter(prefix="/api")

# Both stay strings; parse_quarter validates them and answers 400
QuarterParam = Query(..., description="Quarter label, Q1..Q4")
YearParam = Query(..., description="Four-digit year")


def _engine(request: Request) -> RevenueAnalyticsEngine:
    return request.app.state.engine


@router.get("/summary")
def summary(request: Request, quarter: str = QuarterParam, year: str = YearParam) -> dict[str, Any]:
    """Revenue against target for the quarter."""
    return _engine(request).summary(quarter, year).model_dump(by_alias=True, mode="json")


@router.get("/drivers")
def drivers(request: Request, quarter: str = QuarterParam, year: str = YearParam) -> dict[str, Any]:
    """Pipeline, win rate, deal size and cycle time with their deltas."""
    return _engine(request).drivers(quarter, year).model_dump(by_alias=True, mode="json")


@router.get("/risk-factors")
def risk_factors(request: Request, quarter: str = QuarterParam, year: str = YearParam) -> dict[str, Any]:
    """Stale deals, underperforming reps and low-activity accounts."""
    return _engine(request).risk_factors(quarter, year).model_dump(by_alias=True, mode="json")


@router.get("/recommendations")
def recommendations(request: Request, quarter: str = QuarterParam, year: str = YearParam) -> dict[str, Any]:
    """Ranked action items."""
    return _engine(request).recommendations(quarter, year).model_dump(by_alias=True, mode="json")


@router.get("/dashboard")
def dashboard(request: Request, quarter: str = QuarterParam, year: str = YearParam) -> dict[str, Any]:
    """All four views plus per-stage timings."""
    return _engine(request).dashboard(quarter, year).model_dump(by_alias=True, mode="json")
