"""
Custom exceptions and error handling for the Revenue Analytics engine.

Provides:
- Typed exception hierarchy for the three failure modes (invalid input,
  data-integrity violations, repository failures)
- Error context preservation for debugging
- Wrapping of raw driver exceptions into the hierarchy
"""

from typing import Any


class RevenueAnalyticsError(Exception):
    """Base exception for all revenue analytics errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            return f"{self.message} | context={self.context}"
        return self.message


# =============================================================================
# Input Errors
# =============================================================================


class ValidationError(RevenueAnalyticsError):
    """Input validation failed."""

    pass


class InvalidQuarterError(ValidationError):
    """Quarter label or year is not a recognized fiscal period."""

    pass


# =============================================================================
# Data Errors
# =============================================================================


class DataIntegrityError(RevenueAnalyticsError):
    """A record violates the deal stage / close date invariant."""

    pass


# =============================================================================
# Database Errors
# =============================================================================


class DatabaseError(RevenueAnalyticsError):
    """Error from the relational store."""

    pass


class DatabaseConnectionError(DatabaseError):
    """Failed to connect to the database."""

    pass


class DatabaseQueryError(DatabaseError):
    """Error executing a query."""

    pass


# =============================================================================
# Computation Errors
# =============================================================================


class ComputationError(RevenueAnalyticsError):
    """A metric view could not be computed."""

    pass


# =============================================================================
# Error Handling Utilities
# =============================================================================


def wrap_database_error(exc: Exception, context: dict[str, Any] | None = None) -> DatabaseError:
    """
    Wrap a SQLAlchemy / driver exception in our typed error hierarchy.

    Args:
        exc: The original exception
        context: Additional context for debugging

    Returns:
        Typed DatabaseError subclass
    """
    error_str = str(exc).lower()
    ctx = context or {}
    ctx['original_error'] = str(exc)
    ctx['error_type'] = type(exc).__name__

    if 'unable to open' in error_str or 'connect' in error_str:
        return DatabaseConnectionError(
            f"Database connection failed: {exc}",
            context=ctx,
        )
    else:
        return DatabaseQueryError(
            f"Database query error: {exc}",
            context=ctx,
        )
