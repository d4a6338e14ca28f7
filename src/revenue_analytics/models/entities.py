"""
Account, Rep, Deal, Activity and Target models.

These are immutable snapshots of the relational store. The engine never
mutates them; they are validated on the way in by the seeding command and
used directly by tests.

Key design decisions:
- Dates are plain ``date`` values; activity timestamps keep their time of day
  but all recency comparisons use the calendar date.
- Open/closed state is not stored. Queries reconstruct it for a reference
  date from the [created_at, closed_at) interval.
- A won or lost deal without a recorded close date is attributed to its
  creation date. The two attribution paths are tagged by ``ClosureBasis``.
"""

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

ENTERPRISE_SEGMENT = 'Enterprise'


class DealStage(str, Enum):
    """Fixed deal stage enumeration."""

    PROSPECTING = 'Prospecting'
    NEGOTIATION = 'Negotiation'
    CLOSED_WON = 'Closed Won'
    CLOSED_LOST = 'Closed Lost'

    @property
    def is_closed(self) -> bool:
        return self in CLOSED_STAGES


OPEN_STAGES: tuple[DealStage, ...] = (DealStage.PROSPECTING, DealStage.NEGOTIATION)
CLOSED_STAGES: tuple[DealStage, ...] = (DealStage.CLOSED_WON, DealStage.CLOSED_LOST)


class ClosureBasis(str, Enum):
    """Which date a closed deal is attributed to when bucketing by period."""

    CLOSED_BY_DATE = 'closed_by_date'
    CLOSED_BY_FALLBACK_CREATION = 'closed_by_fallback_creation'


class Account(BaseModel):
    """Customer account."""

    model_config = ConfigDict(frozen=True)

    account_id: str = Field(..., min_length=1)
    name: str
    industry: str
    segment: str


class Rep(BaseModel):
    """Sales representative."""

    model_config = ConfigDict(frozen=True)

    rep_id: str = Field(..., min_length=1)
    name: str


class Deal(BaseModel):
    """
    Sales opportunity.

    ``amount`` is None while the deal is unsized; ``closed_at`` is None while
    it is open (and, for some historical won deals, when the close date was
    never recorded).
    """

    model_config = ConfigDict(frozen=True)

    deal_id: str = Field(..., min_length=1)
    account_id: str
    rep_id: str
    stage: DealStage
    amount: float | None = None
    created_at: date
    closed_at: date | None = None

    @field_validator('created_at', 'closed_at', mode='before')
    @classmethod
    def _truncate_timestamps(cls, value):
        """Accept ISO timestamps and keep only the date part."""
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, str) and len(value) > 10:
            return value[:10]
        return value

    def age_days(self, reference: date) -> int:
        """Whole days between creation and ``reference``."""
        return (reference - self.created_at).days

    def integrity_violation(self) -> str | None:
        """Describe how this deal breaks the stage / close date invariant, if it does."""
        if self.closed_at is not None and not self.stage.is_closed:
            return f'deal {self.deal_id} in stage {self.stage.value!r} has closed_at {self.closed_at}'
        if self.closed_at is not None and self.closed_at < self.created_at:
            return f'deal {self.deal_id} closed before it was created'
        return None


class Activity(BaseModel):
    """Engagement touchpoint on a deal. Only its timestamp is used."""

    model_config = ConfigDict(frozen=True)

    activity_id: str = Field(..., min_length=1)
    deal_id: str
    type: str
    timestamp: datetime

    @field_validator('timestamp', mode='before')
    @classmethod
    def _accept_bare_dates(cls, value):
        if isinstance(value, date) and not isinstance(value, datetime):
            return datetime(value.year, value.month, value.day)
        return value

    @property
    def activity_date(self) -> date:
        return self.timestamp.date()


class Target(BaseModel):
    """Monthly revenue goal keyed by ``YYYY-MM``."""

    model_config = ConfigDict(frozen=True)

    month: str = Field(..., pattern=r'^\d{4}-(0[1-9]|1[0-2])$')
    target: float
