"""
Core Data Models for Household Ledger

These models define the schemas for everything that crosses a
component or storage boundary:
1. Categories and persisted expense entries
2. The editable per-day input state
3. Operation outcomes and user-facing notices

Amounts are Decimal with two places. Floats never enter the ledger.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Generic, Optional, TypeVar
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


T = TypeVar("T")

# category_id -> amount string exactly as typed by the user
DayInputState = dict[int, str]

CATEGORY_NAME_MAX_LENGTH = 100
CATEGORY_ICON_MAX_LENGTH = 8


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class SyncStatus(str, Enum):
    """
    Lifecycle of the day ledger being edited.

    IDLE -> LOADING -> LOADED <-> SAVING, with ERROR reachable from
    LOADING and SAVING. ERROR keeps the in-memory edits.
    """
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    SAVING = "saving"
    ERROR = "error"


class ErrorKind(str, Enum):
    """Failure taxonomy surfaced to callers."""
    STORE_UNAVAILABLE = "store_unavailable"
    VALIDATION_ERROR = "validation_error"
    NOTHING_TO_SAVE = "nothing_to_save"
    PARTIAL_SAVE_FAILURE = "partial_save_failure"
    LEDGER_BUSY = "ledger_busy"


class NoticeSeverity(str, Enum):
    """How loudly the presentation layer should show a notice."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


# =============================================================================
# PERSISTED RECORDS
# =============================================================================

class Category(BaseModel):
    """
    An expense category.

    Categories are append-only: they are added, listed and never
    deleted. `order` drives display and iteration order.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: int = Field(
        ...,
        description="Identifier assigned by the store"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=CATEGORY_NAME_MAX_LENGTH,
        description="Display name"
    )
    icon: str = Field(
        default="📦",
        max_length=CATEGORY_ICON_MAX_LENGTH,
        description="Icon shown next to the name"
    )
    order: int = Field(
        ...,
        ge=0,
        description="Position in the catalog, ascending"
    )


class ExpenseEntry(BaseModel):
    """
    One persisted expense row.

    (date, category_id) is the logical key: a day holds at most one
    entry per category, and only positive amounts are ever stored.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    date: dt.date = Field(
        ...,
        description="Calendar day the expense belongs to"
    )
    category_id: int = Field(
        ...,
        description="References Category.id"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        decimal_places=2,
        description="Amount spent, two decimal places"
    )
    description: str = Field(
        default="",
        max_length=200,
    )
    created_at: dt.datetime = Field(
        default_factory=dt.datetime.utcnow,
        description="When the row was written"
    )


class SaveReceipt(BaseModel):
    """What a completed save actually wrote."""

    date: dt.date
    saved: list[ExpenseEntry] = Field(default_factory=list)
    dropped_category_ids: list[int] = Field(
        default_factory=list,
        description="Categories whose input was blank, non-positive, non-numeric or unknown"
    )

    @property
    def total(self) -> Decimal:
        return sum((entry.amount for entry in self.saved), Decimal("0.00"))


# =============================================================================
# OUTCOMES AND NOTICES
# =============================================================================

class OperationResult(BaseModel, Generic[T]):
    """
    Outcome of a store-facing operation.

    Core operations return one of these instead of raising, so the
    controller decides how each failure reaches the user.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    success: bool
    value: Optional[T] = None
    error: Optional[ErrorKind] = None
    error_message: Optional[str] = None

    # Set when a load resolved after a newer load superseded it
    stale: bool = False

    completed_at: dt.datetime = Field(
        default_factory=dt.datetime.utcnow
    )

    @classmethod
    def ok(cls, value: Optional[T] = None, stale: bool = False) -> "OperationResult[T]":
        return cls(success=True, value=value, stale=stale)

    @classmethod
    def failed(
        cls,
        error: ErrorKind,
        message: str,
        value: Optional[T] = None,
    ) -> "OperationResult[T]":
        return cls(success=False, error=error, error_message=message, value=value)


class Notice(BaseModel):
    """A dismissable message for the user."""

    id: UUID = Field(default_factory=uuid4)
    severity: NoticeSeverity = NoticeSeverity.INFO
    kind: Optional[ErrorKind] = None
    message: str = Field(..., min_length=1)
    created_at: dt.datetime = Field(default_factory=dt.datetime.utcnow)
    dismissed: bool = False
