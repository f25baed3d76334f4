"""Ledger core: date cursor, category catalog, day sync and monthly totals."""

from household_ledger.ledger.amounts import (
    coerce_amount,
    daily_total,
    format_amount,
    parse_amount,
    persistable_amount,
)
from household_ledger.ledger.category_catalog import (
    DEFAULT_CATEGORIES,
    DEFAULT_ICON,
    CategoryCatalog,
)
from household_ledger.ledger.date_cursor import (
    DateCursor,
    month_bounds,
    month_key,
    to_canonical_string,
)
from household_ledger.ledger.day_ledger_sync import DayLedgerSync
from household_ledger.ledger.errors import (
    LedgerBusy,
    LedgerError,
    NothingToSave,
    PartialSaveFailure,
    StoreUnavailable,
    ValidationError,
)
from household_ledger.ledger.monthly_aggregator import MonthlyAggregator

__all__ = [
    # Components
    "CategoryCatalog",
    "DateCursor",
    "DayLedgerSync",
    "MonthlyAggregator",
    # Errors
    "LedgerBusy",
    "LedgerError",
    "NothingToSave",
    "PartialSaveFailure",
    "StoreUnavailable",
    "ValidationError",
    # Helpers
    "DEFAULT_CATEGORIES",
    "DEFAULT_ICON",
    "coerce_amount",
    "daily_total",
    "format_amount",
    "month_bounds",
    "month_key",
    "parse_amount",
    "persistable_amount",
    "to_canonical_string",
]
