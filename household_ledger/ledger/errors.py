"""Ledger failure taxonomy. Each exception knows its ErrorKind."""

from household_ledger.models.ledger import ErrorKind, OperationResult


class LedgerError(Exception):
    """Base exception for ledger operations."""

    kind: ErrorKind = ErrorKind.STORE_UNAVAILABLE

    def to_result(self, value=None) -> OperationResult:
        return OperationResult.failed(self.kind, str(self), value=value)


class StoreUnavailable(LedgerError):
    """The store could not serve a query or write. Prior state is kept."""
    kind = ErrorKind.STORE_UNAVAILABLE


class ValidationError(LedgerError):
    """Local input was rejected before touching the store."""
    kind = ErrorKind.VALIDATION_ERROR


class NothingToSave(LedgerError):
    """A save had no positive amounts. The store was not touched."""
    kind = ErrorKind.NOTHING_TO_SAVE


class PartialSaveFailure(LedgerError):
    """The day's rows were deleted but the new rows were not written."""
    kind = ErrorKind.PARTIAL_SAVE_FAILURE


class LedgerBusy(LedgerError):
    """A save was requested while a load or save is still pending."""
    kind = ErrorKind.LEDGER_BUSY
