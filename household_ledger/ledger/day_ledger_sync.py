"""
Day Ledger Sync

Moves one day's expenses between the store and the editable input
state, and writes edits back as a whole-day replacement.

STATE MACHINE:
    IDLE -> load(d) -> LOADING -> LOADED            (state from store)
                               -> ERROR             (previous state kept)
    LOADED -> edit(...) -> LOADED                   (raw text kept verbatim)
    LOADED -> save()    -> SAVING -> LOADED         (state re-read from store)
                                  -> ERROR          (edits kept)

ORDERING RULES:
- Every load bumps a generation counter. A load whose generation is no
  longer current when it resolves is discarded (last-issued day wins).
- Only one save runs at a time; a second request is rejected while
  SAVING or LOADING.
- A save returns only after its writes and the follow-up read have
  resolved, so a total recomputed afterwards never sees a half-written
  day.

WRITE PATHS:
- Atomic: stores advertising supports_atomic_replace swap the day's
  rows in one call.
- Delete-then-insert: otherwise the day is cleared and then refilled.
  An insert failure after a successful delete leaves the day empty in
  the store and is reported as PARTIAL_SAVE_FAILURE. Saving again
  repairs it. A delete that stops after removing some of the day's
  rows is reported the same way.
"""

from datetime import date, datetime
from typing import Callable, Optional
from uuid import UUID

from household_ledger.audit import AuditLogger
from household_ledger.ledger.amounts import daily_total, format_amount, persistable_amount
from household_ledger.ledger.category_catalog import CategoryCatalog
from household_ledger.ledger.errors import (
    LedgerBusy,
    NothingToSave,
    PartialSaveFailure,
    StoreUnavailable,
)
from household_ledger.models.ledger import (
    DayInputState,
    ExpenseEntry,
    OperationResult,
    SaveReceipt,
    SyncStatus,
)
from household_ledger.services.storage import (
    LedgerStoreInterface,
    PartialWriteError,
    StorageError,
)


class DayLedgerSync:
    """
    Loads and saves the ledger of the day being edited.

    Args:
        store: Ledger store collaborator.
        catalog: Category catalog; only its categories are persisted and
            their names drive entry descriptions.
        audit_logger: Optional audit logger.
        clock: Returns the timestamp written to created_at.
    """

    def __init__(
        self,
        store: LedgerStoreInterface,
        catalog: CategoryCatalog,
        audit_logger: Optional[AuditLogger] = None,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self._store = store
        self._catalog = catalog
        self._audit_logger = audit_logger
        self._clock = clock

        self._status = SyncStatus.IDLE
        self._active_date: Optional[date] = None
        self._generation = 0

        # Input state and the day it was loaded for
        self._input: DayInputState = {}
        self._state_date: Optional[date] = None
        self._entries: list[ExpenseEntry] = []

        self._last_error: Optional[str] = None

    # -------------------------------------------------------------------------
    # Read-only views
    # -------------------------------------------------------------------------

    @property
    def status(self) -> SyncStatus:
        return self._status

    @property
    def active_date(self) -> Optional[date]:
        return self._active_date

    @property
    def state_date(self) -> Optional[date]:
        """Day the current input state was loaded for."""
        return self._state_date

    @property
    def input_state(self) -> DayInputState:
        return dict(self._input)

    @property
    def entries(self) -> list[ExpenseEntry]:
        """Persisted rows of the loaded day, newest first."""
        return list(self._entries)

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    @property
    def is_busy(self) -> bool:
        return self._status in (SyncStatus.LOADING, SyncStatus.SAVING)

    @property
    def daily_total(self):
        return daily_total(self._input)

    def value_for(self, category_id: int) -> str:
        """Input text for a category; absent categories read as empty."""
        return self._input.get(category_id, "")

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def _apply_rows(self, day: date, rows: list[ExpenseEntry]) -> None:
        self._input = {row.category_id: format_amount(row.amount) for row in rows}
        self._entries = sorted(rows, key=lambda r: r.created_at, reverse=True)
        self._state_date = day

    async def load(
        self,
        day: date,
        correlation_id: Optional[UUID] = None,
    ) -> OperationResult[DayInputState]:
        """
        Load the persisted entries of `day` into the input state.

        A result with stale=True means a later load superseded this one
        and the in-memory state was left alone.
        """
        self._generation += 1
        generation = self._generation
        self._active_date = day
        self._status = SyncStatus.LOADING

        try:
            rows = await self._store.list_expenses_for_date(day)
        except StorageError as e:
            if generation != self._generation:
                return OperationResult(
                    success=False,
                    error=StoreUnavailable.kind,
                    error_message=str(e),
                    stale=True,
                )
            self._status = SyncStatus.ERROR
            self._last_error = f"Could not load entries for {day.isoformat()}: {e}"
            if self._audit_logger:
                await self._audit_logger.log_day_load_failed(day, str(e), correlation_id)
            return StoreUnavailable(self._last_error).to_result()

        if generation != self._generation:
            if self._audit_logger:
                await self._audit_logger.log_stale_load_discarded(
                    day, self._active_date, correlation_id
                )
            return OperationResult.ok(
                {row.category_id: format_amount(row.amount) for row in rows},
                stale=True,
            )

        self._apply_rows(day, rows)
        self._status = SyncStatus.LOADED
        self._last_error = None
        if self._audit_logger:
            await self._audit_logger.log_day_loaded(day, len(rows), correlation_id)
        return OperationResult.ok(self.input_state)

    def edit(self, category_id: int, raw_value: str) -> bool:
        """
        Record the text typed for a category.

        No validation happens here. Returns False (and changes nothing)
        while a load or save is pending or before any day was loaded.
        """
        if self._status not in (SyncStatus.LOADED, SyncStatus.ERROR):
            return False
        self._input[category_id] = raw_value
        return True

    def _build_entries(
        self,
        day: date,
        now: datetime,
    ) -> tuple[list[ExpenseEntry], list[int]]:
        """Split the input state into rows to persist and dropped category ids."""
        entries: list[ExpenseEntry] = []
        dropped: list[int] = []

        for category_id, raw in self._input.items():
            category = self._catalog.get(category_id)
            amount = persistable_amount(raw)
            if category is None or amount is None:
                dropped.append(category_id)
                continue
            entries.append(
                ExpenseEntry(
                    date=day,
                    category_id=category_id,
                    amount=amount,
                    description=f"{category.name} expense",
                    created_at=now,
                )
            )

        entries.sort(key=lambda e: (self._catalog.get(e.category_id).order, e.category_id))
        return entries, sorted(dropped)

    async def _write(
        self,
        day: date,
        entries: list[ExpenseEntry],
        correlation_id: Optional[UUID],
    ) -> None:
        """Replace the day's rows. Raises StoreUnavailable or PartialSaveFailure."""
        if self._store.supports_atomic_replace:
            try:
                await self._store.replace_expenses_for_date(day, entries)
            except StorageError as e:
                if self._audit_logger:
                    await self._audit_logger.log_save_failed(day, "replace", str(e), correlation_id)
                raise StoreUnavailable(f"Could not save {day.isoformat()}: {e}")
            return

        try:
            await self._store.delete_expenses_for_date(day)
        except PartialWriteError as e:
            if self._audit_logger:
                await self._audit_logger.log_partial_save_failure(
                    day, len(entries), str(e), correlation_id
                )
            raise PartialSaveFailure(
                f"Only some entries for {day.isoformat()} were cleared "
                f"({e.completed} removed) and the new amounts were not written. "
                f"Save again to restore them."
            )
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_save_failed(day, "delete", str(e), correlation_id)
            raise StoreUnavailable(f"Could not save {day.isoformat()}: {e}")

        try:
            await self._store.insert_expenses(entries)
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_partial_save_failure(
                    day, len(entries), str(e), correlation_id
                )
            raise PartialSaveFailure(
                f"Entries for {day.isoformat()} were cleared but the new amounts "
                f"were not written ({e}). Save again to restore them."
            )

    async def save(
        self,
        correlation_id: Optional[UUID] = None,
    ) -> OperationResult[SaveReceipt]:
        """
        Persist the input state as the complete ledger of the active day.

        Blank, zero, negative, non-numeric and unknown-category inputs
        are dropped. If nothing remains the store is not touched and
        NOTHING_TO_SAVE is returned.

        A failed result may still carry a SaveReceipt as its value: that
        means the writes completed and only the follow-up read failed.
        """
        if self._status == SyncStatus.SAVING:
            return LedgerBusy("A save is already in progress.").to_result()
        if self._status == SyncStatus.LOADING:
            return LedgerBusy("Entries are still loading.").to_result()

        day = self._active_date
        if day is None or self._state_date != day:
            label = day.isoformat() if day else "this day"
            return StoreUnavailable(
                f"Entries for {label} are not loaded. Reload before saving."
            ).to_result()

        entries, dropped = self._build_entries(day, self._clock())
        if not entries:
            if self._audit_logger:
                await self._audit_logger.log_nothing_to_save(day, dropped, correlation_id)
            return NothingToSave("There are no amounts above zero to save.").to_result()

        generation = self._generation
        self._status = SyncStatus.SAVING

        try:
            await self._write(day, entries, correlation_id)
        except (StoreUnavailable, PartialSaveFailure) as e:
            if generation == self._generation:
                self._status = SyncStatus.ERROR
                self._last_error = str(e)
            return e.to_result()

        receipt = SaveReceipt(date=day, saved=entries, dropped_category_ids=dropped)
        if self._audit_logger:
            await self._audit_logger.log_ledger_saved(
                day=day,
                saved_count=len(entries),
                dropped_category_ids=dropped,
                total=format_amount(receipt.total),
                correlation_id=correlation_id,
            )

        # Re-read so the form shows exactly what is persisted
        try:
            rows = await self._store.list_expenses_for_date(day)
        except StorageError as e:
            if generation == self._generation:
                self._status = SyncStatus.ERROR
                self._last_error = f"Saved, but could not reload {day.isoformat()}: {e}"
            if self._audit_logger:
                await self._audit_logger.log_save_failed(day, "reload", str(e), correlation_id)
            return StoreUnavailable(
                f"Saved, but could not reload {day.isoformat()}: {e}"
            ).to_result(value=receipt)

        if generation == self._generation:
            self._apply_rows(day, rows)
            self._status = SyncStatus.LOADED
            self._last_error = None
        return OperationResult.ok(receipt)
