"""
Main Orchestrator for Household Ledger

This module wires the ledger components together and defines the
flows the presentation layer calls:
1. Initialize (categories -> day ledger -> monthly total)
2. Navigate (move the cursor -> reload the day -> recompute if the month changed)
3. Edit and Save (edit input -> save day -> recompute monthly total)
4. Add Category

The controller owns all mutable application state explicitly: the
cursor, the catalog, the day sync, the aggregator and the notices.
Components never reach for globals.

Failures never raise out of the controller. Each failed result
becomes a dismissable Notice.
"""

import logging
from datetime import date
from typing import Optional
from uuid import UUID

import structlog

from household_ledger.audit import AuditLogger, create_correlation_id
from household_ledger.config import get_settings
from household_ledger.ledger import (
    DEFAULT_ICON,
    CategoryCatalog,
    DateCursor,
    DayLedgerSync,
    MonthlyAggregator,
)
from household_ledger.models.ledger import (
    Category,
    DayInputState,
    ErrorKind,
    ExpenseEntry,
    Notice,
    NoticeSeverity,
    OperationResult,
    SaveReceipt,
    SyncStatus,
)
from household_ledger.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsLedgerStore,
    InMemoryLedgerStore,
    LedgerStoreInterface,
)


logger = structlog.get_logger("household_ledger.orchestrator")

NOTICE_SEVERITY = {
    ErrorKind.STORE_UNAVAILABLE: NoticeSeverity.WARNING,
    ErrorKind.VALIDATION_ERROR: NoticeSeverity.INFO,
    ErrorKind.NOTHING_TO_SAVE: NoticeSeverity.INFO,
    ErrorKind.PARTIAL_SAVE_FAILURE: NoticeSeverity.ERROR,
    ErrorKind.LEDGER_BUSY: NoticeSeverity.INFO,
}


class LedgerController:
    """
    App controller for the daily expense ledger.

    Args:
        store: Ledger store shared by every component.
        audit_logger: Optional audit logger shared by every component.
        cursor: Starting cursor. Defaults to today.
        default_icon: Icon for categories added without one.
        seed_defaults: Add the default categories when the catalog is empty.
    """

    def __init__(
        self,
        store: LedgerStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
        cursor: Optional[DateCursor] = None,
        default_icon: str = DEFAULT_ICON,
        seed_defaults: bool = True,
    ):
        self._seed_defaults = seed_defaults

        self.cursor = cursor or DateCursor()
        self.catalog = CategoryCatalog(store, default_icon, audit_logger)
        self.sync = DayLedgerSync(store, self.catalog, audit_logger)
        self.aggregator = MonthlyAggregator(store, audit_logger)

        self._notices: list[Notice] = []

    # -------------------------------------------------------------------------
    # State exposed to the presentation layer
    # -------------------------------------------------------------------------

    @property
    def current_date(self) -> date:
        return self.cursor.current

    @property
    def date_key(self) -> str:
        return self.cursor.key

    @property
    def categories(self) -> list[Category]:
        return self.catalog.categories

    @property
    def input_state(self) -> DayInputState:
        return self.sync.input_state

    @property
    def entries(self) -> list[ExpenseEntry]:
        return self.sync.entries

    @property
    def status(self) -> SyncStatus:
        return self.sync.status

    @property
    def is_loading(self) -> bool:
        return self.sync.status == SyncStatus.LOADING

    @property
    def is_saving(self) -> bool:
        return self.sync.status == SyncStatus.SAVING

    @property
    def is_busy(self) -> bool:
        return self.sync.is_busy

    @property
    def daily_total(self):
        return self.sync.daily_total

    @property
    def monthly_total(self):
        return self.aggregator.total

    @property
    def notices(self) -> list[Notice]:
        """Notices not yet dismissed, oldest first."""
        return [n for n in self._notices if not n.dismissed]

    def value_for(self, category_id: int) -> str:
        return self.sync.value_for(category_id)

    # -------------------------------------------------------------------------
    # Notices
    # -------------------------------------------------------------------------

    def post_notice(
        self,
        message: str,
        severity: NoticeSeverity = NoticeSeverity.INFO,
        kind: Optional[ErrorKind] = None,
    ) -> Notice:
        notice = Notice(message=message, severity=severity, kind=kind)
        self._notices.append(notice)
        return notice

    def _notice_for(self, result: OperationResult) -> Optional[Notice]:
        """Turn a failed, non-stale result into a notice."""
        if result.success or result.stale:
            return None
        severity = NOTICE_SEVERITY.get(result.error, NoticeSeverity.WARNING)
        return self.post_notice(
            result.error_message or "Something went wrong.",
            severity=severity,
            kind=result.error,
        )

    def dismiss_notice(self, notice_id: UUID) -> bool:
        for notice in self._notices:
            if notice.id == notice_id and not notice.dismissed:
                notice.dismissed = True
                return True
        return False

    def dismiss_all(self) -> None:
        for notice in self._notices:
            notice.dismissed = True

    # -------------------------------------------------------------------------
    # Flows
    # -------------------------------------------------------------------------

    async def initialize(self) -> None:
        """Load categories, then the current day, then the monthly total."""
        correlation_id = create_correlation_id()

        if self._seed_defaults:
            result = await self.catalog.seed_defaults(correlation_id=correlation_id)
        else:
            result = await self.catalog.list_categories(correlation_id)
        self._notice_for(result)

        await self._load_day(correlation_id)
        await self.refresh_total(correlation_id)

    async def _load_day(self, correlation_id: Optional[UUID] = None) -> OperationResult:
        result = await self.sync.load(self.cursor.current, correlation_id)
        self._notice_for(result)
        return result

    async def reload(self) -> OperationResult:
        """User-initiated reload of the current day."""
        return await self._load_day(create_correlation_id())

    async def refresh_categories(self) -> OperationResult:
        result = await self.catalog.list_categories(create_correlation_id())
        self._notice_for(result)
        return result

    async def refresh_total(self, correlation_id: Optional[UUID] = None) -> OperationResult:
        result = await self.aggregator.compute_total(
            self.cursor.current, correlation_id or create_correlation_id()
        )
        self._notice_for(result)
        return result

    async def _day_changed(self) -> None:
        correlation_id = create_correlation_id()
        current = self.cursor.current
        await self._load_day(correlation_id)
        if self.aggregator.needs_recompute(current):
            await self.refresh_total(correlation_id)

    async def navigate(self, delta_days: int) -> date:
        """Move the cursor by `delta_days` and reload what depends on it."""
        self.cursor.navigate(delta_days)
        await self._day_changed()
        return self.cursor.current

    async def go_to(self, day: date) -> date:
        self.cursor.go_to(day)
        await self._day_changed()
        return self.cursor.current

    async def go_to_today(self) -> date:
        return await self.go_to(self.cursor.today())

    def edit(self, category_id: int, raw_value: str) -> bool:
        return self.sync.edit(category_id, raw_value)

    async def save(self) -> OperationResult[SaveReceipt]:
        """
        Save the current day, then recompute the monthly total.

        The total is recomputed whenever the store may have changed:
        after a successful save, after a save whose follow-up read
        failed, and after a partial save failure.
        """
        correlation_id = create_correlation_id()
        result = await self.sync.save(correlation_id)

        if result.success:
            self.post_notice("Expenses saved successfully", NoticeSeverity.INFO)
        else:
            self._notice_for(result)

        store_changed = (
            result.success
            or result.value is not None
            or result.error == ErrorKind.PARTIAL_SAVE_FAILURE
        )
        if store_changed:
            await self.refresh_total(correlation_id)

        return result

    async def add_category(self, name: str, icon: Optional[str] = None) -> OperationResult[Category]:
        result = await self.catalog.add(name, icon=icon, correlation_id=create_correlation_id())
        self._notice_for(result)
        return result


def _configure_logging(level: str) -> None:
    logging.basicConfig(format="%(message)s", level=getattr(logging, level, logging.INFO))


def create_controller(
    use_storage: bool = True,
    cursor: Optional[DateCursor] = None,
) -> LedgerController:
    """
    Factory function to create the application controller.

    Args:
        use_storage: Whether to use the configured storage backend.
                    Set to False to run purely in memory.
        cursor: Optional starting cursor.

    Returns:
        A controller; call `await controller.initialize()` before use.
    """
    settings = get_settings()
    _configure_logging(settings.app.log_level)
    ledger_settings = settings.ledger

    store: LedgerStoreInterface = InMemoryLedgerStore()
    audit_logger = AuditLogger()  # Local-only logging

    if use_storage and ledger_settings.storage_backend == "google_sheets":
        try:
            sheets_client = GoogleSheetsClient()
            store = GoogleSheetsLedgerStore(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except Exception as e:
            # Storage not configured - continue in memory
            logger.warning("storage_not_configured", error=str(e))

    return LedgerController(
        store=store,
        audit_logger=audit_logger,
        cursor=cursor,
        default_icon=ledger_settings.default_category_icon,
        seed_defaults=ledger_settings.seed_default_categories,
    )
