"""
Audit Logger

Every significant ledger action is logged, both to a structured local
log and, when configured, to the audit sheet.

The audit logger:
- Is async so it can share the caller's event loop
- Never lets an audit storage failure break the ledger operation
- Supports correlation IDs to trace the events of one user action
"""

from datetime import date
from typing import Optional
from uuid import UUID, uuid4

import structlog

from household_ledger.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from household_ledger.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence and user visibility)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("household_ledger.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_categories_listed(
        self,
        count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.categories_listed(count, correlation_id))

    async def log_category_list_failed(
        self,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(
            AuditEventBuilder.category_list_failed(error_message, correlation_id)
        )

    async def log_category_added(
        self,
        category_id: int,
        name: str,
        order: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a successful category add."""
        event = AuditEventBuilder.category_added(
            category_id=category_id,
            name=name,
            order=order,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_category_rejected(
        self,
        raw_name: str,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a rejected category add."""
        event = AuditEventBuilder.category_rejected(
            raw_name=raw_name,
            reason=reason,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_day_loaded(
        self,
        day: date,
        entry_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.day_loaded(day, entry_count, correlation_id))

    async def log_day_load_failed(
        self,
        day: date,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(
            AuditEventBuilder.day_load_failed(day, error_message, correlation_id)
        )

    async def log_stale_load_discarded(
        self,
        day: date,
        active_day: Optional[date],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(
            AuditEventBuilder.stale_load_discarded(day, active_day, correlation_id)
        )

    async def log_ledger_saved(
        self,
        day: date,
        saved_count: int,
        dropped_category_ids: list[int],
        total: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a completed day save."""
        event = AuditEventBuilder.ledger_saved(
            day=day,
            saved_count=saved_count,
            dropped_category_ids=dropped_category_ids,
            total=total,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_nothing_to_save(
        self,
        day: date,
        dropped_category_ids: list[int],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(
            AuditEventBuilder.nothing_to_save(day, dropped_category_ids, correlation_id)
        )

    async def log_save_failed(
        self,
        day: date,
        stage: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a save that failed before anything was deleted, or while re-reading."""
        event = AuditEventBuilder.save_failed(
            day=day,
            stage=stage,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_partial_save_failure(
        self,
        day: date,
        pending_count: int,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log the delete-succeeded, insert-failed window."""
        event = AuditEventBuilder.partial_save_failure(
            day=day,
            pending_count=pending_count,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_monthly_total_computed(
        self,
        month: str,
        total: str,
        entry_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(
            AuditEventBuilder.monthly_total_computed(month, total, entry_count, correlation_id)
        )

    async def log_monthly_total_failed(
        self,
        month: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(
            AuditEventBuilder.monthly_total_failed(month, error_message, correlation_id)
        )

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., a save).
    Pass it through all subsequent operations.
    """
    return uuid4()
