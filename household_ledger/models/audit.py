"""
Audit Models for Household Ledger

Every catalog change, ledger load, save and total recompute is
recorded as an AuditEvent. Audit logs are append-only: events are
never modified or deleted.
"""

import json
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Each ledger operation has its own success and failure events.
    """
    # Category catalog
    CATEGORIES_LISTED = "categories_listed"
    CATEGORY_LIST_FAILED = "category_list_failed"
    CATEGORY_ADDED = "category_added"
    CATEGORY_REJECTED = "category_rejected"

    # Day ledger
    DAY_LOADED = "day_loaded"
    DAY_LOAD_FAILED = "day_load_failed"
    STALE_LOAD_DISCARDED = "stale_load_discarded"
    LEDGER_SAVED = "ledger_saved"
    NOTHING_TO_SAVE = "nothing_to_save"
    SAVE_FAILED = "save_failed"
    PARTIAL_SAVE_FAILURE = "partial_save_failure"

    # Monthly aggregation
    MONTHLY_TOTAL_COMPUTED = "monthly_total_computed"
    MONTHLY_TOTAL_FAILED = "monthly_total_failed"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what is this about? ("category", "day", "month")
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity the event relates to"
    )
    entity_key: Optional[str] = Field(
        default=None,
        description="Key of the entity (category id, YYYY-MM-DD, YYYY-MM)"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate the events of one user action"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_key": self.entity_key,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_key,
         correlation_id, description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_key or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.category_added(category_id, name, order, correlation_id)
        event = AuditEventBuilder.ledger_saved(day, saved, dropped, total, correlation_id)
    """

    @staticmethod
    def categories_listed(
        count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORIES_LISTED,
            severity=AuditSeverity.DEBUG,
            entity_type="catalog",
            correlation_id=correlation_id,
            description=f"Catalog listed {count} categories",
            details={"count": count},
        )

    @staticmethod
    def category_list_failed(
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORY_LIST_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="catalog",
            correlation_id=correlation_id,
            description="Could not list categories, keeping last known catalog",
            error_message=error_message,
        )

    @staticmethod
    def category_added(
        category_id: int,
        name: str,
        order: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORY_ADDED,
            entity_type="category",
            entity_key=str(category_id),
            correlation_id=correlation_id,
            description=f"Category added: {name}",
            details={"name": name, "order": order},
            is_user_action=True,
        )

    @staticmethod
    def category_rejected(
        raw_name: str,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORY_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="category",
            correlation_id=correlation_id,
            description="Category rejected",
            details={"raw_name": raw_name, "reason": reason},
            is_user_action=True,
        )

    @staticmethod
    def day_loaded(
        day: date,
        entry_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DAY_LOADED,
            severity=AuditSeverity.DEBUG,
            entity_type="day",
            entity_key=day.isoformat(),
            correlation_id=correlation_id,
            description=f"Loaded {entry_count} entries for {day.isoformat()}",
            details={"entry_count": entry_count},
        )

    @staticmethod
    def day_load_failed(
        day: date,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DAY_LOAD_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="day",
            entity_key=day.isoformat(),
            correlation_id=correlation_id,
            description=f"Could not load entries for {day.isoformat()}",
            error_message=error_message,
        )

    @staticmethod
    def stale_load_discarded(
        day: date,
        active_day: Optional[date],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STALE_LOAD_DISCARDED,
            severity=AuditSeverity.DEBUG,
            entity_type="day",
            entity_key=day.isoformat(),
            correlation_id=correlation_id,
            description=f"Discarded superseded load for {day.isoformat()}",
            details={"active_day": active_day.isoformat() if active_day else None},
        )

    @staticmethod
    def ledger_saved(
        day: date,
        saved_count: int,
        dropped_category_ids: list[int],
        total: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_SAVED,
            entity_type="day",
            entity_key=day.isoformat(),
            correlation_id=correlation_id,
            description=f"Saved {saved_count} entries for {day.isoformat()} - {total}",
            details={
                "saved_count": saved_count,
                "dropped_category_ids": dropped_category_ids,
                "total": total,
            },
            is_user_action=True,
        )

    @staticmethod
    def nothing_to_save(
        day: date,
        dropped_category_ids: list[int],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.NOTHING_TO_SAVE,
            severity=AuditSeverity.WARNING,
            entity_type="day",
            entity_key=day.isoformat(),
            correlation_id=correlation_id,
            description=f"Save for {day.isoformat()} had no positive amounts",
            details={"dropped_category_ids": dropped_category_ids},
            is_user_action=True,
        )

    @staticmethod
    def save_failed(
        day: date,
        stage: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="day",
            entity_key=day.isoformat(),
            correlation_id=correlation_id,
            description=f"Save for {day.isoformat()} failed during {stage}",
            details={"stage": stage},
            error_message=error_message,
        )

    @staticmethod
    def partial_save_failure(
        day: date,
        pending_count: int,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PARTIAL_SAVE_FAILURE,
            severity=AuditSeverity.CRITICAL,
            entity_type="day",
            entity_key=day.isoformat(),
            correlation_id=correlation_id,
            description=(
                f"Ledger for {day.isoformat()} was cleared but "
                f"{pending_count} entries were not written"
            ),
            details={"pending_count": pending_count},
            error_message=error_message,
        )

    @staticmethod
    def monthly_total_computed(
        month: str,
        total: str,
        entry_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MONTHLY_TOTAL_COMPUTED,
            severity=AuditSeverity.DEBUG,
            entity_type="month",
            entity_key=month,
            correlation_id=correlation_id,
            description=f"Monthly total for {month}: {total}",
            details={"total": total, "entry_count": entry_count},
        )

    @staticmethod
    def monthly_total_failed(
        month: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MONTHLY_TOTAL_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="month",
            entity_key=month,
            correlation_id=correlation_id,
            description=f"Could not compute monthly total for {month}",
            error_message=error_message,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
