"""
Data Models Package

This package contains all Pydantic models used in the Household Ledger.
All data flowing between components and storage conforms to these schemas.
"""

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
from household_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "Category",
    "DayInputState",
    "ErrorKind",
    "ExpenseEntry",
    "Notice",
    "NoticeSeverity",
    "OperationResult",
    "SaveReceipt",
    "SyncStatus",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
