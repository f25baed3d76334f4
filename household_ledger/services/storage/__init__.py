"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Google Sheets is the remote backend; the in-memory store serves
development and tests.
"""

from household_ledger.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    LedgerStoreInterface,
    PartialWriteError,
    StorageError,
)
from household_ledger.services.storage.memory import InMemoryLedgerStore
from household_ledger.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsLedgerStore,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "LedgerStoreInterface",
    # Exceptions
    "ConnectionError",
    "PartialWriteError",
    "StorageError",
    # In-memory implementation
    "InMemoryLedgerStore",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsLedgerStore",
]
