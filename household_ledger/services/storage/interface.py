"""
Abstract Storage Interface

The ledger talks to its persistent store only through these
interfaces, so the backing store can be:
1. Google Sheets (the default remote store)
2. In-memory (development and tests)
3. A real database later, without touching ledger logic

Two logical tables are exposed:
- expense_categories(id, name, icon, order): ordered list, append-only
- expenses(date, category_id, amount, description, created_at):
  read by day or date range, written by delete-by-day then bulk insert

The interface is intentionally small - just the operations the
ledger needs.
"""

from abc import ABC, abstractmethod
from datetime import date

from household_ledger.models.ledger import Category, ExpenseEntry
from household_ledger.models.audit import AuditEvent


class LedgerStoreInterface(ABC):
    """
    Abstract interface for category and expense storage.

    All methods raise StorageError (or a subclass) when the store
    cannot serve the request.
    """

    @property
    def supports_atomic_replace(self) -> bool:
        """True when replace_expenses_for_date swaps a day's rows in one step."""
        return False

    @abstractmethod
    async def list_categories(self) -> list[Category]:
        """
        List every category.

        Returns:
            Categories ordered by `order` ascending
        """
        pass

    @abstractmethod
    async def insert_category(self, name: str, icon: str, order: int) -> Category:
        """
        Append a category. The store assigns the id.

        Returns:
            The stored category
        """
        pass

    @abstractmethod
    async def list_expenses_for_date(self, day: date) -> list[ExpenseEntry]:
        """
        List every expense row whose date equals `day`.
        """
        pass

    @abstractmethod
    async def list_expenses_in_range(
        self,
        date_from: date,
        date_to: date,
    ) -> list[ExpenseEntry]:
        """
        List expense rows with date_from <= date <= date_to.
        """
        pass

    @abstractmethod
    async def delete_expenses_for_date(self, day: date) -> int:
        """
        Delete every expense row for `day`.

        Raises PartialWriteError when the delete failed after some of the
        day's rows were already removed.

        Returns:
            Number of rows deleted
        """
        pass

    @abstractmethod
    async def insert_expenses(self, entries: list[ExpenseEntry]) -> int:
        """
        Insert expense rows in bulk.

        Returns:
            Number of rows inserted
        """
        pass

    async def replace_expenses_for_date(
        self,
        day: date,
        entries: list[ExpenseEntry],
    ) -> int:
        """
        Replace the rows for `day` with `entries` in a single step.

        Only available when supports_atomic_replace is True.

        Returns:
            Number of rows inserted
        """
        raise NotImplementedError(
            f"{type(self).__name__} does not support atomic replace"
        )


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events (newest first).
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass


class PartialWriteError(StorageError):
    """A multi-request write failed after some requests took effect."""

    def __init__(self, message: str, completed: int):
        super().__init__(message)
        self.completed = completed
