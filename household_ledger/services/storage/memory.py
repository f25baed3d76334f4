"""
In-Memory Storage Implementation

Keeps both tables in process memory. Used when no remote store is
configured and as the base for test doubles.

Each call yields to the event loop once, so callers observe the same
suspension points they would against a remote store.
"""

import asyncio
from datetime import date
from typing import Optional

from household_ledger.models.ledger import Category, ExpenseEntry
from household_ledger.services.storage.interface import LedgerStoreInterface


class InMemoryLedgerStore(LedgerStoreInterface):
    """
    Dictionary-backed ledger store.

    Args:
        atomic_replace: Advertise replace_expenses_for_date. When False
            the ledger falls back to delete-then-insert, as it does for
            Google Sheets.
        categories: Optional initial catalog.
        expenses: Optional initial expense rows.
    """

    def __init__(
        self,
        atomic_replace: bool = True,
        categories: Optional[list[Category]] = None,
        expenses: Optional[list[ExpenseEntry]] = None,
    ):
        self._atomic_replace = atomic_replace
        self._categories: dict[int, Category] = {c.id: c for c in categories or []}
        self._expenses: list[ExpenseEntry] = list(expenses or [])

    @property
    def supports_atomic_replace(self) -> bool:
        return self._atomic_replace

    @property
    def expenses(self) -> list[ExpenseEntry]:
        """Snapshot of every stored row, in insertion order."""
        return list(self._expenses)

    async def list_categories(self) -> list[Category]:
        await asyncio.sleep(0)
        return sorted(self._categories.values(), key=lambda c: (c.order, c.id))

    async def insert_category(self, name: str, icon: str, order: int) -> Category:
        await asyncio.sleep(0)
        next_id = max(self._categories, default=0) + 1
        category = Category(id=next_id, name=name, icon=icon, order=order)
        self._categories[next_id] = category
        return category

    async def list_expenses_for_date(self, day: date) -> list[ExpenseEntry]:
        await asyncio.sleep(0)
        return [e for e in self._expenses if e.date == day]

    async def list_expenses_in_range(
        self,
        date_from: date,
        date_to: date,
    ) -> list[ExpenseEntry]:
        await asyncio.sleep(0)
        return [e for e in self._expenses if date_from <= e.date <= date_to]

    async def delete_expenses_for_date(self, day: date) -> int:
        await asyncio.sleep(0)
        before = len(self._expenses)
        self._expenses = [e for e in self._expenses if e.date != day]
        return before - len(self._expenses)

    async def insert_expenses(self, entries: list[ExpenseEntry]) -> int:
        await asyncio.sleep(0)
        self._expenses.extend(entries)
        return len(entries)

    async def replace_expenses_for_date(
        self,
        day: date,
        entries: list[ExpenseEntry],
    ) -> int:
        if not self._atomic_replace:
            return await super().replace_expenses_for_date(day, entries)
        await asyncio.sleep(0)
        self._expenses = [e for e in self._expenses if e.date != day] + list(entries)
        return len(entries)
