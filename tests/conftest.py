"""
Shared fixtures and store doubles.

No real Google Sheets calls are made in tests: storage is the
in-memory store or one of the subclasses below.
"""

import asyncio
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

import pytest

from household_ledger.ledger import CategoryCatalog, DateCursor, DayLedgerSync, MonthlyAggregator
from household_ledger.models.ledger import Category, ExpenseEntry
from household_ledger.services.storage import InMemoryLedgerStore, StorageError


DAY = date(2024, 3, 15)
FIXED_NOW = datetime(2024, 3, 15, 18, 30, 0)


def make_categories() -> list[Category]:
    return [
        Category(id=1, name="Rent", icon="🏠", order=0),
        Category(id=2, name="Food", icon="🛒", order=1),
        Category(id=3, name="Fuel", icon="⛽", order=2),
        Category(id=4, name="Books", icon="📚", order=3),
    ]


def make_entry(day: date, category_id: int, amount: str, description: str = "") -> ExpenseEntry:
    return ExpenseEntry(
        date=day,
        category_id=category_id,
        amount=Decimal(amount),
        description=description,
        created_at=FIXED_NOW,
    )


class FailingStore(InMemoryLedgerStore):
    """In-memory store whose listed operations raise StorageError."""

    def __init__(self, *args, fail_on: Optional[set[str]] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.fail_on: set[str] = set(fail_on or ())

    def _check(self, operation: str) -> None:
        if operation in self.fail_on:
            raise StorageError(f"{operation} unavailable")

    async def list_categories(self):
        self._check("list_categories")
        return await super().list_categories()

    async def insert_category(self, name, icon, order):
        self._check("insert_category")
        return await super().insert_category(name, icon, order)

    async def list_expenses_for_date(self, day):
        self._check("list_expenses_for_date")
        return await super().list_expenses_for_date(day)

    async def list_expenses_in_range(self, date_from, date_to):
        self._check("list_expenses_in_range")
        return await super().list_expenses_in_range(date_from, date_to)

    async def delete_expenses_for_date(self, day):
        self._check("delete_expenses_for_date")
        return await super().delete_expenses_for_date(day)

    async def insert_expenses(self, entries):
        self._check("insert_expenses")
        return await super().insert_expenses(entries)

    async def replace_expenses_for_date(self, day, entries):
        self._check("replace_expenses_for_date")
        return await super().replace_expenses_for_date(day, entries)


class GatedStore(InMemoryLedgerStore):
    """
    In-memory store that can hold queries until released.

    `day_gates[d]` blocks list_expenses_for_date(d); `write_gate` blocks
    every write until set.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.day_gates: dict[date, asyncio.Event] = {}
        self.write_gate: Optional[asyncio.Event] = None
        self.calls: list[str] = []

    def gate_day(self, day: date) -> asyncio.Event:
        gate = asyncio.Event()
        self.day_gates[day] = gate
        return gate

    async def list_expenses_for_date(self, day):
        self.calls.append("list_expenses_for_date")
        if day in self.day_gates:
            await self.day_gates[day].wait()
        return await super().list_expenses_for_date(day)

    async def list_expenses_in_range(self, date_from, date_to):
        self.calls.append("list_expenses_in_range")
        return await super().list_expenses_in_range(date_from, date_to)

    async def _wait_for_write(self):
        if self.write_gate is not None:
            await self.write_gate.wait()

    async def delete_expenses_for_date(self, day):
        self.calls.append("delete_expenses_for_date")
        await self._wait_for_write()
        return await super().delete_expenses_for_date(day)

    async def insert_expenses(self, entries):
        self.calls.append("insert_expenses")
        await self._wait_for_write()
        return await super().insert_expenses(entries)

    async def replace_expenses_for_date(self, day, entries):
        self.calls.append("replace_expenses_for_date")
        await self._wait_for_write()
        return await super().replace_expenses_for_date(day, entries)


async def wait_until(predicate, attempts: int = 50) -> None:
    """Yield to the loop until `predicate()` holds."""
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition never became true")


def persisted_pairs(store: InMemoryLedgerStore, day: date) -> set[tuple[int, Decimal]]:
    return {(e.category_id, e.amount) for e in store.expenses if e.date == day}


@pytest.fixture
def categories() -> list[Category]:
    return make_categories()


@pytest.fixture
def store(categories) -> InMemoryLedgerStore:
    return InMemoryLedgerStore(categories=categories)


@pytest.fixture
def catalog(store) -> CategoryCatalog:
    return CategoryCatalog(store)


@pytest.fixture
def cursor() -> DateCursor:
    return DateCursor(initial=DAY, clock=lambda: DAY)


def build_sync(store, catalog_categories: Optional[list[Category]] = None) -> DayLedgerSync:
    """DayLedgerSync over `store` with a catalog preloaded from the given categories."""
    catalog = CategoryCatalog(store)
    catalog._categories = list(catalog_categories or make_categories())
    return DayLedgerSync(store, catalog, clock=lambda: FIXED_NOW)


@pytest.fixture
def sync(store, categories) -> DayLedgerSync:
    return build_sync(store, categories)


@pytest.fixture
def aggregator(store) -> MonthlyAggregator:
    return MonthlyAggregator(store)
