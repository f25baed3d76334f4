"""Tests for MonthlyAggregator."""

from datetime import date
from decimal import Decimal

import pytest

from household_ledger.ledger import MonthlyAggregator
from household_ledger.models.ledger import ErrorKind, ExpenseEntry
from household_ledger.services.storage import InMemoryLedgerStore

from tests.conftest import FailingStore, make_categories, make_entry


@pytest.fixture
def march_store() -> InMemoryLedgerStore:
    return InMemoryLedgerStore(
        categories=make_categories(),
        expenses=[
            make_entry(date(2024, 2, 29), 1, "999.00"),
            make_entry(date(2024, 3, 1), 1, "100.00"),
            make_entry(date(2024, 3, 15), 2, "12.50"),
            make_entry(date(2024, 3, 31), 3, "7.25"),
            make_entry(date(2024, 4, 1), 4, "50.00"),
        ],
    )


class TestComputeTotal:
    """Tests for the month total."""

    @pytest.mark.asyncio
    async def test_sums_whole_month_including_edges(self, march_store):
        aggregator = MonthlyAggregator(march_store)
        result = await aggregator.compute_total(date(2024, 3, 20))

        assert result.success is True
        assert result.value == Decimal("119.75")
        assert aggregator.total == Decimal("119.75")
        assert aggregator.month == "2024-03"
        assert aggregator.entry_count == 3

    @pytest.mark.asyncio
    async def test_empty_month_is_zero(self, aggregator):
        result = await aggregator.compute_total(date(2024, 3, 20))
        assert result.value == Decimal("0.00")
        assert aggregator.entry_count == 0

    @pytest.mark.asyncio
    async def test_leap_february(self, march_store):
        aggregator = MonthlyAggregator(march_store)
        result = await aggregator.compute_total(date(2024, 2, 1))
        assert result.value == Decimal("999.00")

    @pytest.mark.asyncio
    async def test_missing_amount_counts_as_zero(self):
        broken = ExpenseEntry.model_construct(
            date=date(2024, 3, 2), category_id=1, amount=None, description=""
        )
        store = InMemoryLedgerStore(
            expenses=[broken, make_entry(date(2024, 3, 3), 2, "4.00")]
        )
        aggregator = MonthlyAggregator(store)
        result = await aggregator.compute_total(date(2024, 3, 1))
        assert result.value == Decimal("4.00")

    @pytest.mark.asyncio
    async def test_failure_keeps_previous_total(self):
        store = FailingStore(expenses=[make_entry(date(2024, 3, 3), 2, "4.00")])
        aggregator = MonthlyAggregator(store)
        await aggregator.compute_total(date(2024, 3, 1))

        store.fail_on.add("list_expenses_in_range")
        result = await aggregator.compute_total(date(2024, 4, 1))

        assert result.success is False
        assert result.error == ErrorKind.STORE_UNAVAILABLE
        assert result.value == Decimal("4.00")
        assert aggregator.total == Decimal("4.00")
        assert aggregator.month == "2024-03"


class TestNeedsRecompute:
    """Tests for month change detection."""

    def test_needed_before_first_compute(self, aggregator):
        assert aggregator.needs_recompute(date(2024, 3, 1)) is True

    @pytest.mark.asyncio
    async def test_same_month_not_needed(self, aggregator):
        await aggregator.compute_total(date(2024, 3, 1))
        assert aggregator.needs_recompute(date(2024, 3, 31)) is False
        assert aggregator.needs_recompute(date(2024, 4, 1)) is True
