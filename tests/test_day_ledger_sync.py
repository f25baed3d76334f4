"""Tests for DayLedgerSync load, edit and save flows."""

import asyncio
from datetime import date
from decimal import Decimal

import pytest

from household_ledger.ledger import MonthlyAggregator
from household_ledger.models.ledger import ErrorKind, SyncStatus
from household_ledger.services.storage import (
    InMemoryLedgerStore,
    PartialWriteError,
    StorageError,
)

from tests.conftest import (
    DAY,
    FailingStore,
    GatedStore,
    build_sync,
    make_categories,
    make_entry,
    persisted_pairs,
    wait_until,
)


OTHER_DAY = date(2024, 3, 16)


class ReloadFailingStore(InMemoryLedgerStore):
    """Writes succeed; any day read after a write fails."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.written = False

    async def replace_expenses_for_date(self, day, entries):
        self.written = True
        return await super().replace_expenses_for_date(day, entries)

    async def list_expenses_for_date(self, day):
        if self.written:
            raise StorageError("read timeout")
        return await super().list_expenses_for_date(day)


class HalfDeletingStore(InMemoryLedgerStore):
    """Delete removes one of the day's rows, then the connection drops."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, atomic_replace=False, **kwargs)
        self.broken = True

    async def delete_expenses_for_date(self, day):
        if not self.broken:
            return await super().delete_expenses_for_date(day)
        victim = next(e for e in self._expenses if e.date == day)
        self._expenses.remove(victim)
        raise PartialWriteError("connection reset", completed=1)


class TestLoad:
    """Tests for loading a day."""

    @pytest.mark.asyncio
    async def test_load_empty_day(self, sync):
        result = await sync.load(DAY)
        assert result.success is True
        assert result.value == {}
        assert sync.status == SyncStatus.LOADED
        assert sync.state_date == DAY

    @pytest.mark.asyncio
    async def test_load_maps_amounts_to_strings(self):
        store = InMemoryLedgerStore(
            categories=make_categories(),
            expenses=[make_entry(DAY, 2, "12.5"), make_entry(OTHER_DAY, 3, "9.00")],
        )
        sync = build_sync(store)
        result = await sync.load(DAY)
        assert result.value == {2: "12.50"}
        assert sync.value_for(2) == "12.50"
        assert sync.value_for(1) == ""

    @pytest.mark.asyncio
    async def test_failed_load_keeps_previous_state(self):
        store = FailingStore(
            categories=make_categories(), expenses=[make_entry(DAY, 1, "100.00")]
        )
        sync = build_sync(store)
        await sync.load(DAY)

        store.fail_on.add("list_expenses_for_date")
        result = await sync.load(OTHER_DAY)

        assert result.success is False
        assert result.error == ErrorKind.STORE_UNAVAILABLE
        assert sync.status == SyncStatus.ERROR
        assert sync.input_state == {1: "100.00"}
        assert sync.state_date == DAY

    @pytest.mark.asyncio
    async def test_superseded_load_is_discarded(self):
        store = GatedStore(
            categories=make_categories(),
            expenses=[make_entry(DAY, 1, "100.00"), make_entry(OTHER_DAY, 2, "5.00")],
        )
        sync = build_sync(store)
        gate = store.gate_day(DAY)

        first = asyncio.create_task(sync.load(DAY))
        await wait_until(lambda: sync.status == SyncStatus.LOADING)

        second = await sync.load(OTHER_DAY)
        assert second.success is True
        assert sync.input_state == {2: "5.00"}

        gate.set()
        stale = await first

        assert stale.stale is True
        assert sync.active_date == OTHER_DAY
        assert sync.input_state == {2: "5.00"}
        assert sync.status == SyncStatus.LOADED

    @pytest.mark.asyncio
    async def test_superseded_failure_does_not_touch_state(self):
        store = GatedStore(categories=make_categories())
        sync = build_sync(store)
        gate = store.gate_day(DAY)

        original = store.list_expenses_for_date

        async def failing_for_first_day(day):
            result = await original(day)
            if day == DAY:
                raise StorageError("late failure")
            return result

        store.list_expenses_for_date = failing_for_first_day

        first = asyncio.create_task(sync.load(DAY))
        await wait_until(lambda: sync.status == SyncStatus.LOADING)
        await sync.load(OTHER_DAY)

        gate.set()
        result = await first

        assert result.stale is True
        assert result.success is False
        assert sync.status == SyncStatus.LOADED
        assert sync.state_date == OTHER_DAY


class TestEdit:
    """Tests for editing the input state."""

    def test_edit_before_load_rejected(self, sync):
        assert sync.edit(1, "10") is False
        assert sync.input_state == {}

    @pytest.mark.asyncio
    async def test_edit_keeps_raw_text(self, sync):
        await sync.load(DAY)
        assert sync.edit(1, " 12,5 ") is True
        assert sync.value_for(1) == " 12,5 "

    @pytest.mark.asyncio
    async def test_daily_total_tracks_edits(self, sync):
        await sync.load(DAY)
        sync.edit(1, "10")
        sync.edit(2, "2.5")
        sync.edit(3, "-4")
        assert sync.daily_total == Decimal("12.50")


class TestSave:
    """Tests for saving the day."""

    @pytest.mark.asyncio
    async def test_save_then_load_round_trip(self, sync, store):
        await sync.load(DAY)
        sync.edit(1, "100")
        sync.edit(2, "12.5")

        result = await sync.save()
        assert result.success is True
        assert result.value.total == Decimal("112.50")

        fresh = build_sync(store)
        loaded = await fresh.load(DAY)
        assert loaded.value == {1: "100.00", 2: "12.50"}

    @pytest.mark.asyncio
    async def test_only_positive_amounts_persisted(self, sync, store):
        await sync.load(DAY)
        sync.edit(1, "0")
        sync.edit(2, "-5")
        sync.edit(3, "abc")
        sync.edit(4, "12.50")

        result = await sync.save()

        assert result.success is True
        assert result.value.dropped_category_ids == [1, 2, 3]
        assert persisted_pairs(store, DAY) == {(4, Decimal("12.50"))}
        assert sync.input_state == {4: "12.50"}

    @pytest.mark.asyncio
    async def test_entry_description_uses_category_name(self, sync, store):
        await sync.load(DAY)
        sync.edit(2, "3")
        await sync.save()
        assert store.expenses[0].description == "Food expense"

    @pytest.mark.asyncio
    async def test_unknown_category_dropped(self, sync, store):
        await sync.load(DAY)
        sync.edit(99, "50")
        sync.edit(1, "5")
        result = await sync.save()
        assert result.value.dropped_category_ids == [99]
        assert persisted_pairs(store, DAY) == {(1, Decimal("5.00"))}

    @pytest.mark.asyncio
    async def test_nothing_to_save_leaves_store_untouched(self):
        store = InMemoryLedgerStore(
            categories=make_categories(), expenses=[make_entry(DAY, 1, "100.00")]
        )
        sync = build_sync(store)
        await sync.load(DAY)
        sync.edit(1, "")
        sync.edit(2, "0")

        result = await sync.save()

        assert result.success is False
        assert result.error == ErrorKind.NOTHING_TO_SAVE
        assert persisted_pairs(store, DAY) == {(1, Decimal("100.00"))}

        reloaded = await build_sync(store).load(DAY)
        assert reloaded.value == {1: "100.00"}

    @pytest.mark.asyncio
    async def test_empty_state_is_nothing_to_save(self):
        store = InMemoryLedgerStore(
            categories=make_categories(), expenses=[make_entry(DAY, 2, "8.00")]
        )
        sync = build_sync(store)
        await sync.load(OTHER_DAY)
        assert sync.input_state == {}

        result = await sync.save()

        assert result.error == ErrorKind.NOTHING_TO_SAVE
        assert store.expenses == [make_entry(DAY, 2, "8.00")]
        assert sync.status == SyncStatus.LOADED

    @pytest.mark.asyncio
    async def test_save_replaces_the_whole_day(self):
        store = InMemoryLedgerStore(
            categories=make_categories(),
            expenses=[make_entry(DAY, 1, "100.00"), make_entry(OTHER_DAY, 1, "7.00")],
        )
        sync = build_sync(store)
        await sync.load(DAY)
        sync.edit(1, "")
        sync.edit(3, "40")

        await sync.save()

        assert persisted_pairs(store, DAY) == {(3, Decimal("40.00"))}
        assert persisted_pairs(store, OTHER_DAY) == {(1, Decimal("7.00"))}

    @pytest.mark.asyncio
    async def test_double_save_is_idempotent(self, sync, store):
        aggregator = MonthlyAggregator(store)
        await sync.load(DAY)
        sync.edit(1, "10")
        sync.edit(2, "20")

        await sync.save()
        first = persisted_pairs(store, DAY)
        first_total = (await aggregator.compute_total(DAY)).value
        await sync.save()
        second_total = (await aggregator.compute_total(DAY)).value

        assert persisted_pairs(store, DAY) == first
        assert len([e for e in store.expenses if e.date == DAY]) == 2
        assert first_total == second_total == Decimal("30.00")

    @pytest.mark.asyncio
    async def test_oversized_amount_dropped_not_raised(self, sync, store):
        await sync.load(DAY)
        sync.edit(1, "1e30")
        sync.edit(2, "9" * 29)
        sync.edit(3, "4")

        assert sync.daily_total == Decimal("4.00")
        result = await sync.save()

        assert result.success is True
        assert result.value.dropped_category_ids == [1, 2]
        assert persisted_pairs(store, DAY) == {(3, Decimal("4.00"))}

    @pytest.mark.asyncio
    async def test_only_oversized_amounts_is_nothing_to_save(self, sync, store):
        await sync.load(DAY)
        sync.edit(1, "1e30")

        result = await sync.save()

        assert result.error == ErrorKind.NOTHING_TO_SAVE
        assert store.expenses == []

    @pytest.mark.asyncio
    async def test_non_atomic_store_uses_delete_then_insert(self):
        store = InMemoryLedgerStore(
            atomic_replace=False,
            categories=make_categories(),
            expenses=[make_entry(DAY, 1, "100.00")],
        )
        sync = build_sync(store)
        await sync.load(DAY)
        sync.edit(1, "80")

        result = await sync.save()

        assert result.success is True
        assert persisted_pairs(store, DAY) == {(1, Decimal("80.00"))}

    @pytest.mark.asyncio
    async def test_partial_save_failure_then_repair(self):
        store = FailingStore(
            atomic_replace=False,
            categories=make_categories(),
            expenses=[make_entry(DAY, 1, "100.00")],
            fail_on={"insert_expenses"},
        )
        sync = build_sync(store)
        await sync.load(DAY)
        sync.edit(2, "25")

        result = await sync.save()

        assert result.success is False
        assert result.error == ErrorKind.PARTIAL_SAVE_FAILURE
        assert persisted_pairs(store, DAY) == set()
        assert sync.status == SyncStatus.ERROR
        assert sync.input_state == {1: "100.00", 2: "25"}

        store.fail_on.clear()
        repaired = await sync.save()

        assert repaired.success is True
        assert persisted_pairs(store, DAY) == {(1, Decimal("100.00")), (2, Decimal("25.00"))}
        assert sync.status == SyncStatus.LOADED

    @pytest.mark.asyncio
    async def test_partial_delete_reported_as_partial_save_failure(self):
        store = HalfDeletingStore(
            categories=make_categories(),
            expenses=[make_entry(DAY, 1, "100.00"), make_entry(DAY, 2, "40.00")],
        )
        sync = build_sync(store)
        await sync.load(DAY)
        sync.edit(3, "5")

        result = await sync.save()

        assert result.success is False
        assert result.error == ErrorKind.PARTIAL_SAVE_FAILURE
        assert len(persisted_pairs(store, DAY)) == 1
        assert sync.status == SyncStatus.ERROR
        assert sync.input_state == {1: "100.00", 2: "40.00", 3: "5"}

        store.broken = False
        repaired = await sync.save()

        assert repaired.success is True
        assert persisted_pairs(store, DAY) == {
            (1, Decimal("100.00")),
            (2, Decimal("40.00")),
            (3, Decimal("5.00")),
        }

    @pytest.mark.asyncio
    async def test_delete_failure_leaves_rows_untouched(self):
        store = FailingStore(
            atomic_replace=False,
            categories=make_categories(),
            expenses=[make_entry(DAY, 1, "100.00")],
            fail_on={"delete_expenses_for_date"},
        )
        sync = build_sync(store)
        await sync.load(DAY)
        sync.edit(1, "5")

        result = await sync.save()

        assert result.error == ErrorKind.STORE_UNAVAILABLE
        assert persisted_pairs(store, DAY) == {(1, Decimal("100.00"))}
        assert sync.value_for(1) == "5"

    @pytest.mark.asyncio
    async def test_atomic_failure_keeps_edits(self):
        store = FailingStore(
            categories=make_categories(),
            expenses=[make_entry(DAY, 1, "100.00")],
            fail_on={"replace_expenses_for_date"},
        )
        sync = build_sync(store)
        await sync.load(DAY)
        sync.edit(2, "30")

        result = await sync.save()

        assert result.error == ErrorKind.STORE_UNAVAILABLE
        assert result.value is None
        assert persisted_pairs(store, DAY) == {(1, Decimal("100.00"))}
        assert sync.input_state == {1: "100.00", 2: "30"}
        assert sync.status == SyncStatus.ERROR

    @pytest.mark.asyncio
    async def test_reload_failure_after_write_returns_receipt(self):
        store = ReloadFailingStore(categories=make_categories())
        sync = build_sync(store)
        await sync.load(DAY)
        sync.edit(1, "15")

        result = await sync.save()

        assert result.success is False
        assert result.error == ErrorKind.STORE_UNAVAILABLE
        assert result.value.total == Decimal("15.00")
        assert persisted_pairs(store, DAY) == {(1, Decimal("15.00"))}

    @pytest.mark.asyncio
    async def test_save_before_load_rejected(self, sync, store):
        result = await sync.save()
        assert result.error == ErrorKind.STORE_UNAVAILABLE
        assert store.expenses == []

    @pytest.mark.asyncio
    async def test_save_after_failed_day_switch_rejected(self):
        store = FailingStore(categories=make_categories())
        sync = build_sync(store)
        await sync.load(DAY)
        sync.edit(1, "10")

        store.fail_on.add("list_expenses_for_date")
        await sync.load(OTHER_DAY)
        store.fail_on.clear()

        result = await sync.save()

        assert result.error == ErrorKind.STORE_UNAVAILABLE
        assert store.expenses == []

    @pytest.mark.asyncio
    async def test_second_save_while_saving_is_busy(self):
        store_gate = asyncio.Event()
        gated = GatedStore(categories=make_categories())
        gated.write_gate = store_gate
        sync = build_sync(gated)
        await sync.load(DAY)
        sync.edit(1, "10")

        first = asyncio.create_task(sync.save())
        await wait_until(lambda: sync.status == SyncStatus.SAVING)

        second = await sync.save()
        assert second.error == ErrorKind.LEDGER_BUSY
        assert sync.edit(1, "99") is False

        store_gate.set()
        result = await first

        assert result.success is True
        assert persisted_pairs(gated, DAY) == {(1, Decimal("10.00"))}

    @pytest.mark.asyncio
    async def test_save_while_loading_is_busy(self):
        store = GatedStore(categories=make_categories())
        sync = build_sync(store)
        gate = store.gate_day(DAY)

        loading = asyncio.create_task(sync.load(DAY))
        await wait_until(lambda: sync.status == SyncStatus.LOADING)

        result = await sync.save()
        assert result.error == ErrorKind.LEDGER_BUSY

        gate.set()
        await loading
