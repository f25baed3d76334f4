"""
Monthly Aggregator

Sums every expense row in the month containing a given day. The total
is always recomputed from the store: after each successful save and
whenever the cursor moves into another month. It is never patched
incrementally.
"""

from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import UUID

from household_ledger.audit import AuditLogger
from household_ledger.ledger.amounts import ZERO, coerce_amount, format_amount
from household_ledger.ledger.date_cursor import month_bounds, month_key
from household_ledger.ledger.errors import StoreUnavailable
from household_ledger.models.ledger import OperationResult
from household_ledger.services.storage import LedgerStoreInterface, StorageError


class MonthlyAggregator:
    """Computes and remembers the running total of one month."""

    def __init__(
        self,
        store: LedgerStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._audit_logger = audit_logger
        self._total: Decimal = ZERO
        self._month: Optional[str] = None
        self._entry_count = 0
        self._generation = 0

    @property
    def total(self) -> Decimal:
        """Last successfully computed total."""
        return self._total

    @property
    def month(self) -> Optional[str]:
        """YYYY-MM the current total belongs to."""
        return self._month

    @property
    def entry_count(self) -> int:
        return self._entry_count

    def needs_recompute(self, day: date) -> bool:
        """True when `day` falls outside the month of the current total."""
        return self._month != month_key(day)

    async def compute_total(
        self,
        any_date_in_month: date,
        correlation_id: Optional[UUID] = None,
    ) -> OperationResult[Decimal]:
        """
        Sum the amounts of every row in the month containing the date.

        Missing or unparseable amounts count as zero. On failure the
        previous total is kept. A computation overtaken by a newer one
        returns stale=True and does not replace the total.
        """
        self._generation += 1
        generation = self._generation

        start, end = month_bounds(any_date_in_month)
        key = month_key(any_date_in_month)

        try:
            rows = await self._store.list_expenses_in_range(start, end)
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_monthly_total_failed(key, str(e), correlation_id)
            return StoreUnavailable(
                f"Could not compute the total for {key}: {e}"
            ).to_result(value=self._total)

        total = sum((coerce_amount(row.amount) for row in rows), ZERO)

        if generation != self._generation:
            return OperationResult.ok(total, stale=True)

        self._total = total
        self._month = key
        self._entry_count = len(rows)
        if self._audit_logger:
            await self._audit_logger.log_monthly_total_computed(
                key, format_amount(total), len(rows), correlation_id
            )
        return OperationResult.ok(total)
