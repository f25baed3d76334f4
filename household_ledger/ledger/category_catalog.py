"""
Category Catalog

Owns the ordered list of expense categories. Categories are only ever
appended: each new one goes after the current maximum order.

Concurrent adds from this process are serialized with a lock so two
adds never compute the same order. Duplicate names are allowed.
"""

import asyncio
from typing import Optional
from uuid import UUID

from household_ledger.audit import AuditLogger
from household_ledger.ledger.errors import StoreUnavailable, ValidationError
from household_ledger.models.ledger import (
    CATEGORY_ICON_MAX_LENGTH,
    CATEGORY_NAME_MAX_LENGTH,
    Category,
    OperationResult,
)
from household_ledger.services.storage import LedgerStoreInterface, StorageError


DEFAULT_ICON = "📦"

# Seeded in this order when the catalog starts empty
DEFAULT_CATEGORIES = [
    ("House Rent", "🏠"),
    ("Internet", "🌐"),
    ("Grocery", "🛒"),
    ("Fish", "🐟"),
    ("Meat", "🥩"),
    ("Chicken", "🍗"),
    ("Vegetables", "🥦"),
    ("Fruits", "🍎"),
    ("Medicine", "💊"),
    ("Baby Items", "🍼"),
    ("Travel exp", "🚌"),
    ("Others", "📦"),
]


class CategoryCatalog:
    """
    Ordered, append-only set of categories backed by the store.

    The last successfully listed catalog is kept in memory and is never
    cleared by a failed refresh.
    """

    def __init__(
        self,
        store: LedgerStoreInterface,
        default_icon: str = DEFAULT_ICON,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._default_icon = default_icon
        self._audit_logger = audit_logger
        self._categories: list[Category] = []
        self._add_lock = asyncio.Lock()

    @property
    def categories(self) -> list[Category]:
        """Last known catalog, ordered by `order`."""
        return list(self._categories)

    def get(self, category_id: int) -> Optional[Category]:
        for category in self._categories:
            if category.id == category_id:
                return category
        return None

    @staticmethod
    def _sorted(categories: list[Category]) -> list[Category]:
        return sorted(categories, key=lambda c: (c.order, c.id))

    async def list_categories(
        self,
        correlation_id: Optional[UUID] = None,
    ) -> OperationResult[list[Category]]:
        """
        Refresh the catalog from the store.

        On failure the previous catalog is kept and a STORE_UNAVAILABLE
        result carries it as its value.
        """
        try:
            fetched = await self._store.list_categories()
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_category_list_failed(str(e), correlation_id)
            return StoreUnavailable(f"Could not load categories: {e}").to_result(
                value=self.categories
            )

        self._categories = self._sorted(fetched)
        if self._audit_logger:
            await self._audit_logger.log_categories_listed(
                len(self._categories), correlation_id
            )
        return OperationResult.ok(self.categories)

    async def _reject(
        self,
        raw_name: Optional[str],
        reason: str,
        message: str,
        correlation_id: Optional[UUID],
    ) -> OperationResult[Category]:
        if self._audit_logger:
            await self._audit_logger.log_category_rejected(
                raw_name=raw_name or "",
                reason=reason,
                correlation_id=correlation_id,
            )
        return ValidationError(message).to_result()

    async def add(
        self,
        name: str,
        icon: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> OperationResult[Category]:
        """
        Append a category named `name` (trimmed).

        Empty, whitespace-only or over-long names and over-long icons are
        rejected without touching the store.
        """
        cleaned = (name or "").strip()
        if not cleaned:
            return await self._reject(
                name, "empty name", "Category name cannot be empty.", correlation_id
            )

        if len(cleaned) > CATEGORY_NAME_MAX_LENGTH:
            return await self._reject(
                name,
                "name too long",
                f"Category name cannot be longer than {CATEGORY_NAME_MAX_LENGTH} characters.",
                correlation_id,
            )

        icon = (icon or "").strip() or self._default_icon
        if len(icon) > CATEGORY_ICON_MAX_LENGTH:
            return await self._reject(
                name,
                "icon too long",
                f"Category icon cannot be longer than {CATEGORY_ICON_MAX_LENGTH} characters.",
                correlation_id,
            )

        async with self._add_lock:
            try:
                # Order from the store's view, not a possibly stale local copy
                current = await self._store.list_categories()
                next_order = max((c.order for c in current), default=-1) + 1
                category = await self._store.insert_category(
                    name=cleaned,
                    icon=icon,
                    order=next_order,
                )
            except StorageError as e:
                if self._audit_logger:
                    await self._audit_logger.log_error(
                        error_type="category_add_failed",
                        error_message=str(e),
                        details={"name": cleaned},
                        correlation_id=correlation_id,
                    )
                return StoreUnavailable(f"Could not add category '{cleaned}': {e}").to_result()

            self._categories = self._sorted(
                [c for c in current if c.id != category.id] + [category]
            )

        if self._audit_logger:
            await self._audit_logger.log_category_added(
                category_id=category.id,
                name=category.name,
                order=category.order,
                correlation_id=correlation_id,
            )
        return OperationResult.ok(category)

    async def seed_defaults(
        self,
        defaults: Optional[list[tuple[str, str]]] = None,
        correlation_id: Optional[UUID] = None,
    ) -> OperationResult[list[Category]]:
        """
        Add the default household categories if the catalog is empty.

        Does nothing when at least one category already exists.
        """
        listed = await self.list_categories(correlation_id)
        if not listed.success or listed.value:
            return listed

        for name, icon in defaults or DEFAULT_CATEGORIES:
            result = await self.add(name, icon=icon, correlation_id=correlation_id)
            if not result.success:
                return OperationResult.failed(
                    result.error, result.error_message, value=self.categories
                )
        return OperationResult.ok(self.categories)
