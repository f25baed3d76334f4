"""
Google Sheets Storage Implementation

Google Sheets is the remote store: one worksheet per logical table
(expense_categories, expenses) plus an append-only audit sheet.

TRADEOFFS:
- No transactions: replacing a day is a delete followed by an append,
  so supports_atomic_replace is False and the ledger handles the gap
- Limited query capabilities (we filter in Python)
- Fine for one household's volume

Dates are stored as YYYY-MM-DD strings, which sort and compare
correctly as text.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from household_ledger.config import get_settings
from household_ledger.models.ledger import Category, ExpenseEntry
from household_ledger.models.audit import AuditEvent, AuditEventType, AuditSeverity
from household_ledger.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    LedgerStoreInterface,
    PartialWriteError,
    StorageError,
)


CATEGORY_COLUMNS = ["id", "name", "icon", "order"]

EXPENSE_COLUMNS = ["date", "category_id", "amount", "description", "created_at"]

AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_key",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and worksheet bootstrap. Only the connection
    handshake is retried; sheet reads and writes are not.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create_sheet(
        self,
        title: str,
        columns: list[str],
        rows: int,
    ) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_categories_sheet(self) -> gspread.Worksheet:
        """Get or create the expense_categories worksheet."""
        return self._get_or_create_sheet(
            self._settings.categories_sheet_name, CATEGORY_COLUMNS, rows=200
        )

    def get_expenses_sheet(self) -> gspread.Worksheet:
        """Get or create the expenses worksheet."""
        return self._get_or_create_sheet(
            self._settings.expenses_sheet_name, EXPENSE_COLUMNS, rows=5000
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000
        )


def _safe_get(row: list, index: int, default: str = "") -> str:
    try:
        return row[index] if row[index] else default
    except IndexError:
        return default


def _contiguous_ranges(indexes: list[int]) -> list[tuple[int, int]]:
    """Group ascending row numbers into inclusive (start, end) runs."""
    ranges: list[tuple[int, int]] = []
    for idx in indexes:
        if ranges and ranges[-1][1] == idx - 1:
            ranges[-1] = (ranges[-1][0], idx)
        else:
            ranges.append((idx, idx))
    return ranges


class GoogleSheetsLedgerStore(LedgerStoreInterface):
    """
    Google Sheets implementation of the ledger store.

    One category per row in the categories sheet, one expense per row
    in the expenses sheet. Malformed rows are skipped on read.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_category(self, row: list) -> Category:
        return Category(
            id=int(_safe_get(row, 0)),
            name=_safe_get(row, 1),
            icon=_safe_get(row, 2, "📦"),
            order=int(_safe_get(row, 3, "0")),
        )

    def _entry_to_row(self, entry: ExpenseEntry) -> list:
        return [
            entry.date.isoformat(),
            str(entry.category_id),
            str(entry.amount),
            entry.description,
            entry.created_at.isoformat(),
        ]

    def _row_to_entry(self, row: list) -> ExpenseEntry:
        return ExpenseEntry(
            date=date.fromisoformat(_safe_get(row, 0)),
            category_id=int(_safe_get(row, 1)),
            amount=Decimal(_safe_get(row, 2)),
            description=_safe_get(row, 3),
            created_at=datetime.fromisoformat(_safe_get(row, 4)),
        )

    def _read_entries(self, keep) -> list[ExpenseEntry]:
        """Read expense rows whose date column satisfies `keep`."""
        sheet = self._client.get_expenses_sheet()
        all_rows = sheet.get_all_values()[1:]  # Skip header

        entries = []
        for row in all_rows:
            if not row or not row[0] or not keep(row[0]):
                continue
            try:
                entries.append(self._row_to_entry(row))
            except Exception:
                continue  # Skip malformed rows
        return entries

    async def list_categories(self) -> list[Category]:
        """List categories ordered by display order."""
        try:
            sheet = self._client.get_categories_sheet()
            all_rows = sheet.get_all_values()[1:]

            categories = []
            for row in all_rows:
                if not row or not row[0]:
                    continue
                try:
                    categories.append(self._row_to_category(row))
                except Exception:
                    continue

            categories.sort(key=lambda c: (c.order, c.id))
            return categories
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list categories: {e}")

    async def insert_category(self, name: str, icon: str, order: int) -> Category:
        """Append a category, assigning the next integer id."""
        try:
            sheet = self._client.get_categories_sheet()
            all_rows = sheet.get_all_values()[1:]

            ids = []
            for row in all_rows:
                try:
                    ids.append(int(_safe_get(row, 0)))
                except ValueError:
                    continue

            category = Category(id=max(ids, default=0) + 1, name=name, icon=icon, order=order)
            sheet.append_row(
                [str(category.id), category.name, category.icon, str(category.order)],
                value_input_option="RAW",
            )
            return category
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to insert category: {e}")

    async def list_expenses_for_date(self, day: date) -> list[ExpenseEntry]:
        """List the expense rows for one day."""
        key = day.isoformat()
        try:
            return self._read_entries(lambda value: value == key)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list expenses for {key}: {e}")

    async def list_expenses_in_range(
        self,
        date_from: date,
        date_to: date,
    ) -> list[ExpenseEntry]:
        """List expense rows in an inclusive date range."""
        start, end = date_from.isoformat(), date_to.isoformat()
        try:
            return self._read_entries(lambda value: start <= value <= end)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list expenses from {start} to {end}: {e}")

    async def delete_expenses_for_date(self, day: date) -> int:
        """
        Delete a day's rows.

        Adjacent rows go in one request. Ranges are removed bottom-up so
        the row numbers of the remaining ranges stay valid.
        """
        key = day.isoformat()
        try:
            sheet = self._client.get_expenses_sheet()
            all_rows = sheet.get_all_values()
        except Exception as e:
            raise StorageError(f"Failed to delete expenses for {key}: {e}")

        # Row 1 is the header
        matches = [
            idx for idx, row in enumerate(all_rows[1:], start=2)
            if row and row[0] == key
        ]

        deleted = 0
        for start, end in reversed(_contiguous_ranges(matches)):
            try:
                sheet.delete_rows(start, end)
            except Exception as e:
                if deleted:
                    raise PartialWriteError(
                        f"Deleted {deleted} of {len(matches)} rows for {key}: {e}",
                        completed=deleted,
                    )
                raise StorageError(f"Failed to delete expenses for {key}: {e}")
            deleted += end - start + 1
        return deleted

    async def insert_expenses(self, entries: list[ExpenseEntry]) -> int:
        """Append expense rows in one request."""
        if not entries:
            return 0
        try:
            sheet = self._client.get_expenses_sheet()
            sheet.append_rows(
                [self._entry_to_row(entry) for entry in entries],
                value_input_option="RAW",
            )
            return len(entries)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to insert expenses: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        import json

        return AuditEvent(
            event_id=_safe_get(row, 0),
            timestamp=datetime.fromisoformat(_safe_get(row, 1)),
            event_type=AuditEventType(_safe_get(row, 2)),
            severity=AuditSeverity(_safe_get(row, 3)),
            entity_type=_safe_get(row, 4) or None,
            entity_key=_safe_get(row, 5) or None,
            correlation_id=_safe_get(row, 6) or None,
            description=_safe_get(row, 7),
            details=json.loads(_safe_get(row, 8)) if _safe_get(row, 8) else {},
            error_message=_safe_get(row, 9) or None,
            is_user_action=_safe_get(row, 10).lower() == "true",
        )

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to write audit event: {e}")

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        try:
            sheet = self._client.get_audit_sheet()
            all_rows = sheet.get_all_values()[1:]

            events = []
            for row in all_rows:
                if row and row[0]:
                    try:
                        events.append(self._row_to_event(row))
                    except Exception:
                        continue

            # Sort newest first
            events.sort(key=lambda e: e.timestamp, reverse=True)
            return events[:limit]
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
