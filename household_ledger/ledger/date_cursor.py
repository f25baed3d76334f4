"""
Date cursor: the day currently being edited.

The canonical YYYY-MM-DD string of the current day is both the
storage key for that day's ledger and the key the controller watches
to decide when to reload.
"""

import calendar
from datetime import date, timedelta
from typing import Callable, Optional


def to_canonical_string(day: date) -> str:
    """Format a day as YYYY-MM-DD."""
    return day.isoformat()


def month_key(day: date) -> str:
    """Format the month containing `day` as YYYY-MM."""
    return f"{day.year:04d}-{day.month:02d}"


def month_bounds(day: date) -> tuple[date, date]:
    """First and last calendar day of the month containing `day`."""
    last = calendar.monthrange(day.year, day.month)[1]
    return day.replace(day=1), day.replace(day=last)


class DateCursor:
    """
    Holds the current day.

    Args:
        initial: Starting day. Defaults to today.
        clock: Callable returning today's date, injectable for tests.
    """

    def __init__(
        self,
        initial: Optional[date] = None,
        clock: Callable[[], date] = date.today,
    ):
        self._clock = clock
        self._current = initial or clock()

    @property
    def current(self) -> date:
        return self._current

    @property
    def key(self) -> str:
        """Canonical string of the current day."""
        return to_canonical_string(self._current)

    def today(self) -> date:
        return self._clock()

    def navigate(self, delta_days: int) -> date:
        """
        Move the cursor by `delta_days` (negative goes back) and return the new day.

        Stops at date.min and date.max instead of overflowing.
        """
        try:
            self._current = self._current + timedelta(days=delta_days)
        except OverflowError:
            self._current = date.max if delta_days > 0 else date.min
        return self._current

    def go_to(self, day: date) -> date:
        self._current = day
        return self._current

    def go_to_today(self) -> date:
        return self.go_to(self.today())

    @staticmethod
    def to_canonical_string(day: date) -> str:
        return to_canonical_string(day)
