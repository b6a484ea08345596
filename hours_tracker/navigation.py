"""Month navigation for the calendar tracker."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Mapping, Optional

from .calendar_grid import normalize_month

MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)


@dataclass(frozen=True)
class MonthCursor:
    year: int
    month: int  # 0 = January

    @property
    def label(self) -> str:
        return f"{MONTH_NAMES[self.month]} {self.year}"


def next_month(cursor: MonthCursor) -> MonthCursor:
    if cursor.month >= 11:
        return MonthCursor(cursor.year + 1, 0)
    return MonthCursor(cursor.year, cursor.month + 1)


def prev_month(cursor: MonthCursor) -> MonthCursor:
    if cursor.month <= 0:
        return MonthCursor(cursor.year - 1, 11)
    return MonthCursor(cursor.year, cursor.month - 1)


def current_month(today: Optional[date] = None) -> MonthCursor:
    today = today or date.today()
    return MonthCursor(today.year, today.month - 1)


def cursor_from_args(args: Mapping[str, object], today: Optional[date] = None) -> MonthCursor:
    """Build a cursor from ``year``/``month`` request values.

    Missing or non-integer values fall back to the current month, and
    overflowing months roll into the neighbouring year.
    """
    fallback = current_month(today)
    try:
        year = int(str(args.get("year", fallback.year)))
        month = int(str(args.get("month", fallback.month)))
    except ValueError:
        return fallback
    year, month = normalize_month(year, month)
    return MonthCursor(year, month)
