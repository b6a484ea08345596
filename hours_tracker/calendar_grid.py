"""Month grid layout for the calendar tracker.

Weeks start on Sunday.  Months are 0-based (0 = January) throughout the
package, and day cells hold the day number while padding cells hold ``None``.
"""
from __future__ import annotations

import calendar
from typing import List, Optional, Tuple

WEEK_LENGTH = 7
# Sunday and Saturday in a Sunday-first week.
WEEKEND_INDICES = (0, 6)

Week = List[Optional[int]]


def normalize_month(year: int, month: int) -> Tuple[int, int]:
    extra_years, month = divmod(month, 12)
    return year + extra_years, month


def first_weekday(year: int, month: int) -> int:
    year, month = normalize_month(year, month)
    weekday, _ = calendar.monthrange(year, month + 1)
    # calendar counts Monday as 0
    return (weekday + 1) % WEEK_LENGTH


def days_in_month(year: int, month: int) -> int:
    year, month = normalize_month(year, month)
    return calendar.monthrange(year, month + 1)[1]


def generate_calendar(year: int, month: int) -> List[Week]:
    """Return the weeks of a month, each padded to exactly seven cells."""
    year, month = normalize_month(year, month)
    weeks: List[Week] = []
    week: Week = [None] * first_weekday(year, month)
    for day in range(1, days_in_month(year, month) + 1):
        week.append(day)
        if len(week) == WEEK_LENGTH:
            weeks.append(week)
            week = []
    if week:
        week.extend([None] * (WEEK_LENGTH - len(week)))
        weeks.append(week)
    return weeks


def weekday_of(year: int, month: int, day: int) -> int:
    year, month = normalize_month(year, month)
    return (calendar.weekday(year, month + 1, day) + 1) % WEEK_LENGTH


def is_weekend(year: int, month: int, day: int) -> bool:
    return weekday_of(year, month, day) in WEEKEND_INDICES


def month_key(year: int, month: int) -> str:
    year, month = normalize_month(year, month)
    return f"{year}-{month}"
