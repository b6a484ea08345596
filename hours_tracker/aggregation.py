from __future__ import annotations

import math
from typing import Iterable, List, Mapping, Optional

from .calendar_grid import (
    WEEKEND_INDICES,
    days_in_month,
    is_weekend,
    normalize_month,
)

HoursByDay = Mapping[str, object]


def parse_hours(value: object) -> float:
    """Coerce a stored hours value to a number; unparseable values count as zero."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip()
        if not text:
            return 0.0
        try:
            number = float(text)
        except ValueError:
            return 0.0
    if not math.isfinite(number):
        return 0.0
    return number


def hours_for_day(hours_by_day: HoursByDay, day: Optional[int]) -> object:
    if day is None:
        return None
    return hours_by_day.get(str(day))


def weekly_totals(weeks: Iterable[List[Optional[int]]], hours_by_day: HoursByDay) -> List[float]:
    totals: List[float] = []
    for week in weeks:
        total = 0.0
        for index, day in enumerate(week):
            if day is None or index in WEEKEND_INDICES:
                continue
            total += parse_hours(hours_for_day(hours_by_day, day))
        totals.append(total)
    return totals


def monthly_total(year: int, month: int, hours_by_day: HoursByDay) -> float:
    year, month = normalize_month(year, month)
    last_day = days_in_month(year, month)
    total = 0.0
    for key, value in hours_by_day.items():
        try:
            day = int(key)
        except (TypeError, ValueError):
            continue
        if not 1 <= day <= last_day or is_weekend(year, month, day):
            continue
        total += parse_hours(value)
    return total


def format_hours(value: float) -> str:
    """Render a total without a trailing ``.0``; other values keep every digit."""
    number = float(value)
    if number.is_integer():
        return str(int(number))
    return repr(number)
