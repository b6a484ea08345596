"""
Per-user session and hours bookkeeping for the calendar tracker.

A user record looks like ``{"username": "ann", "hours": {"2024-4": {"1": "8"}}}``
where the outer key is :func:`~hours_tracker.calendar_grid.month_key` and the
inner key is the day of the month.  :class:`SessionState` only carries the
hours of the month currently on screen.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from .calendar_grid import days_in_month, is_weekend, month_key
from .navigation import MonthCursor
from .storage import KeyValueStore, ObjectStore

logger = logging.getLogger(__name__)

USERS = "users"
DEFAULT_REMEMBER_KEY = "username"


class LockedDayError(ValueError):
    """Raised when hours are edited on a Saturday or Sunday."""


class NotLoggedInError(RuntimeError):
    pass


@dataclass(frozen=True)
class SessionState:
    username: Optional[str] = None
    hours: Dict[str, str] = field(default_factory=dict)

    @property
    def logged_in(self) -> bool:
        return self.username is not None


def logged_in_as(state: SessionState, username: str, hours: Mapping[str, Any]) -> SessionState:
    return SessionState(username=username, hours={str(k): str(v) for k, v in hours.items()})


def logged_out(state: SessionState) -> SessionState:
    return SessionState()


def month_hours(user: Mapping[str, Any], cursor: MonthCursor) -> Dict[str, Any]:
    hours = user.get("hours") or {}
    month = hours.get(month_key(cursor.year, cursor.month)) if isinstance(hours, dict) else None
    return month if isinstance(month, dict) else {}


class CalendarTracker:
    """Binds the session reducers to a user store and a remembered identity."""

    def __init__(
        self,
        users: ObjectStore,
        remembered: KeyValueStore,
        remember_key: str = DEFAULT_REMEMBER_KEY,
    ) -> None:
        self.users = users
        self.remembered = remembered
        self.remember_key = remember_key

    def _load_user(self, username: str) -> Dict[str, Any]:
        user = self.users.get(USERS, username)
        if user is None:
            user = {"username": username, "hours": {}}
            self.users.put(USERS, user)
            logger.info("Created user record for %r", username)
        return user

    def restore(self, cursor: MonthCursor) -> SessionState:
        username = self.remembered.get_item(self.remember_key)
        if not username or not username.strip():
            return SessionState()
        return self.login(SessionState(), username, cursor)

    def login(self, state: SessionState, username: Optional[str], cursor: MonthCursor) -> SessionState:
        name = (username or "").strip()
        if not name:
            return state
        user = self._load_user(name)
        self.remembered.set_item(self.remember_key, name)
        return logged_in_as(state, name, month_hours(user, cursor))

    def logout(self, state: SessionState) -> SessionState:
        self.remembered.remove_item(self.remember_key)
        if state.username:
            logger.info("User %r logged out", state.username)
        return logged_out(state)

    def change_month(self, state: SessionState, cursor: MonthCursor) -> SessionState:
        if not state.logged_in:
            return state
        user = self._load_user(state.username)
        return logged_in_as(state, state.username, month_hours(user, cursor))

    def set_day_hours(
        self, state: SessionState, cursor: MonthCursor, day: int, value: object
    ) -> SessionState:
        if not state.logged_in:
            raise NotLoggedInError("Log in to record hours.")
        if not 1 <= day <= days_in_month(cursor.year, cursor.month):
            raise ValueError(f"Day {day} is not in {cursor.label}.")
        if is_weekend(cursor.year, cursor.month, day):
            raise LockedDayError("Weekend days cannot be edited.")

        user = self._load_user(state.username)
        hours = user.get("hours")
        if not isinstance(hours, dict):
            hours = {}
        key = month_key(cursor.year, cursor.month)
        month = dict(hours.get(key) or {})
        text = "" if value is None else str(value).strip()
        if text:
            month[str(day)] = text
        else:
            month.pop(str(day), None)
        hours[key] = month
        user["hours"] = hours
        self.users.put(USERS, user)
        return logged_in_as(state, state.username, month)
