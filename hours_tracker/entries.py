"""Entry list tracker: an ordered list of time entries.

State changes go through :func:`reduce`, which takes the current
:class:`EntryListState` and an :class:`EntryAction` and returns a new state
together with the notice the UI should show.  :class:`EntryListStore` binds the
reducer to a key-value store and re-saves the whole list after every accepted
change.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .storage import KeyValueStore, StorageError

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "hoursTracking"

ADD = "add"
CLEAR = "clear"
DELETE = "delete"

# Stored record key for each Entry attribute.
RECORD_KEYS = {
    "employee_name": "employeeName",
    "date": "date",
    "hours": "hours",
    "task": "task",
}
FIELD_LABELS = {
    "employee_name": "Employee name",
    "date": "Date",
    "hours": "Hours",
    "task": "Task",
}
CSV_HEADERS = list(RECORD_KEYS.values())


@dataclass(frozen=True)
class Entry:
    employee_name: str
    date: str
    hours: str
    task: str

    def to_record(self) -> Dict[str, str]:
        return {record_key: getattr(self, attr) for attr, record_key in RECORD_KEYS.items()}


@dataclass(frozen=True)
class Notice:
    message: str
    category: str  # flash category: success, info, warning or error


@dataclass(frozen=True)
class EntryListState:
    entries: Tuple[Entry, ...] = ()
    notice: Optional[Notice] = None

    @property
    def accepted(self) -> bool:
        return self.notice is None or self.notice.category != "warning"


@dataclass(frozen=True)
class EntryAction:
    type: str
    payload: Dict[str, Any] = field(default_factory=dict)


def from_dict(data: Mapping[str, Any]) -> Entry:
    """Build an ``Entry`` from either stored (camelCase) or form (snake_case) keys."""
    values = {}
    for attr, record_key in RECORD_KEYS.items():
        raw = data.get(record_key)
        if raw is None:
            raw = data.get(attr)
        values[attr] = "" if raw is None else str(raw).strip()
    return Entry(**values)


def validate(entry: Entry) -> List[str]:
    """Return a list of human-readable issues if validation fails."""
    return [
        f"{label} is required."
        for attr, label in FIELD_LABELS.items()
        if not getattr(entry, attr)
    ]


def add_entry(state: EntryListState, entry: Entry) -> EntryListState:
    if validate(entry):
        return replace(state, notice=Notice("All fields are required.", "warning"))
    return EntryListState(
        entries=state.entries + (entry,),
        notice=Notice("Entry added successfully.", "success"),
    )


def clear_entries(state: EntryListState) -> EntryListState:
    return EntryListState(entries=(), notice=Notice("All entries cleared.", "info"))


def delete_entry(state: EntryListState, index: int) -> EntryListState:
    if not 0 <= index < len(state.entries):
        return replace(state, notice=Notice("Entry not found.", "warning"))
    remaining = tuple(entry for position, entry in enumerate(state.entries) if position != index)
    return EntryListState(entries=remaining, notice=Notice("Entry deleted.", "error"))


def reduce(state: EntryListState, action: EntryAction) -> EntryListState:
    if action.type == ADD:
        entry = action.payload.get("entry")
        if not isinstance(entry, Entry):
            entry = from_dict(entry or {})
        return add_entry(state, entry)
    if action.type == CLEAR:
        return clear_entries(state)
    if action.type == DELETE:
        return delete_entry(state, int(action.payload.get("index", -1)))
    raise ValueError(f"Unknown entry action: {action.type!r}")


class EntryListStore:
    """Entry list persisted as one JSON document in a key-value store."""

    def __init__(self, storage: KeyValueStore, key: str = DEFAULT_STORAGE_KEY) -> None:
        self.storage = storage
        self.key = key

    def load(self) -> EntryListState:
        raw = self.storage.get_item(self.key)
        if raw is None:
            return EntryListState()
        try:
            records = json.loads(raw)
        except ValueError as exc:
            raise StorageError("Stored entry list is unreadable.") from exc
        if not isinstance(records, list) or not all(isinstance(r, dict) for r in records):
            raise StorageError("Stored entry list is unreadable.")
        return EntryListState(entries=tuple(from_dict(r) for r in records))

    def save(self, entries: Tuple[Entry, ...]) -> None:
        self.storage.set_item(self.key, json.dumps([entry.to_record() for entry in entries]))

    def dispatch(self, action: EntryAction) -> EntryListState:
        state = reduce(self.load(), action)
        if state.accepted:
            self.save(state.entries)
            logger.info("Entry list %s applied; %d entries saved", action.type, len(state.entries))
        return state
