from __future__ import annotations

from pathlib import Path

from .entries import DEFAULT_STORAGE_KEY
from .session import DEFAULT_REMEMBER_KEY
from .storage import OBJECT_STORE_VERSION

BASE_DIR = Path(__file__).resolve().parent
DATABASE_PATH = BASE_DIR.parent / "hours_tracker.db"

# Environment overrides use this prefix, e.g. HOURS_TRACKER_DATABASE=/tmp/h.db
ENV_PREFIX = "HOURS_TRACKER"


class DefaultConfig:
    SECRET_KEY = "change-me"
    DATABASE = str(DATABASE_PATH)
    ENTRIES_STORAGE_KEY = DEFAULT_STORAGE_KEY
    REMEMBERED_USER_KEY = DEFAULT_REMEMBER_KEY
    OBJECT_STORE_VERSION = OBJECT_STORE_VERSION
    LOG_LEVEL = "INFO"
