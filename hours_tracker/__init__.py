"""Work hours tracker: an entry list and a per-user monthly calendar."""

from .app import create_app

__all__ = ["create_app"]
