from __future__ import annotations

import csv
import io
from typing import Iterable

from .entries import CSV_HEADERS, Entry


def render_entries_csv(entries: Iterable[Entry]) -> str:
    """Entry list as CSV, one row per entry in list order, stored key names as headers."""
    out = io.StringIO()
    writer = csv.writer(out)
    writer.writerow(CSV_HEADERS)
    for entry in entries:
        record = entry.to_record()
        writer.writerow([record[header] for header in CSV_HEADERS])
    return out.getvalue()
