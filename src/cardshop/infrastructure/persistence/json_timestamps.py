"""ISO-8601 timestamp helpers for the JSON store.

Records may be written by other tooling without an offset; those values
are read as UTC, matching how the SQL store treats its naive columns.
"""

from __future__ import annotations

from datetime import datetime, timezone


def parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(value: datetime | None) -> str | None:
    return value.isoformat() if value else None
