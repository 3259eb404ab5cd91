"""Small shared helpers."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any


def as_utc(value: datetime) -> datetime:
    """SQLite strips tzinfo on the way back; treat naive values as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def unix_timestamp(value: datetime) -> int:
    return int(as_utc(value).timestamp())


def safe_json_loads(raw: str | None) -> Any:
    if not raw:
        return None
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return None
