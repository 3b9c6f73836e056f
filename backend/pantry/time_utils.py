from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def month_bucket(dt: datetime) -> str:
    """YYYY-MM bucket used to group purchase history."""
    return dt.strftime("%Y-%m")


def is_month_bucket(value: str) -> bool:
    try:
        datetime.strptime(value, "%Y-%m")
    except (TypeError, ValueError):
        return False
    return len(value) == 7


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")
