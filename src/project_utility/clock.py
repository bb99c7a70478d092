"""
Timestamp helpers for the agent chain runtime.

Session start/end stamps and event timestamps all route through this module so they share one
format: timezone-aware UTC rendered as ISO-8601.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Current aware datetime in UTC."""

    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Convert any datetime into UTC, treating naive values as already UTC."""

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def utc_iso(dt: Optional[datetime] = None) -> str:
    """Render an ISO-8601 string in UTC with explicit offset."""

    target = ensure_utc(dt or utc_now())
    return target.isoformat()


__all__ = ["ensure_utc", "utc_iso", "utc_now"]
