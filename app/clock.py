from __future__ import annotations

from datetime import datetime, timezone
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Wall clock in UTC."""

    def now(self) -> datetime:
        return datetime.now(tz=timezone.utc)


def as_utc(value: datetime) -> datetime:
    # SQLite hands DateTime columns back without tzinfo; everything is stored as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_storage(value: datetime) -> datetime:
    return as_utc(value).replace(tzinfo=None)
