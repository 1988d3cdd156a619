"""UTC timezone enforcement.

This module sets the TZ environment variable to UTC to ensure
consistent datetime behavior across all environments.

Timestamps are timezone-aware UTC everywhere: ``utcnow`` produces them and
``UTCDateTime`` columns store and load them.
"""

import os
from datetime import UTC, datetime

from sqlalchemy import DateTime
from sqlalchemy.types import TypeDecorator

# Set UTC timezone for the entire application
os.environ["TZ"] = "UTC"


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Convert to aware UTC; naive values are taken to already be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class UTCDateTime(TypeDecorator):
    """``DateTime(timezone=True)`` column that always yields aware UTC values.

    SQLite drops the offset on storage, so naive values read back are tagged
    with UTC. Postgres (timestamptz) values are converted to UTC.
    """

    impl = DateTime
    cache_ok = True

    def __init__(self) -> None:
        super().__init__(timezone=True)

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return as_utc(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return as_utc(value)
