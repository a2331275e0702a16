"""
Model Helpers
=============

Column defaults shared by the marketplace ORM models.

Version: 0.1.0
"""

import uuid
from datetime import UTC, datetime


def new_id() -> str:
    """Generate a primary key."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(UTC)


def as_utc(value: datetime | None) -> datetime | None:
    """
    Normalize a stored timestamp to aware UTC.

    SQLite hands back naive datetimes even for ``DateTime(timezone=True)``
    columns; everything is written in UTC, so naive values are UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def isoformat(value: datetime | None) -> str | None:
    """Render a stored timestamp for API responses."""
    normalized = as_utc(value)
    return normalized.isoformat() if normalized else None
