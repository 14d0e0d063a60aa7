"""Database column type helpers."""
from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.types import JSON, DateTime, TypeDecorator


class JSONBCompat(TypeDecorator):
    """JSONB that falls back to native JSON on dialects like SQLite (for tests)."""

    impl = JSONB
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "sqlite":  # pragma: no cover - dialect specific
            return dialect.type_descriptor(JSON())
        return dialect.type_descriptor(JSONB())


class UTCDateTime(TypeDecorator):
    """Timezone-aware timestamp stored as UTC.

    SQLite drops offsets, so values are normalized to UTC on the way in and
    re-tagged as UTC on the way out. Draft expiry comparisons rely on this.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        value = value.astimezone(timezone.utc)
        if dialect.name == "sqlite":  # pragma: no cover - dialect specific
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
