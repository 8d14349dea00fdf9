"""
Column types and helpers shared by all models.

UTCDateTime:
    TIMESTAMP WITH TIME ZONE on PostgreSQL. SQLite has no timezone-aware
    storage and hands back naive datetimes, so values are normalized to UTC
    on the way in and re-tagged as UTC on the way out. Every datetime the ORM
    returns is therefore aware and comparable with `utcnow()`.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, Enum
from sqlalchemy.types import TypeDecorator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_uuid() -> uuid.UUID:
    return uuid.uuid4()


class UTCDateTime(TypeDecorator):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


def enum_column_type(enum_cls, name: str) -> Enum:
    """String-backed enum column (VARCHAR, no native PG type to migrate)."""
    return Enum(enum_cls, name=name, native_enum=False, length=20, validate_strings=True)
