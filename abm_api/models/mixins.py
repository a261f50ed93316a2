"""
Database model mixins for common functionality.
"""
import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime
from sqlalchemy.sql import func


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_uuid() -> str:
    """Primary keys are opaque UUID strings (portable across SQLite and PostgreSQL)."""
    return str(uuid.uuid4())


class UUIDPrimaryKeyMixin:
    """Adds an opaque string primary key."""
    id = Column(String(36), primary_key=True, default=generate_uuid)


class TimestampMixin:
    """
    Mixin for creation/update timestamps.

    Timestamps are set in UTC by the application (with a database default
    as fallback); updated_at is refreshed on every ORM update.
    """
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False, index=True)
    updated_at = Column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
        nullable=False
    )
