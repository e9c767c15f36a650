from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, DateTime, Boolean, false
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Convert an offset-aware datetime to naive UTC; naive values are taken as UTC already."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class TimestampMixin:
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class SoftDeleteMixin:
    """Rows are tombstoned, never removed. Every query filters with ``live()``."""
    is_deleted = Column(Boolean, default=False, server_default=false(), nullable=False)
    deleted_at = Column(DateTime, nullable=True)

    @classmethod
    def live(cls):
        return cls.is_deleted == False  # noqa: E712

    def soft_delete(self):
        self.is_deleted = True
        self.deleted_at = utcnow()
