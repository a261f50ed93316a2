from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from abm_api.database import Base
from abm_api.models.mixins import UUIDPrimaryKeyMixin, utcnow


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on read)."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class ApiKey(UUIDPrimaryKeyMixin, Base):
    """API key model - tenant-scoped bearer credentials. Only the hash of the secret is stored."""

    __tablename__ = "api_keys"

    organization_id = Column(String(36), ForeignKey("organizations.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    key_hash = Column(String(64), unique=True, nullable=False, index=True)  # sha256 hex of the raw key
    key_prefix = Column(String, nullable=False)  # first characters of the raw key, for display
    is_active = Column(Boolean, default=True, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    last_used_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    created_by = Column(String(36), nullable=True)  # None for keys minted outside a user session

    organization = relationship("Organization", back_populates="api_keys")

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        now = now or datetime.now(timezone.utc)
        return as_utc(self.expires_at) <= now

    def is_valid(self, now: Optional[datetime] = None) -> bool:
        """A key is usable iff it is active and not past its expiry."""
        return bool(self.is_active) and not self.is_expired(now)
