from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from abm_api.database import Base
from abm_api.models.mixins import UUIDPrimaryKeyMixin, utcnow


class Organization(UUIDPrimaryKeyMixin, Base):
    """Organization model - the tenant owning pages, API keys and captured leads."""

    __tablename__ = "organizations"

    name = Column(String, nullable=False)
    slug = Column(String, unique=True, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)

    api_keys = relationship("ApiKey", back_populates="organization")
    pages = relationship("Page", back_populates="organization")
