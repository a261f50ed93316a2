from sqlalchemy import Column, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from abm_api.database import Base
from abm_api.models.mixins import UUIDPrimaryKeyMixin, utcnow


class PageEmailCapture(UUIDPrimaryKeyMixin, Base):
    """Lead captured by a page's email gate. One row per (page, email)."""

    __tablename__ = "page_email_captures"
    __table_args__ = (
        UniqueConstraint("page_id", "email", name="uq_page_email_captures_page_email"),
    )

    page_id = Column(String(36), ForeignKey("pages.id", ondelete="CASCADE"), nullable=False, index=True)
    email = Column(String, nullable=False, index=True)  # stored lower-cased
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    company = Column(String, nullable=True)
    ip_address = Column(String, nullable=True)
    user_agent = Column(String, nullable=True)
    captured_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False, index=True)

    page = relationship("Page", back_populates="email_captures")
