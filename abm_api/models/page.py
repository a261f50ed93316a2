import enum
from sqlalchemy import Column, String, Text, Boolean, ForeignKey, JSON, Enum as SQLEnum
from sqlalchemy.orm import relationship
from abm_api.database import Base
from abm_api.models.mixins import UUIDPrimaryKeyMixin, TimestampMixin


class EmailGateType(str, enum.Enum):
    """Email gate restriction policy."""
    ANY = "any"
    DOMAIN = "domain"
    ALLOWLIST = "allowlist"


class Page(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Page model - a personalized landing page for one prospect account."""

    __tablename__ = "pages"

    organization_id = Column(String(36), ForeignKey("organizations.id"), nullable=False, index=True)
    slug = Column(String, unique=True, nullable=False, index=True)
    company_name = Column(String, nullable=False, index=True)
    title = Column(String, nullable=True)
    hero_title = Column(String, nullable=True)
    hero_subtitle = Column(String, nullable=True)
    body_markdown = Column(Text, nullable=True)
    meeting_transcript = Column(Text, nullable=True)
    is_published = Column(Boolean, default=False, nullable=False)
    created_by = Column(String(36), nullable=True)  # None for pages created through the API

    # Email gate (only the columns matching email_gate_type are populated)
    email_gate_enabled = Column(Boolean, default=False, nullable=False)
    email_gate_type = Column(
        SQLEnum(EmailGateType, values_callable=lambda e: [m.value for m in e]),
        nullable=True
    )
    email_gate_domain = Column(String, nullable=True)
    email_gate_allowlist = Column(JSON, nullable=True)

    organization = relationship("Organization", back_populates="pages")
    email_captures = relationship("PageEmailCapture", back_populates="page", cascade="all, delete-orphan", passive_deletes=True)
    call_logs = relationship("CallLog", back_populates="page", cascade="all, delete-orphan", passive_deletes=True)
