from sqlalchemy import Column, String, Integer, Float, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from abm_api.database import Base
from abm_api.models.mixins import UUIDPrimaryKeyMixin, utcnow


class CallLog(UUIDPrimaryKeyMixin, Base):
    """Call log model - one voice agent conversation reported by the provider webhook."""

    __tablename__ = "call_logs"

    page_id = Column(String(36), ForeignKey("pages.id", ondelete="CASCADE"), nullable=False, index=True)
    conversation_id = Column(String, nullable=True, index=True)
    agent_id = Column(String, nullable=True)
    call_duration_seconds = Column(Integer, nullable=True)
    call_cost_usd = Column(Float, nullable=True)
    started_at = Column(DateTime(timezone=True), nullable=True)
    ended_at = Column(DateTime(timezone=True), nullable=True)
    transcript = Column(JSON, nullable=True)
    analysis = Column(JSON, nullable=True)
    user_email = Column(String, nullable=True)
    company_name = Column(String, nullable=True)
    webhook_payload = Column(JSON, nullable=True)  # raw event, kept for reprocessing
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False, index=True)

    page = relationship("Page", back_populates="call_logs")

    @property
    def is_successful(self) -> bool:
        return isinstance(self.analysis, dict) and self.analysis.get("call_successful") == "success"
