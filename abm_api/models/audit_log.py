from sqlalchemy import Column, Integer, String, DateTime, Enum as SQLEnum, JSON
from sqlalchemy.sql import func
import enum
from abm_api.database import Base
from abm_api.models.mixins import utcnow


class ActionType(str, enum.Enum):
    """Action type enumeration for audit logging."""
    PAGE_CREATED = "page_created"
    PAGE_UPDATED = "page_updated"
    PAGE_DELETED = "page_deleted"
    EMAIL_CAPTURED = "email_captured"
    EMAIL_GATE_DENIED = "email_gate_denied"
    API_KEY_CREATED = "api_key_created"
    API_KEY_REVOKED = "api_key_revoked"
    CALL_LOGGED = "call_logged"


class ActorType(str, enum.Enum):
    """Who performed the action."""
    API_KEY = "api_key"
    PUBLIC = "public"
    SYSTEM = "system"


class AuditLog(Base):
    """Audit log model - audit trail of state-changing actions."""

    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    action_type = Column(SQLEnum(ActionType), nullable=False, index=True)
    actor_type = Column(SQLEnum(ActorType), nullable=False, index=True)
    actor_id = Column(String(36), nullable=True, index=True)  # api key id when authenticated
    organization_id = Column(String(36), nullable=True, index=True)
    resource_type = Column(String, nullable=True, index=True)  # e.g., "page", "api_key", "call_log"
    resource_id = Column(String(36), nullable=True, index=True)
    ip_address = Column(String, nullable=True)
    user_agent = Column(String, nullable=True)
    request_data = Column(JSON, nullable=True)
    status = Column(String, nullable=False, index=True)  # "success" or "failure"
    error_message = Column(String, nullable=True)
    request_id = Column(String, nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False, index=True)
