"""Database models."""
from abm_api.models.organization import Organization
from abm_api.models.api_key import ApiKey
from abm_api.models.page import Page, EmailGateType
from abm_api.models.email_capture import PageEmailCapture
from abm_api.models.call_log import CallLog
from abm_api.models.audit_log import AuditLog, ActionType, ActorType

__all__ = [
    "Organization",
    "ApiKey",
    "Page",
    "EmailGateType",
    "PageEmailCapture",
    "CallLog",
    "AuditLog",
    "ActionType",
    "ActorType",
]
