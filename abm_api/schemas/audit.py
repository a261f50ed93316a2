from typing import Optional, Dict, Any
from datetime import datetime
from pydantic import BaseModel, ConfigDict
from abm_api.models.audit_log import ActionType, ActorType


class AuditLogResponse(BaseModel):
    """Response schema for audit log."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    action_type: ActionType
    actor_type: ActorType
    actor_id: Optional[str] = None
    organization_id: Optional[str] = None
    resource_type: Optional[str] = None
    resource_id: Optional[str] = None
    ip_address: Optional[str] = None
    request_data: Optional[Dict[str, Any]] = None
    status: str
    error_message: Optional[str] = None
    request_id: Optional[str] = None
    created_at: datetime


class AuditLogListResponse(BaseModel):
    """Response schema for audit log list."""
    logs: list[AuditLogResponse]
    total: int
    limit: int
    offset: int
