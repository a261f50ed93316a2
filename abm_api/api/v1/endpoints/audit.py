from typing import Optional, Literal
from datetime import datetime
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from abm_api.database import get_db
from abm_api.core.api_key import AuthResult, require_api_key
from abm_api.schemas.audit import AuditLogResponse, AuditLogListResponse
from abm_api.services.audit_service import AuditService
from abm_api.models.audit_log import ActionType

router = APIRouter()

# Allowed values for query parameters
ALLOWED_RESOURCE_TYPES = Literal["page", "page_email_capture", "call_log", "api_key"]
ALLOWED_STATUS_VALUES = Literal["success", "failure"]


@router.get("", response_model=AuditLogListResponse)
async def get_audit_logs(
    action_type: Optional[ActionType] = Query(None),
    resource_type: Optional[ALLOWED_RESOURCE_TYPES] = Query(None),
    resource_id: Optional[str] = Query(None),
    status_filter: Optional[ALLOWED_STATUS_VALUES] = Query(None, alias="status"),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    auth: AuthResult = Depends(require_api_key)
):
    """
    Query the organization's audit logs with filters.
    Requires API key authentication; only the key's own organization is visible.
    """
    logs, total = await AuditService.get_audit_logs(
        db=db,
        organization_id=auth.organization_id,
        action_type=action_type,
        resource_type=resource_type,
        resource_id=resource_id,
        status=status_filter,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        offset=offset
    )

    return AuditLogListResponse(
        logs=[AuditLogResponse.model_validate(log) for log in logs],
        total=total,
        limit=limit,
        offset=offset
    )
