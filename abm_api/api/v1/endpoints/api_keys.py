import logging
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from abm_api.database import get_db
from abm_api.api.deps import AuditContext, get_audit_context_with_api_key
from abm_api.models.audit_log import ActionType
from abm_api.schemas.api_key import (
    ApiKeyCreateRequest,
    ApiKeyCreateResponse,
    ApiKeyResponse,
    ApiKeyListResponse,
    SuccessResponse,
)
from abm_api.services.api_key_service import ApiKeyService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=ApiKeyListResponse)
async def list_api_keys(
    audit_context: AuditContext = Depends(get_audit_context_with_api_key),
    db: AsyncSession = Depends(get_db)
):
    """List the organization's API keys. Hashes are never returned."""
    keys = await ApiKeyService.list_api_keys(db, audit_context.organization_id)
    return ApiKeyListResponse(api_keys=[ApiKeyResponse.model_validate(key) for key in keys])


@router.post("", response_model=ApiKeyCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_api_key(
    request: ApiKeyCreateRequest,
    audit_context: AuditContext = Depends(get_audit_context_with_api_key),
    db: AsyncSession = Depends(get_db)
):
    """
    Mint a new key for the caller's organization.
    The raw key is only returned in this response.
    """
    raw_key, api_key = await ApiKeyService.create_api_key(
        db,
        organization_id=audit_context.organization_id,
        name=request.name,
        expiry_days=request.expiry_days,
        request_id=audit_context.request_id
    )
    key = ApiKeyResponse.model_validate(api_key)

    audit_context.log_action(
        action_type=ActionType.API_KEY_CREATED,
        resource_type="api_key",
        resource_id=key.id,
        request_data={"name": key.name, "key_prefix": key.key_prefix, "expiry_days": request.expiry_days}
    )
    return ApiKeyCreateResponse(api_key=raw_key, key=key)


@router.delete("/{key_id}", response_model=SuccessResponse)
async def revoke_api_key(
    key_id: str,
    audit_context: AuditContext = Depends(get_audit_context_with_api_key),
    db: AsyncSession = Depends(get_db)
):
    """Revoke a key. Keys are deactivated, never deleted."""
    api_key = await ApiKeyService.revoke_api_key(
        db,
        key_id=key_id,
        organization_id=audit_context.organization_id,
        request_id=audit_context.request_id
    )

    audit_context.log_action(
        action_type=ActionType.API_KEY_REVOKED,
        resource_type="api_key",
        resource_id=api_key.id,
        request_data={"key_prefix": api_key.key_prefix}
    )
    return SuccessResponse()
