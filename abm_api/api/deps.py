import uuid
from typing import Optional, Dict, Any
from fastapi import Depends, Request, BackgroundTasks
from sqlalchemy.ext.asyncio import AsyncSession
from abm_api.database import get_db
from abm_api.core.api_key import AuthResult, require_api_key
from abm_api.core.logging_utils import get_client_ip, get_request_id
from abm_api.models.audit_log import ActionType, ActorType
from abm_api.services.audit_service import AuditService


class AuditContext:
    """Request-scoped audit logging context with actor detection and request ID."""

    def __init__(
        self,
        request: Request,
        background_tasks: BackgroundTasks,
        db: AsyncSession,
        actor_type: ActorType = ActorType.PUBLIC,
        actor_id: Optional[str] = None,
        organization_id: Optional[str] = None
    ):
        request_id = get_request_id(request)
        if request_id is None:
            request_id = request.state.request_id = str(uuid.uuid4())

        self.request_id = request_id
        self.background_tasks = background_tasks
        self.db = db
        self.actor_type = actor_type
        self.actor_id = actor_id
        self.organization_id = organization_id
        self.ip_address = get_client_ip(request)
        self.user_agent = request.headers.get("user-agent")

    def log_action(
        self,
        action_type: ActionType,
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
        request_data: Optional[Dict[str, Any]] = None,
        status: str = "success",
        error_message: Optional[str] = None,
        organization_id: Optional[str] = None
    ) -> None:
        """Schedule an audit record carrying this request's context."""
        AuditService.log_action_background(
            self.background_tasks,
            db=self.db,
            action_type=action_type,
            actor_type=self.actor_type,
            actor_id=self.actor_id,
            organization_id=organization_id or self.organization_id,
            resource_type=resource_type,
            resource_id=resource_id,
            ip_address=self.ip_address,
            user_agent=self.user_agent,
            request_data=request_data,
            status=status,
            error_message=error_message,
            request_id=self.request_id
        )

    async def log_action_now(
        self,
        action_type: ActionType,
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
        request_data: Optional[Dict[str, Any]] = None,
        status: str = "failure",
        error_message: Optional[str] = None,
        organization_id: Optional[str] = None
    ) -> None:
        """
        Write an audit record before returning.

        For paths that end in an error response: background tasks only run
        with the response they were attached to.
        """
        await AuditService.log_action(
            db=self.db,
            action_type=action_type,
            actor_type=self.actor_type,
            actor_id=self.actor_id,
            organization_id=organization_id or self.organization_id,
            resource_type=resource_type,
            resource_id=resource_id,
            ip_address=self.ip_address,
            user_agent=self.user_agent,
            request_data=request_data,
            status=status,
            error_message=error_message,
            request_id=self.request_id
        )


async def get_audit_context(
    request: Request,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db)
) -> AuditContext:
    """Audit context for public (unauthenticated) endpoints."""
    return AuditContext(
        request=request,
        background_tasks=background_tasks,
        db=db,
        actor_type=ActorType.PUBLIC
    )


async def get_system_audit_context(
    request: Request,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db)
) -> AuditContext:
    """Audit context for calls made by external systems (webhooks)."""
    return AuditContext(
        request=request,
        background_tasks=background_tasks,
        db=db,
        actor_type=ActorType.SYSTEM
    )


async def get_audit_context_with_api_key(
    request: Request,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    auth: AuthResult = Depends(require_api_key)
) -> AuditContext:
    """
    Audit context for endpoints authenticated with a bearer API key.

    Usage:
        @router.post("/endpoint")
        async def endpoint(audit_context: AuditContext = Depends(get_audit_context_with_api_key)):
            audit_context.log_action(...)
    """
    return AuditContext(
        request=request,
        background_tasks=background_tasks,
        db=db,
        actor_type=ActorType.API_KEY,
        actor_id=auth.key_id,
        organization_id=auth.organization_id
    )
