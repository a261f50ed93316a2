import logging
from typing import Optional, Dict, Any, List, Tuple
from datetime import datetime
from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import BackgroundTasks
from abm_api.core.logging_utils import mask_sensitive_data, sanitize_log_message
from abm_api.models.audit_log import AuditLog, ActionType, ActorType

logger = logging.getLogger(__name__)


class AuditService:
    """Service for audit logging with background task processing."""

    @staticmethod
    async def log_action(
        db: AsyncSession,
        action_type: ActionType,
        actor_type: ActorType,
        actor_id: Optional[str] = None,
        organization_id: Optional[str] = None,
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        request_data: Optional[Dict[str, Any]] = None,
        status: str = "success",
        error_message: Optional[str] = None,
        request_id: Optional[str] = None
    ) -> Optional[AuditLog]:
        """
        Write one audit record.

        Audit writes are bookkeeping: a failure is logged and None is
        returned, the triggering request is unaffected.

        Returns:
            Created AuditLog record, or None if the write failed
        """
        audit_log = AuditLog(
            action_type=action_type,
            actor_type=actor_type,
            actor_id=actor_id,
            organization_id=organization_id,
            resource_type=resource_type,
            resource_id=resource_id,
            ip_address=ip_address,
            user_agent=user_agent,
            request_data=mask_sensitive_data(request_data) if request_data else None,
            status=status,
            error_message=error_message,
            request_id=request_id
        )

        try:
            db.add(audit_log)
            await db.commit()
            await db.refresh(audit_log)
        except SQLAlchemyError as e:
            await db.rollback()
            logger.exception(
                sanitize_log_message(
                    "Failed to write audit log",
                    RequestID=request_id,
                    ActionType=action_type.value,
                    Error=str(e)
                )
            )
            return None

        logger.debug(
            sanitize_log_message(
                f"Audit log: {action_type.value}",
                RequestID=request_id,
                ActorType=actor_type.value,
                ResourceType=resource_type,
                ResourceID=resource_id,
                Status=status
            )
        )
        return audit_log

    @staticmethod
    def log_action_background(background_tasks: BackgroundTasks, **kwargs: Any) -> None:
        """Schedule audit logging to run after the response is sent."""
        background_tasks.add_task(AuditService.log_action, **kwargs)

    @staticmethod
    async def get_audit_logs(
        db: AsyncSession,
        organization_id: str,
        action_type: Optional[ActionType] = None,
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
        status: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        limit: int = 100,
        offset: int = 0
    ) -> Tuple[List[AuditLog], int]:
        """
        Query an organization's audit logs with filters.

        Returns:
            Tuple of (logs, total matching)
        """
        conditions = [AuditLog.organization_id == organization_id]

        if action_type:
            conditions.append(AuditLog.action_type == action_type)
        if resource_type:
            conditions.append(AuditLog.resource_type == resource_type)
        if resource_id:
            conditions.append(AuditLog.resource_id == resource_id)
        if status:
            conditions.append(AuditLog.status == status)
        if start_date:
            conditions.append(AuditLog.created_at >= start_date)
        if end_date:
            conditions.append(AuditLog.created_at <= end_date)

        total = await db.scalar(select(func.count()).select_from(AuditLog).where(*conditions))

        result = await db.execute(
            select(AuditLog)
            .where(*conditions)
            .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all()), total or 0
