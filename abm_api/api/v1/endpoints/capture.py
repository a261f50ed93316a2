import logging
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from abm_api.database import get_db
from abm_api.api.deps import AuditContext, get_audit_context
from abm_api.core.exceptions import NotFoundException, ValidationException
from abm_api.core.logging_utils import sanitize_log_message
from abm_api.middleware.rate_limit import rate_limit_capture
from abm_api.models.audit_log import ActionType
from abm_api.schemas.lead import CaptureEmailRequest, CaptureEmailResponse
from abm_api.services.lead_service import LeadService
from abm_api.services.page_service import PageService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/capture-email", response_model=CaptureEmailResponse, response_model_exclude_none=True)
@rate_limit_capture()
async def capture_email(
    request: Request,
    body: CaptureEmailRequest,
    audit_context: AuditContext = Depends(get_audit_context),
    db: AsyncSession = Depends(get_db)
):
    """
    Record a visitor's email for a page.
    Public endpoint. The page's email gate is evaluated before anything is stored.
    """
    if not body.page_id or not body.email:
        raise ValidationException("Page ID and email are required")

    page = await PageService.get_page(db, body.page_id)
    if page is None:
        raise NotFoundException("Page not found")

    page_id = page.id
    organization_id = page.organization_id

    decision = LeadService.check_gate(page, body.email)
    if not decision.admitted:
        await audit_context.log_action_now(
            action_type=ActionType.EMAIL_GATE_DENIED,
            resource_type="page",
            resource_id=page_id,
            request_data={"email": body.email},
            status="failure",
            error_message=decision.error,
            organization_id=organization_id
        )
        raise ValidationException(decision.error)

    try:
        capture, created = await LeadService.capture_email(
            db,
            page_id=page_id,
            email=body.email,
            ip_address=audit_context.ip_address,
            user_agent=audit_context.user_agent,
            request_id=audit_context.request_id
        )
    except SQLAlchemyError as e:
        logger.error(
            sanitize_log_message(
                "Failed to capture email",
                RequestID=audit_context.request_id,
                PageID=page_id,
                Error=str(e)
            )
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to capture email"
        )

    if not created:
        return CaptureEmailResponse(existing=True)

    audit_context.log_action(
        action_type=ActionType.EMAIL_CAPTURED,
        resource_type="page_email_capture",
        resource_id=capture.id,
        request_data={"page_id": page_id, "email": capture.email},
        organization_id=organization_id
    )
    return CaptureEmailResponse()
