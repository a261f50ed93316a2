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
from abm_api.models.page import Page
from abm_api.schemas.page import PublicPageResponse, PageAccessRequest
from abm_api.services.lead_service import LeadService
from abm_api.services.page_service import PageService

logger = logging.getLogger(__name__)

router = APIRouter()

PAGE_NOT_FOUND = "Page not found"


def _public_view(page: Page, unlocked: bool) -> PublicPageResponse:
    """Visitor view of a page; content stays hidden until the gate is passed."""
    full = PublicPageResponse.model_validate(page)
    if unlocked or not page.email_gate_enabled:
        return full
    return PublicPageResponse(
        id=full.id,
        slug=full.slug,
        company_name=full.company_name,
        title=full.title,
        email_gate_enabled=True,
        locked=True
    )


@router.get("/{slug}", response_model=PublicPageResponse)
async def get_public_page(
    slug: str,
    db: AsyncSession = Depends(get_db)
):
    """
    Get a published page by slug.
    Public endpoint. Gated pages are returned locked.
    """
    page = await PageService.get_published_page_by_slug(db, slug)
    if page is None:
        raise NotFoundException(PAGE_NOT_FOUND)
    return _public_view(page, unlocked=False)


@router.post("/{slug}/access", response_model=PublicPageResponse)
@rate_limit_capture()
async def access_public_page(
    request: Request,
    slug: str,
    body: PageAccessRequest,
    audit_context: AuditContext = Depends(get_audit_context),
    db: AsyncSession = Depends(get_db)
):
    """
    Pass a page's email gate.
    Public endpoint. On admission the email is recorded as a lead and the
    full page is returned.
    """
    page = await PageService.get_published_page_by_slug(db, slug)
    if page is None:
        raise NotFoundException(PAGE_NOT_FOUND)

    # Build the view first: a duplicate capture rolls back and expires `page`
    unlocked_view = _public_view(page, unlocked=True)
    organization_id = page.organization_id

    decision = LeadService.check_gate(page, body.email)
    if not decision.admitted:
        await audit_context.log_action_now(
            action_type=ActionType.EMAIL_GATE_DENIED,
            resource_type="page",
            resource_id=unlocked_view.id,
            request_data={"email": body.email, "slug": slug},
            status="failure",
            error_message=decision.error,
            organization_id=organization_id
        )
        raise ValidationException(decision.error)

    try:
        capture, created = await LeadService.capture_email(
            db,
            page_id=unlocked_view.id,
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
                PageID=unlocked_view.id,
                Error=str(e)
            )
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to capture email"
        )

    if created:
        audit_context.log_action(
            action_type=ActionType.EMAIL_CAPTURED,
            resource_type="page_email_capture",
            resource_id=capture.id,
            request_data={"page_id": unlocked_view.id, "email": capture.email},
            organization_id=organization_id
        )
    return unlocked_view
