import logging
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from abm_api.config import settings
from abm_api.database import get_db
from abm_api.api.deps import AuditContext, get_audit_context_with_api_key
from abm_api.models.audit_log import ActionType
from abm_api.schemas.common import Pagination
from abm_api.schemas.page import (
    PageCreateRequest,
    PageUpdateRequest,
    PageResponse,
    PageMutationResponse,
    PageDetailResponse,
    PageListResponse,
)
from abm_api.schemas.call_log import CallLogResponse, CallListResponse
from abm_api.schemas.lead import LeadResponse, LeadListResponse, LeadSummary, DomainCount
from abm_api.schemas.api_key import SuccessResponse
from abm_api.services.page_service import PageService
from abm_api.services.call_log_service import CallLogService
from abm_api.services.lead_service import LeadService

logger = logging.getLogger(__name__)

router = APIRouter()


def _mutation_response(page) -> PageMutationResponse:
    return PageMutationResponse(
        page=PageResponse.model_validate(page),
        url=settings.page_url(page.slug)
    )


@router.post("", response_model=PageMutationResponse, status_code=status.HTTP_201_CREATED)
async def create_page(
    request: PageCreateRequest,
    audit_context: AuditContext = Depends(get_audit_context_with_api_key),
    db: AsyncSession = Depends(get_db)
):
    """
    Create a landing page for the API key's organization.
    Requires API key authentication.
    """
    page = await PageService.create_page(
        db=db,
        organization_id=audit_context.organization_id,
        data=request.model_dump(),
        request_id=audit_context.request_id
    )
    response = _mutation_response(page)

    audit_context.log_action(
        action_type=ActionType.PAGE_CREATED,
        resource_type="page",
        resource_id=response.page.id,
        request_data={"slug": response.page.slug, "company_name": response.page.company_name}
    )
    return response


@router.get("", response_model=PageListResponse)
async def list_pages(
    audit_context: AuditContext = Depends(get_audit_context_with_api_key),
    db: AsyncSession = Depends(get_db)
):
    """List the organization's pages, newest first."""
    pages = await PageService.list_pages(db, audit_context.organization_id)
    return PageListResponse(pages=[PageResponse.model_validate(page) for page in pages])


@router.get("/{page_id}", response_model=PageDetailResponse)
async def get_page(
    page_id: str,
    audit_context: AuditContext = Depends(get_audit_context_with_api_key),
    db: AsyncSession = Depends(get_db)
):
    page = await PageService.get_owned_page(db, page_id, audit_context.organization_id)
    return PageDetailResponse(page=PageResponse.model_validate(page))


@router.put("/{page_id}", response_model=PageMutationResponse)
async def update_page(
    page_id: str,
    request: PageUpdateRequest,
    audit_context: AuditContext = Depends(get_audit_context_with_api_key),
    db: AsyncSession = Depends(get_db)
):
    """
    Update the fields present in the body. Email gate settings are
    normalised against the page's current gate configuration.
    """
    page = await PageService.get_owned_page(db, page_id, audit_context.organization_id)
    changes = request.model_dump(exclude_unset=True)

    page = await PageService.update_page(db, page, changes, request_id=audit_context.request_id)
    response = _mutation_response(page)

    audit_context.log_action(
        action_type=ActionType.PAGE_UPDATED,
        resource_type="page",
        resource_id=response.page.id,
        request_data={"fields": sorted(changes.keys())}
    )
    return response


@router.delete("/{page_id}", response_model=SuccessResponse)
async def delete_page(
    page_id: str,
    audit_context: AuditContext = Depends(get_audit_context_with_api_key),
    db: AsyncSession = Depends(get_db)
):
    page = await PageService.get_owned_page(db, page_id, audit_context.organization_id)
    slug = page.slug
    await PageService.delete_page(db, page, request_id=audit_context.request_id)

    audit_context.log_action(
        action_type=ActionType.PAGE_DELETED,
        resource_type="page",
        resource_id=page_id,
        request_data={"slug": slug}
    )
    return SuccessResponse()


@router.get("/{page_id}/calls", response_model=CallListResponse)
async def list_page_calls(
    page_id: str,
    limit: int = Query(settings.LIST_DEFAULT_LIMIT, ge=1, description="Capped at LIST_MAX_LIMIT"),
    offset: int = Query(0, ge=0),
    date_from: Optional[datetime] = Query(None, alias="from"),
    date_to: Optional[datetime] = Query(None, alias="to"),
    successful: Optional[bool] = Query(None),
    audit_context: AuditContext = Depends(get_audit_context_with_api_key),
    db: AsyncSession = Depends(get_db)
):
    """
    Voice agent calls for a page with pagination and a summary over every
    call matching the filters.
    """
    await PageService.get_owned_page(db, page_id, audit_context.organization_id)
    limit = min(limit, settings.LIST_MAX_LIMIT)

    calls, total, summary = await CallLogService.list_calls(
        db,
        page_id=page_id,
        limit=limit,
        offset=offset,
        date_from=date_from,
        date_to=date_to,
        successful=successful
    )

    return CallListResponse(
        calls=[CallLogResponse.model_validate(call) for call in calls],
        pagination=Pagination.build(total=total, limit=limit, offset=offset),
        summary=summary
    )


@router.get("/{page_id}/leads", response_model=LeadListResponse)
async def list_page_leads(
    page_id: str,
    limit: int = Query(settings.LIST_DEFAULT_LIMIT, ge=1, description="Capped at LIST_MAX_LIMIT"),
    offset: int = Query(0, ge=0),
    date_from: Optional[datetime] = Query(None, alias="from"),
    date_to: Optional[datetime] = Query(None, alias="to"),
    email: Optional[str] = Query(None, description="Case-insensitive substring match"),
    domain: Optional[str] = Query(None, description="Exact email domain"),
    audit_context: AuditContext = Depends(get_audit_context_with_api_key),
    db: AsyncSession = Depends(get_db)
):
    """Captured emails for a page with the most frequent email domains."""
    await PageService.get_owned_page(db, page_id, audit_context.organization_id)
    limit = min(limit, settings.LIST_MAX_LIMIT)

    leads, total, top_domains = await LeadService.list_leads(
        db,
        page_id=page_id,
        limit=limit,
        offset=offset,
        date_from=date_from,
        date_to=date_to,
        email=email,
        domain=domain
    )

    return LeadListResponse(
        leads=[LeadResponse.model_validate(lead) for lead in leads],
        pagination=Pagination.build(total=total, limit=limit, offset=offset),
        summary=LeadSummary(
            total_leads=total,
            top_domains=[DomainCount(domain=name, count=count) for name, count in top_domains]
        )
    )
