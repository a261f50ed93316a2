import logging
from typing import Any, Dict, List, Optional
from sqlalchemy import select, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from abm_api.core.exceptions import ForbiddenException, NotFoundException, ValidationException
from abm_api.core.logging_utils import sanitize_log_message
from abm_api.models.call_log import CallLog
from abm_api.models.email_capture import PageEmailCapture
from abm_api.models.page import Page, EmailGateType

logger = logging.getLogger(__name__)

DUPLICATE_SLUG_MESSAGE = "A page with this slug already exists"

# Optional text columns where an empty string is stored as NULL
_NULLABLE_TEXT_FIELDS = (
    "title",
    "hero_title",
    "hero_subtitle",
    "body_markdown",
    "meeting_transcript",
)
_GATE_FIELDS = (
    "email_gate_enabled",
    "email_gate_type",
    "email_gate_domain",
    "email_gate_allowlist",
)


def normalize_email_gate(
    enabled: bool,
    gate_type: Optional[str],
    domain: Optional[str],
    allowlist: Optional[List[str]]
) -> Dict[str, Any]:
    """
    Keep only the gate columns that match the selected gate type.

    Returns:
        Column values for email_gate_enabled/type/domain/allowlist
    """
    if not enabled:
        return {
            "email_gate_enabled": False,
            "email_gate_type": None,
            "email_gate_domain": None,
            "email_gate_allowlist": None,
        }

    gate = EmailGateType(gate_type or EmailGateType.ANY.value)

    if gate is EmailGateType.DOMAIN and not domain:
        raise ValidationException("email_gate_domain is required for a domain gate")

    return {
        "email_gate_enabled": True,
        "email_gate_type": gate,
        "email_gate_domain": domain if gate is EmailGateType.DOMAIN else None,
        "email_gate_allowlist": list(allowlist or []) if gate is EmailGateType.ALLOWLIST else None,
    }


class PageService:
    """Service for tenant-scoped landing page CRUD and public lookups."""

    @staticmethod
    async def create_page(
        db: AsyncSession,
        organization_id: str,
        data: Dict[str, Any],
        created_by: Optional[str] = None,
        request_id: Optional[str] = None
    ) -> Page:
        """
        Create a page owned by an organization.

        Args:
            db: Database session
            organization_id: Owning organization
            data: Validated PageCreateRequest fields
            created_by: User id (None for API-created pages)
            request_id: Request ID for tracing

        Raises:
            ValidationException on missing fields or duplicate slug
        """
        if not data.get("slug") or not data.get("company_name"):
            raise ValidationException("slug and company_name are required")

        values = {field: data.get(field) or None for field in _NULLABLE_TEXT_FIELDS}
        values.update(normalize_email_gate(
            bool(data.get("email_gate_enabled")),
            data.get("email_gate_type"),
            data.get("email_gate_domain"),
            data.get("email_gate_allowlist"),
        ))

        page = Page(
            organization_id=organization_id,
            slug=data["slug"],
            company_name=data["company_name"],
            is_published=bool(data.get("is_published", False)),
            created_by=created_by,
            **values
        )
        db.add(page)
        await PageService._commit_unique_slug(db)
        await db.refresh(page)

        logger.info(
            sanitize_log_message(
                "Page created",
                RequestID=request_id,
                PageID=page.id,
                OrganizationID=organization_id,
                Slug=page.slug
            )
        )
        return page

    @staticmethod
    async def list_pages(db: AsyncSession, organization_id: str) -> List[Page]:
        """All pages of an organization, newest first."""
        result = await db.execute(
            select(Page)
            .where(Page.organization_id == organization_id)
            .order_by(Page.created_at.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_page(db: AsyncSession, page_id: str) -> Optional[Page]:
        result = await db.execute(select(Page).where(Page.id == page_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_owned_page(db: AsyncSession, page_id: str, organization_id: str) -> Page:
        """
        Fetch a page and check it belongs to the caller's organization.

        Raises:
            NotFoundException if the page does not exist
            ForbiddenException if it belongs to another organization
        """
        page = await PageService.get_page(db, page_id)
        if page is None:
            raise NotFoundException("Page not found")
        if page.organization_id != organization_id:
            logger.warning(
                sanitize_log_message(
                    "Cross-organization page access denied",
                    PageID=page_id,
                    OrganizationID=organization_id
                )
            )
            raise ForbiddenException("You don't have access to this page")
        return page

    @staticmethod
    async def update_page(
        db: AsyncSession,
        page: Page,
        changes: Dict[str, Any],
        request_id: Optional[str] = None
    ) -> Page:
        """
        Apply a partial update. Only keys present in `changes` are touched;
        gate columns are re-normalised against the merged gate settings.
        """
        for field in ("slug", "company_name", "is_published"):
            if changes.get(field) is not None:
                setattr(page, field, changes[field])

        for field in _NULLABLE_TEXT_FIELDS:
            if field in changes:
                setattr(page, field, changes[field] or None)

        if any(field in changes for field in _GATE_FIELDS):
            current_type = page.email_gate_type.value if page.email_gate_type else None
            merged = {
                "enabled": changes.get("email_gate_enabled", page.email_gate_enabled),
                "gate_type": changes.get("email_gate_type", current_type),
                "domain": changes.get("email_gate_domain", page.email_gate_domain),
                "allowlist": changes.get("email_gate_allowlist", page.email_gate_allowlist),
            }
            for column, value in normalize_email_gate(
                bool(merged["enabled"]),
                merged["gate_type"],
                merged["domain"],
                merged["allowlist"],
            ).items():
                setattr(page, column, value)

        await PageService._commit_unique_slug(db)
        await db.refresh(page)

        logger.info(
            sanitize_log_message(
                "Page updated",
                RequestID=request_id,
                PageID=page.id,
                Fields=sorted(changes.keys())
            )
        )
        return page

    @staticmethod
    async def delete_page(db: AsyncSession, page: Page, request_id: Optional[str] = None) -> None:
        page_id = page.id
        # Children are removed explicitly; SQLite does not enforce ON DELETE CASCADE by default
        await db.execute(delete(PageEmailCapture).where(PageEmailCapture.page_id == page_id))
        await db.execute(delete(CallLog).where(CallLog.page_id == page_id))
        await db.delete(page)
        await db.commit()
        logger.info(sanitize_log_message("Page deleted", RequestID=request_id, PageID=page_id))

    @staticmethod
    async def get_published_page_by_slug(db: AsyncSession, slug: str) -> Optional[Page]:
        result = await db.execute(
            select(Page).where(Page.slug == slug, Page.is_published == True)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def find_page_id_by_company_name(db: AsyncSession, company_name: str) -> Optional[str]:
        """First page for a company name (used to attribute calls that carry no page id)."""
        result = await db.execute(
            select(Page.id)
            .where(Page.company_name == company_name)
            .order_by(Page.created_at.asc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def _commit_unique_slug(db: AsyncSession) -> None:
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise ValidationException(DUPLICATE_SLUG_MESSAGE)
