import logging
from collections import Counter
from datetime import datetime
from typing import List, Optional, Tuple
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from abm_api.core.email_gate import GateDecision, evaluate_email_gate, policy_from_page
from abm_api.core.logging_utils import sanitize_log_message
from abm_api.models.email_capture import PageEmailCapture
from abm_api.models.page import Page

logger = logging.getLogger(__name__)

TOP_DOMAINS_LIMIT = 10


class LeadService:
    """Service for email gate admission, lead capture and lead listing."""

    @staticmethod
    def check_gate(page: Page, email: str) -> GateDecision:
        return evaluate_email_gate(email, policy_from_page(page))

    @staticmethod
    async def capture_email(
        db: AsyncSession,
        page_id: str,
        email: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        request_id: Optional[str] = None
    ) -> Tuple[PageEmailCapture, bool]:
        """
        Record a lead once per (page, email).

        Returns:
            Tuple of (capture, created). A duplicate returns the stored row
            with created=False; it is not an error.
        """
        normalized = email.lower()
        capture = PageEmailCapture(
            page_id=page_id,
            email=normalized,
            ip_address=ip_address or "unknown",
            user_agent=user_agent or "",
        )
        db.add(capture)
        try:
            await db.commit()
        except IntegrityError:
            # Unique (page_id, email): the lead was captured before
            await db.rollback()
            result = await db.execute(
                select(PageEmailCapture).where(
                    PageEmailCapture.page_id == page_id,
                    PageEmailCapture.email == normalized
                )
            )
            existing = result.scalar_one()
            logger.info(
                sanitize_log_message(
                    "Email already captured",
                    RequestID=request_id,
                    PageID=page_id,
                    Email=normalized
                )
            )
            return existing, False

        await db.refresh(capture)
        logger.info(
            sanitize_log_message(
                "Email captured",
                RequestID=request_id,
                PageID=page_id,
                Email=normalized
            )
        )
        return capture, True

    @staticmethod
    def _filters(
        page_id: str,
        date_from: Optional[datetime],
        date_to: Optional[datetime],
        email: Optional[str],
        domain: Optional[str]
    ) -> list:
        conditions = [PageEmailCapture.page_id == page_id]
        if date_from:
            conditions.append(PageEmailCapture.captured_at >= date_from)
        if date_to:
            conditions.append(PageEmailCapture.captured_at <= date_to)
        if email:
            conditions.append(PageEmailCapture.email.contains(email.lower(), autoescape=True))
        if domain:
            conditions.append(PageEmailCapture.email.endswith(f"@{domain.lower()}", autoescape=True))
        return conditions

    @staticmethod
    async def list_leads(
        db: AsyncSession,
        page_id: str,
        limit: int,
        offset: int = 0,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        email: Optional[str] = None,
        domain: Optional[str] = None
    ) -> Tuple[List[PageEmailCapture], int, List[Tuple[str, int]]]:
        """
        Query a page's leads with filters.

        Returns:
            Tuple of (leads on this page of results, total matching, top domains)
        """
        conditions = LeadService._filters(page_id, date_from, date_to, email, domain)

        total = await db.scalar(
            select(func.count()).select_from(PageEmailCapture).where(*conditions)
        )

        result = await db.execute(
            select(PageEmailCapture)
            .where(*conditions)
            .order_by(PageEmailCapture.captured_at.desc())
            .limit(limit)
            .offset(offset)
        )
        leads = list(result.scalars().all())

        emails = await db.execute(select(PageEmailCapture.email).where(*conditions))
        domain_counts = Counter(
            address.split("@", 1)[1]
            for address in emails.scalars().all()
            if "@" in address
        )
        # Ties keep first-seen order
        top_domains = domain_counts.most_common(TOP_DOMAINS_LIMIT)

        return leads, total or 0, top_domains
