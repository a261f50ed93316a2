import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from abm_api.core.logging_utils import sanitize_log_message
from abm_api.models.call_log import CallLog
from abm_api.schemas.call_log import CallSummary
from abm_api.schemas.webhook import PostCallTranscriptionEvent
from abm_api.services.page_service import PageService

logger = logging.getLogger(__name__)


def summarize_calls(calls: List[CallLog]) -> CallSummary:
    """Aggregate stats over a set of calls."""
    total_calls = len(calls)
    successful_calls = sum(1 for call in calls if call.is_successful)
    total_duration = sum(call.call_duration_seconds or 0 for call in calls)
    total_credits = sum(call.call_cost_usd or 0 for call in calls)

    return CallSummary(
        total_calls=total_calls,
        successful_calls=successful_calls,
        success_rate=round(successful_calls / total_calls * 100) if total_calls else 0,
        total_duration_seconds=total_duration,
        average_duration_seconds=round(total_duration / total_calls) if total_calls else 0,
        total_credits=total_credits,
    )


class CallLogService:
    """Service for storing voice agent calls reported by webhooks and listing them per page."""

    @staticmethod
    async def resolve_page_id(db: AsyncSession, event: PostCallTranscriptionEvent) -> Optional[str]:
        """
        Page a call belongs to: an explicit pageId from the conversation
        variables, else the first page for the reported company name.
        """
        page_id = event.data.page_id
        if page_id:
            page = await PageService.get_page(db, page_id)
            if page is not None:
                return page.id
            logger.warning(sanitize_log_message("Webhook references unknown page", PageID=page_id))

        company_name = event.data.company_name
        if company_name:
            return await PageService.find_page_id_by_company_name(db, company_name)
        return None

    @staticmethod
    async def record_call(
        db: AsyncSession,
        page_id: str,
        event: PostCallTranscriptionEvent,
        raw_payload: Dict[str, Any],
        request_id: Optional[str] = None
    ) -> CallLog:
        """
        Insert a call log row for a post-call transcription event.

        Raises:
            SQLAlchemyError if the insert fails (caller answers 500)
        """
        data = event.data
        call_log = CallLog(
            page_id=page_id,
            conversation_id=data.conversation_id,
            agent_id=data.agent_id,
            call_duration_seconds=data.call_duration_seconds,
            call_cost_usd=data.call_cost_usd,
            started_at=data.started_at,
            ended_at=data.ended_at,
            transcript=data.transcript,
            analysis=data.analysis,
            user_email=data.user_email,
            company_name=data.company_name,
            webhook_payload=raw_payload,
        )
        db.add(call_log)
        await db.commit()
        await db.refresh(call_log)

        logger.info(
            sanitize_log_message(
                "Call log stored",
                RequestID=request_id,
                CallLogID=call_log.id,
                PageID=page_id,
                ConversationID=data.conversation_id,
                DurationSeconds=data.call_duration_seconds
            )
        )
        return call_log

    @staticmethod
    async def list_calls(
        db: AsyncSession,
        page_id: str,
        limit: int,
        offset: int = 0,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        successful: Optional[bool] = None
    ) -> Tuple[List[CallLog], int, CallSummary]:
        """
        Query a page's calls, newest first.

        The success flag lives inside the JSON analysis column, so success
        filtering, totals and the summary are computed over all calls that
        match the date range before the page of results is sliced out.

        Returns:
            Tuple of (calls on this page of results, total matching, summary)
        """
        conditions = [CallLog.page_id == page_id]
        if date_from:
            conditions.append(CallLog.created_at >= date_from)
        if date_to:
            conditions.append(CallLog.created_at <= date_to)

        result = await db.execute(
            select(CallLog)
            .where(*conditions)
            .order_by(CallLog.created_at.desc())
        )
        calls = list(result.scalars().all())

        if successful is not None:
            calls = [call for call in calls if call.is_successful == successful]

        return calls[offset:offset + limit], len(calls), summarize_calls(calls)
