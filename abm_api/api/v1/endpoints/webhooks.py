import json
import logging
from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from abm_api.config import settings
from abm_api.database import get_db
from abm_api.api.deps import AuditContext, get_system_audit_context
from abm_api.core.exceptions import (
    ServerConfigurationException,
    UnauthenticatedException,
    ValidationException,
)
from abm_api.core.logging_utils import sanitize_log_message
from abm_api.core.webhook_signature import SIGNATURE_HEADER, verify_webhook_signature
from abm_api.models.audit_log import ActionType
from abm_api.schemas.webhook import PostCallTranscriptionEvent, WebhookAck, webhook_event_adapter
from abm_api.services.call_log_service import CallLogService

logger = logging.getLogger(__name__)

router = APIRouter()


def _check_signature(raw_body: str, signature: str, request_id: str) -> None:
    """
    Raises:
        UnauthenticatedException on a bad signature
        ServerConfigurationException when no secret is set and unsigned
        webhooks are not allowed
    """
    secret = settings.ELEVENLABS_WEBHOOK_SECRET
    if secret:
        if not verify_webhook_signature(raw_body, signature, secret):
            logger.warning(sanitize_log_message("Invalid webhook signature", RequestID=request_id))
            raise UnauthenticatedException("Invalid signature")
        return

    if not settings.allow_unsigned_webhooks():
        logger.error(sanitize_log_message("Webhook secret is not configured", RequestID=request_id))
        raise ServerConfigurationException("Webhook secret is not configured")

    logger.warning(
        sanitize_log_message(
            "Accepting unsigned webhook: ELEVENLABS_WEBHOOK_SECRET is empty",
            RequestID=request_id,
            Environment=settings.ENVIRONMENT
        )
    )


@router.post("/elevenlabs", response_model=WebhookAck)
async def elevenlabs_webhook(
    request: Request,
    audit_context: AuditContext = Depends(get_system_audit_context),
    db: AsyncSession = Depends(get_db)
):
    """
    Receive post-call events from the voice agent provider.

    Calls that cannot be attributed to a page are acknowledged with 200 so
    the provider does not disable the webhook.
    """
    request_id = audit_context.request_id
    body_bytes = await request.body()
    try:
        raw_body = body_bytes.decode("utf-8")
    except UnicodeDecodeError:
        raise ValidationException("Webhook body must be UTF-8 encoded JSON")

    _check_signature(raw_body, request.headers.get(SIGNATURE_HEADER, ""), request_id)

    try:
        event = webhook_event_adapter.validate_json(raw_body)
    except ValidationError as e:
        logger.warning(
            sanitize_log_message(
                "Malformed webhook payload",
                RequestID=request_id,
                Errors=e.error_count()
            )
        )
        raise ValidationException("Invalid webhook payload")

    if not isinstance(event, PostCallTranscriptionEvent):
        logger.info(sanitize_log_message("Ignoring webhook event", RequestID=request_id, EventType=event.type))
        return WebhookAck(message="Event type not handled")

    page_id = await CallLogService.resolve_page_id(db, event)
    if page_id is None:
        logger.error(
            sanitize_log_message(
                "Could not determine page for call log",
                RequestID=request_id,
                ConversationID=event.data.conversation_id,
                CompanyName=event.data.company_name
            )
        )
        return WebhookAck(message="Page not found, but acknowledged")

    try:
        call_log = await CallLogService.record_call(
            db,
            page_id=page_id,
            event=event,
            raw_payload=json.loads(raw_body),
            request_id=request_id
        )
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception(
            sanitize_log_message(
                "Error inserting call log",
                RequestID=request_id,
                PageID=page_id,
                Error=str(e)
            )
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to store call log"
        )

    audit_context.log_action(
        action_type=ActionType.CALL_LOGGED,
        resource_type="call_log",
        resource_id=call_log.id,
        request_data={"page_id": page_id, "conversation_id": event.data.conversation_id}
    )
    return WebhookAck(message="Webhook processed successfully")
