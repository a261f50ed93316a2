"""Pydantic schemas for request/response contracts."""
from abm_api.schemas.common import Pagination
from abm_api.schemas.page import (
    PageCreateRequest,
    PageUpdateRequest,
    PageResponse,
    PageMutationResponse,
    PageDetailResponse,
    PageListResponse,
    PublicPageResponse,
    PageAccessRequest,
)
from abm_api.schemas.lead import (
    CaptureEmailRequest,
    CaptureEmailResponse,
    LeadResponse,
    LeadListResponse,
)
from abm_api.schemas.call_log import (
    CallLogResponse,
    CallListResponse,
    CallSummary,
)
from abm_api.schemas.api_key import (
    ApiKeyCreateRequest,
    ApiKeyCreateResponse,
    ApiKeyResponse,
    ApiKeyListResponse,
    SuccessResponse,
)
from abm_api.schemas.webhook import (
    PostCallTranscriptionEvent,
    UnhandledWebhookEvent,
    WebhookAck,
    webhook_event_adapter,
)
from abm_api.schemas.audit import (
    AuditLogResponse,
    AuditLogListResponse,
)

__all__ = [
    "Pagination",
    "PageCreateRequest",
    "PageUpdateRequest",
    "PageResponse",
    "PageMutationResponse",
    "PageDetailResponse",
    "PageListResponse",
    "PublicPageResponse",
    "PageAccessRequest",
    "CaptureEmailRequest",
    "CaptureEmailResponse",
    "LeadResponse",
    "LeadListResponse",
    "CallLogResponse",
    "CallListResponse",
    "CallSummary",
    "ApiKeyCreateRequest",
    "ApiKeyCreateResponse",
    "ApiKeyResponse",
    "ApiKeyListResponse",
    "SuccessResponse",
    "PostCallTranscriptionEvent",
    "UnhandledWebhookEvent",
    "WebhookAck",
    "webhook_event_adapter",
    "AuditLogResponse",
    "AuditLogListResponse",
]
