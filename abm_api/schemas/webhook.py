"""
Voice provider webhook payloads.

Bodies are decoded into a tagged union before any business logic touches
them: ``post_call_transcription`` events get a typed model, every other
event type is kept as an opaque acknowledgement-only event.
"""
import math
from typing import Annotated, Any, Dict, List, Optional, Union, Literal
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Discriminator, Tag, TypeAdapter, field_validator

POST_CALL_TRANSCRIPTION = "post_call_transcription"


class ConversationData(BaseModel):
    model_config = ConfigDict(extra="allow")

    conversation_id: Optional[str] = None
    agent_id: Optional[str] = None
    call_duration_seconds: Optional[int] = None
    call_cost_usd: Optional[float] = None
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    transcript: Optional[List[Dict[str, Any]]] = None
    analysis: Optional[Dict[str, Any]] = None
    metadata: Optional[Dict[str, Any]] = None
    dynamic_variables: Optional[Dict[str, Any]] = None
    variables: Optional[Dict[str, Any]] = None

    @field_validator("call_duration_seconds", mode="before")
    @classmethod
    def round_duration(cls, value: Any) -> Any:
        # Providers may report fractional seconds; the column holds whole seconds
        if isinstance(value, float) and math.isfinite(value):
            return round(value)
        return value

    def _lookup(self, name: str, sources: tuple) -> Optional[str]:
        for source in sources:
            value = (getattr(self, source) or {}).get(name)
            if value:
                return str(value)
        return None

    @property
    def user_email(self) -> Optional[str]:
        return self._lookup("userEmail", ("metadata", "dynamic_variables", "variables"))

    @property
    def company_name(self) -> Optional[str]:
        return self._lookup("companyName", ("metadata", "dynamic_variables", "variables"))

    @property
    def page_id(self) -> Optional[str]:
        return self._lookup("pageId", ("metadata", "variables", "dynamic_variables"))


class PostCallTranscriptionEvent(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: Literal["post_call_transcription"]
    data: ConversationData


class UnhandledWebhookEvent(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: Optional[str] = None


def _event_tag(value: Any) -> str:
    event_type = value.get("type") if isinstance(value, dict) else getattr(value, "type", None)
    return "transcription" if event_type == POST_CALL_TRANSCRIPTION else "other"


WebhookEvent = Annotated[
    Union[
        Annotated[PostCallTranscriptionEvent, Tag("transcription")],
        Annotated[UnhandledWebhookEvent, Tag("other")],
    ],
    Discriminator(_event_tag),
]

webhook_event_adapter = TypeAdapter(WebhookEvent)


class WebhookAck(BaseModel):
    message: str
