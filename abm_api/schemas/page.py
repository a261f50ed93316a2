from typing import List, Literal, Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from abm_api.models.page import EmailGateType

GateType = Literal["any", "domain", "allowlist"]


class PageCreateRequest(BaseModel):
    """Request schema for creating a page. slug and company_name are checked by the endpoint."""
    slug: Optional[str] = None
    company_name: Optional[str] = None
    title: Optional[str] = None
    hero_title: Optional[str] = None
    hero_subtitle: Optional[str] = None
    body_markdown: Optional[str] = None
    meeting_transcript: Optional[str] = None
    is_published: bool = False
    email_gate_enabled: bool = False
    email_gate_type: GateType = "any"
    email_gate_domain: Optional[str] = None
    email_gate_allowlist: Optional[List[str]] = None


class PageUpdateRequest(BaseModel):
    """Partial update; only fields present in the body are applied."""
    slug: Optional[str] = Field(default=None, min_length=1)
    company_name: Optional[str] = Field(default=None, min_length=1)
    title: Optional[str] = None
    hero_title: Optional[str] = None
    hero_subtitle: Optional[str] = None
    body_markdown: Optional[str] = None
    meeting_transcript: Optional[str] = None
    is_published: Optional[bool] = None
    email_gate_enabled: Optional[bool] = None
    email_gate_type: Optional[GateType] = None
    email_gate_domain: Optional[str] = None
    email_gate_allowlist: Optional[List[str]] = None


class PageResponse(BaseModel):
    """Stored page row."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    organization_id: str
    slug: str
    company_name: str
    title: Optional[str] = None
    hero_title: Optional[str] = None
    hero_subtitle: Optional[str] = None
    body_markdown: Optional[str] = None
    meeting_transcript: Optional[str] = None
    is_published: bool
    created_by: Optional[str] = None
    email_gate_enabled: bool
    email_gate_type: Optional[EmailGateType] = None
    email_gate_domain: Optional[str] = None
    email_gate_allowlist: Optional[List[str]] = None
    created_at: datetime
    updated_at: datetime


class PageMutationResponse(BaseModel):
    success: bool = True
    page: PageResponse
    url: str


class PageDetailResponse(BaseModel):
    page: PageResponse


class PageListResponse(BaseModel):
    pages: List[PageResponse]


class PublicPageResponse(BaseModel):
    """
    What visitors see. Content fields are withheld while the email gate is closed,
    and the gate policy itself is never exposed.
    """
    model_config = ConfigDict(from_attributes=True)

    id: str
    slug: str
    company_name: str
    title: Optional[str] = None
    hero_title: Optional[str] = None
    hero_subtitle: Optional[str] = None
    body_markdown: Optional[str] = None
    email_gate_enabled: bool
    locked: bool = False


class PageAccessRequest(BaseModel):
    email: str
