from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from abm_api.schemas.common import Pagination


class CaptureEmailRequest(BaseModel):
    """Public email capture body: {pageId, email}. Presence is checked by the endpoint."""
    model_config = ConfigDict(populate_by_name=True)

    page_id: Optional[str] = Field(default=None, alias="pageId")
    email: Optional[str] = None


class CaptureEmailResponse(BaseModel):
    success: bool = True
    existing: Optional[bool] = None


class LeadResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    page_id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    company: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    captured_at: datetime


class DomainCount(BaseModel):
    domain: str
    count: int


class LeadSummary(BaseModel):
    total_leads: int
    top_domains: List[DomainCount]


class LeadListResponse(BaseModel):
    leads: List[LeadResponse]
    pagination: Pagination
    summary: LeadSummary
