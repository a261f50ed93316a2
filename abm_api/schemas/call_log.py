from typing import Any, Dict, List, Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict
from abm_api.schemas.common import Pagination


class CallLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    page_id: str
    conversation_id: Optional[str] = None
    agent_id: Optional[str] = None
    call_duration_seconds: Optional[int] = None
    call_cost_usd: Optional[float] = None
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    transcript: Optional[List[Dict[str, Any]]] = None
    analysis: Optional[Dict[str, Any]] = None
    user_email: Optional[str] = None
    company_name: Optional[str] = None
    created_at: datetime


class CallSummary(BaseModel):
    total_calls: int
    successful_calls: int
    success_rate: int
    total_duration_seconds: int
    average_duration_seconds: int
    total_credits: float


class CallListResponse(BaseModel):
    calls: List[CallLogResponse]
    pagination: Pagination
    summary: CallSummary
