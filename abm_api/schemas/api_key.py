from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field


class ApiKeyCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    expiry_days: int = Field(default=0, ge=0, description="0 means the key never expires")


class ApiKeyResponse(BaseModel):
    """API key metadata. Neither the raw key nor its hash is ever returned."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    key_prefix: str
    is_active: bool
    expires_at: Optional[datetime] = None
    last_used_at: Optional[datetime] = None
    created_at: datetime
    created_by: Optional[str] = None


class ApiKeyCreateResponse(BaseModel):
    success: bool = True
    api_key: str
    key: ApiKeyResponse
    message: str = "Save this API key now. It will not be shown again."


class ApiKeyListResponse(BaseModel):
    api_keys: List[ApiKeyResponse]


class SuccessResponse(BaseModel):
    success: bool = True
