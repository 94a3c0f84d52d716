from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from packages.api_keys.models.domain.enums import ApiKeyType


class ApiKeyCreate(BaseModel):
    name: str = ""
    type: ApiKeyType = ApiKeyType.DEV
    monthly_limit: Optional[int] = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,  # Allows population by both original name and alias
    )


class ApiKeyUpdate(BaseModel):
    name: str = ""
    monthly_limit: Optional[int] = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,  # Allows population by both original name and alias
    )


class ApiKeyResponse(BaseModel):
    id: int
    name: str
    key_hint: str
    type: ApiKeyType
    usage: int
    monthly_limit: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ApiKeyCreatedResponse(ApiKeyResponse):
    """Creation response; the only time the plain key is returned."""

    key: str = Field(..., description="Plain API key. Store it now, it is not shown again.")


class ApiKeyVerifyRequest(BaseModel):
    key: Optional[str] = None


class ApiKeyVerifyResponse(BaseModel):
    valid: bool
    key: Optional[ApiKeyResponse] = None
    message: str


class DeleteApiKeyResponse(BaseModel):
    success: bool = True


class UsageBreakdownResponse(BaseModel):
    usage: int
    limit: int


class UsageSummaryResponse(BaseModel):
    total_usage: int
    total_limit: int
    remaining: int
    usage_percentage: float
    dev: UsageBreakdownResponse
    prod: UsageBreakdownResponse
    key_count: int

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )
