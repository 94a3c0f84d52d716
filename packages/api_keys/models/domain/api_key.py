from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict

from packages.api_keys.models.domain.enums import ApiKeyType


class ApiKey(BaseModel):
    """Domain model for API keys (never carries the plain secret)."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    name: str
    key_hash: str
    key_hint: str
    type: ApiKeyType = ApiKeyType.DEV
    usage: int = 0
    monthly_limit: int
    created_at: datetime
    updated_at: datetime

    @property
    def remaining(self) -> int:
        return max(self.monthly_limit - self.usage, 0)

    @property
    def is_exhausted(self) -> bool:
        return self.usage >= self.monthly_limit


class ApiKeyCreateModel(BaseModel):
    """Internal model for repository creation (includes key_hash)"""

    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    user_id: int
    name: str
    key_hash: str
    key_hint: str
    type: ApiKeyType = ApiKeyType.DEV
    monthly_limit: int


class ApiKeyUpdateModel(BaseModel):
    name: Optional[str] = None
    monthly_limit: Optional[int] = None


class ApiKeyWithSecret(BaseModel):
    """API key with the plain secret (only returned on creation)"""

    api_key: ApiKey
    secret: str


class ApiKeyVerification(BaseModel):
    valid: bool
    key: Optional[ApiKey] = None
    message: str


class UsageBreakdown(BaseModel):
    usage: int = 0
    limit: int = 0


class UsageSummary(BaseModel):
    """Usage totals across all of a user's keys."""

    total_usage: int
    total_limit: int
    remaining: int
    usage_percentage: float
    dev: UsageBreakdown
    prod: UsageBreakdown
    key_count: int
