from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, EmailStr, field_validator

from packages.billing.models.domain.enums import PlanTier


class User(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: EmailStr
    name: Optional[str] = None
    image: Optional[str] = None
    sso_provider: str = "google"
    sso_user_id: Optional[str] = None
    plan: PlanTier = PlanTier.FREE
    total_credits: int = 5
    used_credits: int = 0
    lifetime_used_credits: int = 0
    credits_period: Optional[str] = None
    login_count: int = 0
    last_login_at: Optional[datetime] = None
    user_metadata: Dict[str, Any] = {}
    created_at: datetime
    updated_at: datetime

    @field_validator("plan", mode="before")
    @classmethod
    def _resolve_plan(cls, value):
        return PlanTier.from_value(value)

    @field_validator("user_metadata", mode="before")
    @classmethod
    def _default_metadata(cls, value):
        return value or {}

    @property
    def remaining_credits(self) -> int:
        return max(self.total_credits - self.used_credits, 0)


class UserCreateModel(BaseModel):
    """Model for creating a new user."""

    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    email: EmailStr
    name: Optional[str] = None
    image: Optional[str] = None
    sso_provider: str = "google"
    sso_user_id: Optional[str] = None
    plan: PlanTier = PlanTier.FREE
    total_credits: int = PlanTier.FREE.get_credit_allowance()
    used_credits: int = 0
    lifetime_used_credits: int = 0
    credits_period: Optional[str] = None
    login_count: int = 1
    last_login_at: Optional[datetime] = None
    user_metadata: Dict[str, Any] = {}


class UserUpdateModel(BaseModel):
    """Model for updating a user."""

    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    email: Optional[EmailStr] = None
    name: Optional[str] = None
    image: Optional[str] = None
    plan: Optional[PlanTier] = None
    total_credits: Optional[int] = None
    user_metadata: Optional[Dict[str, Any]] = None


class UserStats(BaseModel):
    """Aggregate user counts for admin dashboards."""

    total: int
    active_last_30_days: int
    new_this_month: int
