from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, EmailStr
from pydantic.alias_generators import to_camel

from packages.billing.models.domain.enums import PlanTier


class UserResponse(BaseModel):
    id: int
    email: EmailStr
    name: Optional[str] = None
    image: Optional[str] = None
    sso_provider: str
    plan: PlanTier
    total_credits: int
    used_credits: int
    remaining_credits: int
    lifetime_used_credits: int
    login_count: int
    last_login_at: Optional[datetime] = None
    metadata: Dict[str, Any] = {}
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    @classmethod
    def from_user(cls, user) -> "UserResponse":
        return cls(
            **user.model_dump(exclude={"user_metadata"}),
            remaining_credits=user.remaining_credits,
            metadata=user.user_metadata,
        )


class UserMetadataUpdate(BaseModel):
    metadata: Dict[str, Any]
