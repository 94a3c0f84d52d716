"""
API schemas for billing operations.

Request and response models for billing endpoints.
"""

from typing import Optional
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from packages.billing.models.domain.enums import PlanTier


class CreditUsageResponse(BaseModel):
    """Account credit pool for the current period."""

    plan: PlanTier
    total_credits: int
    used_credits: int
    remaining: int
    lifetime_used_credits: int
    percentage_used: float
    warning_threshold_reached: bool
    period: str
    message: Optional[str] = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class ChangePlanRequest(BaseModel):
    tier: PlanTier


class ChangePlanResponse(BaseModel):
    previous_plan: PlanTier
    plan: PlanTier
    total_credits: int
    clamped_keys: int

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )
