"""Domain models for billing plans."""

from pydantic import BaseModel


class PlanLimits(BaseModel):
    """Quota limits for a plan."""

    total_credits: int
    max_key_limit: int


class PlanInfo(BaseModel):
    """Complete plan information combining pricing and limits."""

    tier: str
    name: str
    description: str
    price_cents: int
    price_formatted: str
    billing_period: str
    limits: PlanLimits
    features: list[str]


class PlansResponse(BaseModel):
    """Response model for plans endpoint."""

    plans: list[PlanInfo]
