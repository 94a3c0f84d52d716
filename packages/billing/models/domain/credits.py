"""Domain models for credit accounting."""

from typing import Optional
from pydantic import BaseModel

from packages.billing.models.domain.enums import PlanTier


class CreditReservation(BaseModel):
    """
    One credit taken from a key and its owner's pool.

    Hand it back to CreditService.refund_credit if the paid-for work fails.
    """

    api_key_id: int
    user_id: int
    key_usage: int
    monthly_limit: int
    period: str


class CreditUsage(BaseModel):
    """Account credit pool status for the current period."""

    plan: PlanTier
    total_credits: int
    used_credits: int
    remaining: int
    lifetime_used_credits: int
    percentage_used: float
    warning_threshold_reached: bool  # True if >= 80% used
    period: str

    def get_user_message(self) -> Optional[str]:
        """Get user-friendly message about usage status."""
        if self.remaining <= 0:
            return f"Monthly credit limit reached ({self.total_credits:,}). Upgrade your plan for more."
        if self.warning_threshold_reached:
            return f"You've used {self.percentage_used:.0f}% of your monthly credits."
        return None


class PlanChange(BaseModel):
    """Result of switching a user's plan."""

    previous_plan: PlanTier
    plan: PlanTier
    total_credits: int
    clamped_keys: int
