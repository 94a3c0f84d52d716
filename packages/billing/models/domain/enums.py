"""
Billing enums - plan tiers and their credit allowances.
"""

from enum import Enum
from typing import Optional


class PlanTier(str, Enum):
    """
    Pricing tiers.

    The allowance is both the account's monthly credit pool and the largest
    monthly limit a single API key may carry.
    """

    FREE = "free"
    STARTER = "starter"
    PRO = "pro"

    @classmethod
    def from_value(cls, value: Optional[str]) -> "PlanTier":
        """Resolve a stored plan string; unknown or empty values fall back to FREE."""
        try:
            return cls(value)
        except ValueError:
            return cls.FREE

    def get_credit_allowance(self) -> int:
        """Monthly credits included in this tier."""
        allowances = {
            PlanTier.FREE: 5,
            PlanTier.STARTER: 100,
            PlanTier.PRO: 1000,
        }
        return allowances[self]

    def get_price_cents(self) -> int:
        """Get monthly price in cents."""
        prices = {
            PlanTier.FREE: 0,
            PlanTier.STARTER: 900,  # $9
            PlanTier.PRO: 2900,  # $29
        }
        return prices[self]

    def get_quota_limits(self) -> dict[str, int]:
        """
        Quota limits for this tier.

        - total_credits: account-wide credits per month
        - max_key_limit: highest monthly_limit allowed on one API key
        """
        allowance = self.get_credit_allowance()
        return {
            "total_credits": allowance,
            "max_key_limit": allowance,
        }
