"""Service for retrieving billing plan information."""

from common.core.otel_axiom_exporter import trace_span
from packages.billing.models.domain.enums import PlanTier
from packages.billing.models.domain.plans import PlanInfo, PlanLimits, PlansResponse

PLAN_METADATA = {
    PlanTier.FREE: {
        "name": "Free",
        "description": "Try it out",
    },
    PlanTier.STARTER: {
        "name": "Starter",
        "description": "For side projects",
    },
    PlanTier.PRO: {
        "name": "Pro",
        "description": "For teams shipping daily",
    },
}


class PlansService:
    """Service for retrieving plan information."""

    @trace_span
    async def get_all_plans(self) -> PlansResponse:
        """Get all available plans with pricing and limits."""
        return PlansResponse(plans=[self._build_plan_info(tier) for tier in PlanTier])

    def _build_plan_info(self, tier: PlanTier) -> PlanInfo:
        limits = tier.get_quota_limits()
        metadata = PLAN_METADATA[tier]
        price_cents = tier.get_price_cents()

        price_dollars = price_cents / 100
        if price_dollars == int(price_dollars):
            price_formatted = f"${int(price_dollars)}"
        else:
            price_formatted = f"${price_dollars:.2f}"

        return PlanInfo(
            tier=tier.value,
            name=metadata["name"],
            description=metadata["description"],
            price_cents=price_cents,
            price_formatted=price_formatted,
            billing_period="month",
            limits=PlanLimits(**limits),
            features=self._build_features_list(limits),
        )

    def _build_features_list(self, limits: dict[str, int]) -> list[str]:
        credits = limits["total_credits"]
        return [
            f"{credits:,} README summaries per month",
            f"Up to {limits['max_key_limit']:,} requests per API key",
            "README lookups with any active key",
        ]
