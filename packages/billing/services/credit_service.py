"""
Service for credit accounting.

Every successful proxied request consumes one credit, bounded by the key's
monthly_limit and by the owner's total_credits. Both bounds are enforced by
guarded UPDATEs inside one transaction, so concurrent requests can never push
usage past a limit.
"""

from datetime import datetime, timezone
from fastapi import HTTPException, status

from common.core.otel_axiom_exporter import trace_span, get_logger
from common.core.security import hash_api_key
from common.db.context import transactional
from packages.api_keys.repositories.api_key_repository import ApiKeyRepository
from packages.users.repositories.user_repository import UserRepository
from packages.users.models.domain.user import User, UserUpdateModel
from packages.billing.models.domain.enums import PlanTier
from packages.billing.models.domain.credits import (
    CreditReservation,
    CreditUsage,
    PlanChange,
)

logger = get_logger(__name__)

INVALID_KEY_MESSAGE = "API key is invalid or was not found"


def current_period() -> str:
    """The UTC calendar month usage is counted against, as YYYY-MM."""
    return datetime.now(timezone.utc).strftime("%Y-%m")


def exhausted_key_message(usage: int, limit: int) -> str:
    return f"API key is valid but exhausted. Usage: {usage}/{limit}"


class CreditService:
    """Service for credit reservation, refunds and plan changes."""

    def __init__(self):
        self.api_key_repo = ApiKeyRepository()
        self.user_repo = UserRepository()

    async def _get_user_or_404(self, user_id: int) -> User:
        user = await self.user_repo.get(user_id)
        if not user:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="User not found"
            )
        return user

    @trace_span
    @transactional
    async def ensure_current_period(self, user_id: int) -> bool:
        """
        Lazy monthly rollover.

        When the account's period is not the current month, used_credits and
        every key's usage go back to 0. Returns True if this call rolled over.
        """
        period = current_period()
        rolled_over = await self.user_repo.start_period_if_stale(user_id, period)
        if rolled_over:
            keys_reset = await self.api_key_repo.reset_usage_for_user(user_id)
            logger.info(
                f"Started credit period {period} for user {user_id}",
                extra={"user_id": user_id, "period": period, "keys_reset": keys_reset},
            )
        return rolled_over

    @trace_span
    @transactional
    async def reserve_credit(self, api_key: str) -> CreditReservation:
        """
        Consume one credit for a request made with api_key.

        Raises 403 when the key is unknown, the key is exhausted or the
        owner's pool is empty. Nothing is written when it raises.
        """
        key = await self.api_key_repo.get_by_key_hash(hash_api_key(api_key))
        if not key:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN, detail=INVALID_KEY_MESSAGE
            )

        if not await self.user_repo.lock_for_update(key.user_id):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN, detail=INVALID_KEY_MESSAGE
            )

        await self.ensure_current_period(key.user_id)

        if not await self.api_key_repo.try_increment_usage(key.id):
            key = await self.api_key_repo.get(key.id)
            if not key:
                # Deleted since the lookup
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN, detail=INVALID_KEY_MESSAGE
                )
            logger.warning(
                f"API key {key.id} exhausted its monthly limit",
                extra={
                    "api_key_id": key.id,
                    "user_id": key.user_id,
                    "usage": key.usage,
                    "limit": key.monthly_limit,
                },
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=exhausted_key_message(key.usage, key.monthly_limit),
            )

        if not await self.user_repo.try_consume_credit(key.user_id):
            user = await self.user_repo.get(key.user_id)
            logger.warning(
                f"User {key.user_id} exceeded monthly credits",
                extra={
                    "user_id": key.user_id,
                    "api_key_id": key.id,
                    "current": user.used_credits,
                    "limit": user.total_credits,
                },
            )
            # Raising rolls back the key increment above
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Monthly credit limit reached ({user.total_credits:,}). Upgrade your plan for more.",
            )

        key = await self.api_key_repo.get(key.id)
        return CreditReservation(
            api_key_id=key.id,
            user_id=key.user_id,
            key_usage=key.usage,
            monthly_limit=key.monthly_limit,
            period=current_period(),
        )

    @trace_span
    @transactional
    async def refund_credit(self, reservation: CreditReservation) -> bool:
        """
        Undo a reservation whose work failed.

        Skipped when the period has rolled over since the reservation, as the
        counters it would decrement have already been reset.
        """
        user = await self.user_repo.get(reservation.user_id)
        if not user or user.credits_period != reservation.period:
            logger.info(
                f"Skipping refund for user {reservation.user_id}: period changed",
                extra=reservation.model_dump(),
            )
            return False

        await self.user_repo.release_credit(reservation.user_id)
        await self.api_key_repo.decrement_usage(reservation.api_key_id)

        logger.info(
            f"Refunded credit for API key {reservation.api_key_id}",
            extra=reservation.model_dump(),
        )
        return True

    @trace_span
    async def get_credit_usage(self, user_id: int) -> CreditUsage:
        """Credit pool status for the current period."""
        await self.ensure_current_period(user_id)
        user = await self._get_user_or_404(user_id)

        total = user.total_credits
        used = user.used_credits
        percentage_used = (used / total * 100) if total else 0

        return CreditUsage(
            plan=user.plan,
            total_credits=total,
            used_credits=used,
            remaining=max(total - used, 0),
            lifetime_used_credits=user.lifetime_used_credits,
            percentage_used=percentage_used,
            warning_threshold_reached=(percentage_used >= 80),
            period=user.credits_period or current_period(),
        )

    @trace_span
    @transactional
    async def change_plan(self, user_id: int, tier: PlanTier) -> PlanChange:
        """
        Move the user to tier.

        total_credits becomes the tier allowance; key limits above the tier's
        per-key maximum are lowered to it. Used credits are kept.
        """
        await self.user_repo.lock_for_update(user_id)
        user = await self._get_user_or_404(user_id)
        limits = tier.get_quota_limits()

        await self.user_repo.update(
            user_id,
            UserUpdateModel(plan=tier, total_credits=limits["total_credits"]),
        )
        clamped = await self.api_key_repo.clamp_limits_for_user(
            user_id, limits["max_key_limit"]
        )

        logger.info(
            f"User {user_id} changed plan {user.plan.value} -> {tier.value}",
            extra={
                "user_id": user_id,
                "previous_plan": user.plan.value,
                "plan": tier.value,
                "clamped_keys": clamped,
            },
        )

        return PlanChange(
            previous_plan=user.plan,
            plan=tier,
            total_credits=limits["total_credits"],
            clamped_keys=clamped,
        )
