from typing import List, Optional
from fastapi import HTTPException, status

from common.core.otel_axiom_exporter import trace_span, get_logger
from common.core.security import generate_api_key, hash_api_key, api_key_hint
from packages.api_keys.repositories.api_key_repository import ApiKeyRepository
from packages.api_keys.models.domain.api_key import (
    ApiKey,
    ApiKeyCreateModel,
    ApiKeyUpdateModel,
    ApiKeyVerification,
    ApiKeyWithSecret,
    UsageBreakdown,
    UsageSummary,
)
from packages.api_keys.models.domain.enums import ApiKeyType
from packages.billing.services.credit_service import (
    CreditService,
    INVALID_KEY_MESSAGE,
    exhausted_key_message,
)
from packages.users.repositories.user_repository import UserRepository

logger = get_logger(__name__)


class ApiKeyService:
    """Service for managing a user's API keys."""

    def __init__(self):
        self.api_key_repo = ApiKeyRepository()
        self.user_repo = UserRepository()
        self.credit_service = CreditService()

    async def _max_key_limit(self, user_id: int) -> int:
        user = await self.user_repo.get(user_id)
        if not user:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="User not found"
            )
        return user.plan.get_quota_limits()["max_key_limit"]

    def _validate_name(self, name: Optional[str]) -> str:
        if not name or not name.strip():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="Name is required"
            )
        return name.strip()

    def _validate_monthly_limit(self, monthly_limit: int, max_limit: int) -> int:
        if monthly_limit < 1 or monthly_limit > max_limit:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid monthly limit",
            )
        return monthly_limit

    async def _get_owned_key_or_404(self, key_id: int, user_id: int) -> ApiKey:
        # Other users' keys look missing rather than forbidden
        key = await self.api_key_repo.get(key_id, user_id=user_id)
        if not key:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="API key not found"
            )
        return key

    @trace_span
    async def list_keys(self, user_id: int) -> List[ApiKey]:
        """The user's keys, newest first."""
        await self.credit_service.ensure_current_period(user_id)
        return await self.api_key_repo.get_by_user(user_id)

    @trace_span
    async def create_key(
        self,
        user_id: int,
        name: Optional[str],
        key_type: ApiKeyType = ApiKeyType.DEV,
        monthly_limit: Optional[int] = None,
    ) -> ApiKeyWithSecret:
        """
        Create a key and return it with its plain secret.

        A missing monthly_limit defaults to the plan's per-key maximum.
        """
        name = self._validate_name(name)
        max_limit = await self._max_key_limit(user_id)
        if monthly_limit is None:
            monthly_limit = max_limit
        self._validate_monthly_limit(monthly_limit, max_limit)

        secret = generate_api_key()
        api_key = await self.api_key_repo.create(
            ApiKeyCreateModel(
                user_id=user_id,
                name=name,
                key_hash=hash_api_key(secret),
                key_hint=api_key_hint(secret),
                type=key_type,
                monthly_limit=monthly_limit,
            )
        )

        logger.info(
            f"Created API key {api_key.id} for user {user_id}",
            extra={"api_key_id": api_key.id, "user_id": user_id, "type": key_type},
        )
        return ApiKeyWithSecret(api_key=api_key, secret=secret)

    @trace_span
    async def update_key(
        self,
        key_id: int,
        user_id: int,
        name: Optional[str],
        monthly_limit: Optional[int] = None,
    ) -> ApiKey:
        """Rename a key and optionally change its monthly limit."""
        await self._get_owned_key_or_404(key_id, user_id)
        changes = {"name": self._validate_name(name)}

        if monthly_limit is not None:
            max_limit = await self._max_key_limit(user_id)
            changes["monthly_limit"] = self._validate_monthly_limit(
                monthly_limit, max_limit
            )

        api_key = await self.api_key_repo.update(key_id, ApiKeyUpdateModel(**changes))
        logger.info(f"Updated API key {key_id}")
        return api_key

    @trace_span
    async def delete_key(self, key_id: int, user_id: int) -> bool:
        """
        Delete a key.

        Credits already used through it stay used on the account.
        """
        await self._get_owned_key_or_404(key_id, user_id)
        success = await self.api_key_repo.delete(key_id)
        if success:
            logger.info(f"Deleted API key {key_id}")
        return success

    @trace_span
    async def verify_key(self, secret: str) -> ApiKeyVerification:
        """Check a key without consuming credit."""
        key = await self.api_key_repo.get_by_key_hash(hash_api_key(secret))
        if not key:
            return ApiKeyVerification(valid=False, key=None, message=INVALID_KEY_MESSAGE)

        if await self.credit_service.ensure_current_period(key.user_id):
            key = await self.api_key_repo.get(key.id)

        if key.is_exhausted:
            return ApiKeyVerification(
                valid=False,
                key=key,
                message=exhausted_key_message(key.usage, key.monthly_limit),
            )

        return ApiKeyVerification(
            valid=True,
            key=key,
            message=f"API key is valid. Usage: {key.usage}/{key.monthly_limit}",
        )

    @trace_span
    async def get_usage_summary(self, user_id: int) -> UsageSummary:
        """Usage totals across the user's keys, split by key type."""
        keys = await self.list_keys(user_id)

        by_type = {key_type: UsageBreakdown() for key_type in ApiKeyType}
        for key in keys:
            by_type[key.type].usage += key.usage
            by_type[key.type].limit += key.monthly_limit

        total_usage = sum(b.usage for b in by_type.values())
        total_limit = sum(b.limit for b in by_type.values())
        usage_percentage = (
            min(total_usage / total_limit * 100, 100.0) if total_limit else 0.0
        )

        return UsageSummary(
            total_usage=total_usage,
            total_limit=total_limit,
            remaining=max(total_limit - total_usage, 0),
            usage_percentage=usage_percentage,
            dev=by_type[ApiKeyType.DEV],
            prod=by_type[ApiKeyType.PROD],
            key_count=len(keys),
        )
