from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from fastapi import HTTPException, status

from packages.users.repositories.user_repository import UserRepository
from packages.users.models.domain.user import (
    User,
    UserCreateModel,
    UserUpdateModel,
    UserStats,
)
from packages.auth.providers.models import SSOUserInfo
from common.core.otel_axiom_exporter import trace_span, get_logger
from common.db.context import transactional

logger = get_logger(__name__)


class UserService:
    """Service for handling user operations."""

    def __init__(self):
        self.user_repo = UserRepository()

    @trace_span
    @transactional
    async def create_or_update_from_sso(self, sso_user_info: SSOUserInfo) -> User:
        """
        Upsert the user behind a verified SSO identity.

        New users start on the free plan with login_count 1. Returning users
        get their profile refreshed and login bookkeeping bumped.
        """
        provider = sso_user_info.provider.value
        existing = await self.user_repo.get_by_sso(
            provider, sso_user_info.provider_user_id
        )

        if existing:
            profile = {
                "email": sso_user_info.email,
                "name": sso_user_info.full_name or existing.name,
                "image": sso_user_info.picture or existing.image,
            }
            await self.user_repo.record_login(existing.id, profile)
            logger.info(f"Updated returning user {existing.id}")
            return await self.user_repo.get(existing.id)

        user = await self.user_repo.create(
            UserCreateModel(
                email=sso_user_info.email,
                name=sso_user_info.full_name,
                image=sso_user_info.picture,
                sso_provider=provider,
                sso_user_id=sso_user_info.provider_user_id,
                credits_period=datetime.now(timezone.utc).strftime("%Y-%m"),
                last_login_at=datetime.now(timezone.utc),
            )
        )
        logger.info(f"Created user with ID: {user.id}")
        return user

    @trace_span
    async def get_user(self, user_id: int) -> Optional[User]:
        """Get a user by ID."""
        return await self.user_repo.get(user_id)

    @trace_span
    async def get_user_or_404(self, user_id: int) -> User:
        user = await self.user_repo.get(user_id)
        if not user:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="User not found"
            )
        return user

    @trace_span
    async def get_by_email(self, email: str) -> Optional[User]:
        """Get user by email."""
        return await self.user_repo.get_by_email(email)

    @trace_span
    async def get_by_sso(self, sso_provider: str, sso_user_id: str) -> Optional[User]:
        """Get user by SSO provider and user ID."""
        return await self.user_repo.get_by_sso(sso_provider, sso_user_id)

    @trace_span
    @transactional
    async def update_metadata(self, user_id: int, metadata: Dict[str, Any]) -> User:
        """Shallow-merge metadata into the user's existing metadata."""
        user = await self.get_user_or_404(user_id)
        merged = {**user.user_metadata, **metadata}
        updated = await self.user_repo.update(
            user_id, UserUpdateModel(user_metadata=merged)
        )
        logger.info(f"Updated metadata for user {user_id}")
        return updated

    @trace_span
    async def increment_login_count(self, user_id: int) -> User:
        """Bump login_count and last_login_at; returns the updated user."""
        if not await self.user_repo.record_login(user_id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="User not found"
            )
        return await self.user_repo.get(user_id)

    @trace_span
    async def get_all_users(self, limit: Optional[int] = None) -> List[User]:
        """Get all users, newest first."""
        return await self.user_repo.get_all(limit)

    @trace_span
    async def get_user_stats(self) -> UserStats:
        now = datetime.now(timezone.utc)
        month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)

        return UserStats(
            total=await self.user_repo.count(),
            active_last_30_days=await self.user_repo.count(
                last_login_since=now - timedelta(days=30)
            ),
            new_this_month=await self.user_repo.count(created_since=month_start),
        )
