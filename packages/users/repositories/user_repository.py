from typing import Any, Dict, List, Optional
from datetime import datetime, timezone
from sqlalchemy import select, update, func

from common.repositories.base import BaseRepository
from common.core.otel_axiom_exporter import trace_span
from packages.users.models.database.user import UserEntity
from packages.users.models.domain.user import User


class UserRepository(BaseRepository[UserEntity, User]):
    def __init__(self):
        super().__init__(UserEntity, User)

    @trace_span
    async def get_by_email(self, email: str) -> Optional[User]:
        """Get user by email."""
        async with self._get_session() as session:
            result = await session.execute(
                select(UserEntity).where(UserEntity.email == email)
            )
            db_user = result.scalar_one_or_none()
            return self._entity_to_domain(db_user) if db_user else None

    @trace_span
    async def get_by_sso(self, sso_provider: str, sso_user_id: str) -> Optional[User]:
        """Get user by SSO provider and provider subject."""
        async with self._get_session() as session:
            result = await session.execute(
                select(UserEntity).where(
                    UserEntity.sso_provider == sso_provider,
                    UserEntity.sso_user_id == sso_user_id,
                )
            )
            db_user = result.scalar_one_or_none()
            return self._entity_to_domain(db_user) if db_user else None

    @trace_span
    async def get_all(self, limit: Optional[int] = None) -> List[User]:
        """All users, newest first."""
        query = select(UserEntity).order_by(
            UserEntity.created_at.desc(), UserEntity.id.desc()
        )
        if limit:
            query = query.limit(limit)

        async with self._get_session() as session:
            result = await session.execute(query)
            return self._entities_to_domain(result.scalars().all())

    @trace_span
    async def record_login(
        self, user_id: int, profile: Optional[Dict[str, Any]] = None
    ) -> bool:
        """
        Increment login_count and stamp last_login_at in one statement.

        profile optionally refreshes email/name/image in the same update.
        """
        values = {
            "login_count": UserEntity.login_count + 1,
            "last_login_at": datetime.now(timezone.utc),
            **(profile or {}),
        }
        async with self._get_session() as session:
            result = await session.execute(
                update(UserEntity).where(UserEntity.id == user_id).values(**values)
            )
            return result.rowcount > 0

    @trace_span
    async def count(
        self,
        last_login_since: Optional[datetime] = None,
        created_since: Optional[datetime] = None,
    ) -> int:
        """Count users, optionally filtered by last login or creation date."""
        query = select(func.count(UserEntity.id))
        if last_login_since is not None:
            query = query.where(UserEntity.last_login_at >= last_login_since)
        if created_since is not None:
            query = query.where(UserEntity.created_at >= created_since)

        async with self._get_session() as session:
            result = await session.execute(query)
            return result.scalar_one() or 0

    # ------------------------------------------------------------------
    # Credit pool
    # ------------------------------------------------------------------

    @trace_span
    async def lock_for_update(self, user_id: int) -> bool:
        """
        Row-lock the user for the rest of the enclosing transaction.

        Credit writes take the users row before any api_keys row so that
        concurrent reservations, refunds and plan changes lock in one order.
        Returns False when the user does not exist.
        """
        async with self._get_session() as session:
            result = await session.execute(
                select(UserEntity.id).where(UserEntity.id == user_id).with_for_update()
            )
            return result.scalar_one_or_none() is not None

    @trace_span
    async def start_period_if_stale(self, user_id: int, period: str) -> bool:
        """
        Reset used_credits when the stored period is not `period`.

        Guarded on the stored period so concurrent callers reset only once.
        Returns True when this call performed the reset.
        """
        async with self._get_session() as session:
            result = await session.execute(
                update(UserEntity)
                .where(
                    UserEntity.id == user_id,
                    (UserEntity.credits_period.is_(None))
                    | (UserEntity.credits_period != period),
                )
                .values(used_credits=0, credits_period=period)
            )
            return result.rowcount > 0

    @trace_span
    async def try_consume_credit(self, user_id: int) -> bool:
        """
        Consume one credit from the account pool if any is left.

        Single guarded UPDATE: returns False (nothing written) when
        used_credits has already reached total_credits.
        """
        async with self._get_session() as session:
            result = await session.execute(
                update(UserEntity)
                .where(
                    UserEntity.id == user_id,
                    UserEntity.used_credits < UserEntity.total_credits,
                )
                .values(
                    used_credits=UserEntity.used_credits + 1,
                    lifetime_used_credits=UserEntity.lifetime_used_credits + 1,
                )
            )
            return result.rowcount > 0

    @trace_span
    async def release_credit(self, user_id: int) -> bool:
        """Give one consumed credit back (never below zero)."""
        async with self._get_session() as session:
            result = await session.execute(
                update(UserEntity)
                .where(UserEntity.id == user_id, UserEntity.used_credits > 0)
                .values(
                    used_credits=UserEntity.used_credits - 1,
                    lifetime_used_credits=UserEntity.lifetime_used_credits - 1,
                )
            )
            return result.rowcount > 0
