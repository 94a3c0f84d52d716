from typing import List, Optional
from sqlalchemy import select, update

from common.repositories.base import BaseRepository
from common.core.otel_axiom_exporter import trace_span
from packages.api_keys.models.database.api_key import ApiKeyEntity
from packages.api_keys.models.domain.api_key import ApiKey


class ApiKeyRepository(BaseRepository[ApiKeyEntity, ApiKey]):
    def __init__(self):
        super().__init__(ApiKeyEntity, ApiKey)

    @trace_span
    async def get_by_key_hash(self, key_hash: str) -> Optional[ApiKey]:
        async with self._get_session() as session:
            result = await session.execute(
                select(ApiKeyEntity)
                .where(ApiKeyEntity.key_hash == key_hash)
                .execution_options(populate_existing=True)
            )
            entity = result.scalar_one_or_none()
            return self._entity_to_domain(entity) if entity else None

    @trace_span
    async def get_by_user(self, user_id: int) -> List[ApiKey]:
        """A user's keys, newest first."""
        query = (
            select(ApiKeyEntity)
            .order_by(ApiKeyEntity.created_at.desc(), ApiKeyEntity.id.desc())
            .execution_options(populate_existing=True)
        )
        query = self._add_owner_filter(query, user_id)

        async with self._get_session() as session:
            result = await session.execute(query)
            return self._entities_to_domain(result.scalars().all())

    @trace_span
    async def try_increment_usage(self, key_id: int) -> bool:
        """
        usage += 1 only while usage < monthly_limit.

        Returns False when the key was already exhausted (no row touched).
        """
        async with self._get_session() as session:
            result = await session.execute(
                update(ApiKeyEntity)
                .where(
                    ApiKeyEntity.id == key_id,
                    ApiKeyEntity.usage < ApiKeyEntity.monthly_limit,
                )
                .values(usage=ApiKeyEntity.usage + 1)
            )
            return result.rowcount > 0

    @trace_span
    async def decrement_usage(self, key_id: int) -> bool:
        async with self._get_session() as session:
            result = await session.execute(
                update(ApiKeyEntity)
                .where(ApiKeyEntity.id == key_id, ApiKeyEntity.usage > 0)
                .values(usage=ApiKeyEntity.usage - 1)
            )
            return result.rowcount > 0

    @trace_span
    async def reset_usage_for_user(self, user_id: int) -> int:
        """Zero the usage of every key the user owns. Returns rows touched."""
        async with self._get_session() as session:
            result = await session.execute(
                update(ApiKeyEntity)
                .where(ApiKeyEntity.user_id == user_id)
                .values(usage=0)
            )
            return result.rowcount

    @trace_span
    async def clamp_limits_for_user(self, user_id: int, max_limit: int) -> int:
        """Lower every monthly_limit above max_limit to max_limit."""
        async with self._get_session() as session:
            result = await session.execute(
                update(ApiKeyEntity)
                .where(
                    ApiKeyEntity.user_id == user_id,
                    ApiKeyEntity.monthly_limit > max_limit,
                )
                .values(monthly_limit=max_limit)
            )
            return result.rowcount
