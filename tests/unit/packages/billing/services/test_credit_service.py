"""
Unit tests for credit accounting.

Reservation must consume from the key and the account together, or not at
all.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from common.core.security import api_key_hint, generate_api_key, hash_api_key
from common.db.base import Base
from packages.api_keys.models.database.api_key import ApiKeyEntity
from packages.users.models.database.user import UserEntity
from packages.api_keys.repositories.api_key_repository import ApiKeyRepository
from packages.billing.models.domain.enums import PlanTier
from packages.billing.services.credit_service import CreditService, current_period
from packages.users.repositories.user_repository import UserRepository


@pytest.mark.asyncio
class TestReserveCredit:
    """Tests for reserve_credit."""

    async def test_reserve_consumes_key_and_account(
        self, sample_api_key, sample_user_entity
    ):
        entity, secret = sample_api_key

        reservation = await CreditService().reserve_credit(secret)

        assert reservation.api_key_id == entity.id
        assert reservation.user_id == sample_user_entity.id
        assert reservation.key_usage == 1
        assert reservation.period == current_period()

        user = await UserRepository().get(sample_user_entity.id)
        assert user.used_credits == 1
        assert user.lifetime_used_credits == 1

    async def test_unknown_key_is_forbidden(self):
        with pytest.raises(HTTPException) as exc_info:
            await CreditService().reserve_credit("sk_unknown")

        assert exc_info.value.status_code == 403
        assert exc_info.value.detail == "API key is invalid or was not found"

    async def test_exhausted_key_is_forbidden(self, make_api_key, sample_user_entity):
        entity, secret = await make_api_key(
            sample_user_entity.id, usage=2, monthly_limit=2
        )

        with pytest.raises(HTTPException) as exc_info:
            await CreditService().reserve_credit(secret)

        assert exc_info.value.status_code == 403
        assert exc_info.value.detail == "API key is valid but exhausted. Usage: 2/2"

        user = await UserRepository().get(sample_user_entity.id)
        assert user.used_credits == 0

    async def test_key_deleted_after_lookup_is_forbidden(
        self, make_api_key, sample_user_entity
    ):
        _, secret = await make_api_key(sample_user_entity.id, usage=2, monthly_limit=2)
        service = CreditService()
        service.api_key_repo.get = AsyncMock(return_value=None)

        with pytest.raises(HTTPException) as exc_info:
            await service.reserve_credit(secret)

        assert exc_info.value.status_code == 403
        assert exc_info.value.detail == "API key is invalid or was not found"

    async def test_account_exhausted_rolls_back_key_increment(
        self, make_api_key, sample_user_entity, test_db
    ):
        # Two keys share the 5-credit pool
        first, first_secret = await make_api_key(sample_user_entity.id, monthly_limit=5)
        second, second_secret = await make_api_key(sample_user_entity.id, monthly_limit=5)

        service = CreditService()
        for _ in range(5):
            await service.reserve_credit(first_secret)

        with pytest.raises(HTTPException) as exc_info:
            await service.reserve_credit(second_secret)

        assert exc_info.value.status_code == 403
        assert "Monthly credit limit reached" in exc_info.value.detail

        key = await ApiKeyRepository().get(second.id)
        assert key.usage == 0
        user = await UserRepository().get(sample_user_entity.id)
        assert user.used_credits == 5

    async def test_reserve_rolls_over_stale_period(
        self, make_api_key, sample_user_entity, test_db
    ):
        entity, secret = await make_api_key(
            sample_user_entity.id, usage=5, monthly_limit=5
        )
        sample_user_entity.used_credits = 5
        sample_user_entity.lifetime_used_credits = 5
        sample_user_entity.credits_period = "2000-01"
        await test_db.commit()

        reservation = await CreditService().reserve_credit(secret)

        assert reservation.key_usage == 1
        user = await UserRepository().get(sample_user_entity.id)
        assert user.used_credits == 1
        assert user.lifetime_used_credits == 6
        assert user.credits_period == current_period()


@pytest.mark.asyncio
class TestRefundCredit:
    """Tests for refund_credit."""

    async def test_refund_restores_counters(self, sample_api_key, sample_user_entity):
        entity, secret = sample_api_key
        service = CreditService()

        reservation = await service.reserve_credit(secret)
        assert await service.refund_credit(reservation) is True

        key = await ApiKeyRepository().get(entity.id)
        assert key.usage == 0
        user = await UserRepository().get(sample_user_entity.id)
        assert user.used_credits == 0
        assert user.lifetime_used_credits == 0

    async def test_refund_skipped_after_rollover(
        self, sample_api_key, sample_user_entity
    ):
        _, secret = sample_api_key
        service = CreditService()

        reservation = await service.reserve_credit(secret)
        await UserRepository().start_period_if_stale(sample_user_entity.id, "2999-01")

        assert await service.refund_credit(reservation) is False


@pytest.mark.asyncio
class TestCreditUsage:
    """Tests for get_credit_usage."""

    async def test_usage_with_warning_threshold(self, sample_user_entity, test_db):
        sample_user_entity.used_credits = 4
        sample_user_entity.lifetime_used_credits = 12
        await test_db.commit()

        usage = await CreditService().get_credit_usage(sample_user_entity.id)

        assert usage.plan == PlanTier.FREE
        assert usage.total_credits == 5
        assert usage.used_credits == 4
        assert usage.remaining == 1
        assert usage.lifetime_used_credits == 12
        assert usage.percentage_used == 80.0
        assert usage.warning_threshold_reached is True
        assert usage.period == current_period()
        assert usage.get_user_message() == "You've used 80% of your monthly credits."

    async def test_usage_resets_in_new_period(self, sample_user_entity, test_db):
        sample_user_entity.used_credits = 5
        sample_user_entity.credits_period = "2000-01"
        await test_db.commit()

        usage = await CreditService().get_credit_usage(sample_user_entity.id)

        assert usage.used_credits == 0
        assert usage.warning_threshold_reached is False

    async def test_usage_unknown_user(self):
        with pytest.raises(HTTPException) as exc_info:
            await CreditService().get_credit_usage(99999)
        assert exc_info.value.status_code == 404


@pytest.mark.asyncio
class TestChangePlan:
    """Tests for change_plan."""

    async def test_upgrade_raises_pool(self, sample_user_entity):
        change = await CreditService().change_plan(sample_user_entity.id, PlanTier.PRO)

        assert change.previous_plan == PlanTier.FREE
        assert change.plan == PlanTier.PRO
        assert change.total_credits == 1000
        assert change.clamped_keys == 0

        user = await UserRepository().get(sample_user_entity.id)
        assert user.plan == PlanTier.PRO
        assert user.total_credits == 1000

    async def test_downgrade_clamps_key_limits_and_keeps_usage(
        self, make_api_key, second_user_entity, test_db
    ):
        big, _ = await make_api_key(second_user_entity.id, monthly_limit=800, usage=40)
        small, _ = await make_api_key(second_user_entity.id, monthly_limit=50)
        second_user_entity.used_credits = 40
        await test_db.commit()

        change = await CreditService().change_plan(
            second_user_entity.id, PlanTier.STARTER
        )

        assert change.clamped_keys == 1
        repo = ApiKeyRepository()
        assert (await repo.get(big.id)).monthly_limit == 100
        assert (await repo.get(big.id)).usage == 40
        assert (await repo.get(small.id)).monthly_limit == 50

        user = await UserRepository().get(second_user_entity.id)
        assert user.total_credits == 100
        assert user.used_credits == 40


@pytest.mark.asyncio
class TestEnsureCurrentPeriod:
    """Tests for the lazy monthly rollover."""

    async def test_rolls_over_once(self, make_api_key, sample_user_entity, test_db):
        entity, _ = await make_api_key(sample_user_entity.id, usage=3)
        sample_user_entity.used_credits = 3
        sample_user_entity.credits_period = "2000-01"
        await test_db.commit()
        service = CreditService()

        assert await service.ensure_current_period(sample_user_entity.id) is True
        assert await service.ensure_current_period(sample_user_entity.id) is False

        key = await ApiKeyRepository().get(entity.id)
        user = await UserRepository().get(sample_user_entity.id)
        assert key.usage == 0
        assert user.used_credits == 0

    async def test_current_period_untouched(self, sample_api_key, sample_user_entity):
        assert await CreditService().ensure_current_period(sample_user_entity.id) is False


USER_WRITES = {
    "lock_for_update",
    "start_period_if_stale",
    "try_consume_credit",
    "release_credit",
    "update",
}
KEY_WRITES = {
    "try_increment_usage",
    "decrement_usage",
    "reset_usage_for_user",
    "clamp_limits_for_user",
}


def _record_row_writes(service: CreditService) -> list:
    """Wrap the service's repositories so every row-locking call is recorded in order."""
    calls = []
    for repo, names in (
        (service.user_repo, USER_WRITES),
        (service.api_key_repo, KEY_WRITES),
    ):
        for name in names:
            original = getattr(repo, name)

            async def recorder(*args, _original=original, _name=name, **kwargs):
                calls.append(_name)
                return await _original(*args, **kwargs)

            setattr(repo, name, recorder)
    return calls


@pytest.mark.asyncio
class TestLockOrder:
    """Credit writes lock the users row before any api_keys row."""

    async def test_reserve_locks_user_first(self, sample_api_key):
        _, secret = sample_api_key
        service = CreditService()
        calls = _record_row_writes(service)

        await service.reserve_credit(secret)

        assert calls[0] == "lock_for_update"
        assert calls.index("try_increment_usage") > calls.index("lock_for_update")

    async def test_refund_releases_user_first(self, sample_api_key):
        _, secret = sample_api_key
        service = CreditService()
        reservation = await service.reserve_credit(secret)
        calls = _record_row_writes(service)

        await service.refund_credit(reservation)

        assert calls == ["release_credit", "decrement_usage"]

    async def test_change_plan_locks_user_first(
        self, make_api_key, second_user_entity
    ):
        await make_api_key(second_user_entity.id, monthly_limit=800)
        service = CreditService()
        calls = _record_row_writes(service)

        await service.change_plan(second_user_entity.id, PlanTier.STARTER)

        assert calls == ["lock_for_update", "update", "clamp_limits_for_user"]


@pytest_asyncio.fixture
async def file_session_factory(tmp_path, patch_lazy_sessions, monkeypatch):
    """
    Session factory on a file-backed database.

    Each transaction() gets its own connection, so concurrent reservations
    really interleave instead of sharing the fixture connection.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'credits.db'}",
        connect_args={"timeout": 30},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    monkeypatch.setattr("common.db.scoped.AsyncSessionLocal", factory)
    monkeypatch.setattr("common.db.scoped.AsyncSessionLocalReadonly", factory)
    yield factory
    await engine.dispose()


@pytest.mark.asyncio
class TestConcurrentReservations:
    async def test_concurrent_reservations_never_exceed_limit(
        self, file_session_factory
    ):
        secret = generate_api_key()
        async with file_session_factory() as session:
            user = UserEntity(
                email="race@example.com",
                name="Race",
                sso_provider="google",
                sso_user_id="google-race",
                plan="free",
                total_credits=5,
                used_credits=0,
                lifetime_used_credits=0,
                credits_period=current_period(),
                login_count=1,
                user_metadata={},
            )
            session.add(user)
            await session.flush()
            key = ApiKeyEntity(
                user_id=user.id,
                name="race",
                key_hash=hash_api_key(secret),
                key_hint=api_key_hint(secret),
                type="dev",
                usage=0,
                monthly_limit=1,
            )
            session.add(key)
            await session.commit()
            user_id, key_id = user.id, key.id

        results = await asyncio.gather(
            *(CreditService().reserve_credit(secret) for _ in range(5)),
            return_exceptions=True,
        )

        reservations = [r for r in results if not isinstance(r, BaseException)]
        failures = [r for r in results if isinstance(r, BaseException)]
        assert len(reservations) == 1
        assert len(failures) == 4
        assert all(isinstance(f, HTTPException) for f in failures)
        assert all(f.status_code == 403 for f in failures)

        assert (await ApiKeyRepository().get(key_id)).usage == 1
        user_after = await UserRepository().get(user_id)
        assert user_after.used_credits == 1
        assert user_after.lifetime_used_credits == 1
