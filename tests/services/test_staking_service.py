"""Staking service: stake lifecycle, claims and withdrawals on a real session."""

from __future__ import annotations

from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from boop.db.models import Payout, StakePosition, XPLedger
from boop.errors import ErrorKind, StakingError
from boop.staking import service
from boop.staking.accrual import reward_delta
from boop.staking.apr import compose_apr
from boop.staking.status import StakeStatus
from boop.timeutils import ensure_utc
from tests.services.helpers import make_user, reload_user

pytestmark = pytest.mark.asyncio

FID = 1001
DAY = timedelta(days=1)


class TestCreateStake:
    """Opening positions."""

    async def test_creates_active_position(self, db_session, alice, t0, redis_mock):
        position = await service.create_stake(db_session, redis_mock, FID, 100_000, now=t0)
        assert position.id is not None
        assert position.status == StakeStatus.ACTIVE
        assert position.principal == 100_000
        assert position.unclaimed_reward == 0.0
        redis_mock.publish.assert_awaited()

    @pytest.mark.parametrize("amount", [0, -10, float("nan"), float("inf")])
    async def test_invalid_amount(self, db_session, alice, t0, amount):
        with pytest.raises(StakingError) as exc:
            await service.create_stake(db_session, None, FID, amount, now=t0)
        assert exc.value.kind == ErrorKind.VALIDATION

    async def test_below_minimum(self, db_session, alice, t0):
        with pytest.raises(StakingError) as exc:
            await service.create_stake(db_session, None, FID, 999, now=t0)
        assert exc.value.kind == ErrorKind.INSUFFICIENT_STAKE
        assert exc.value.data["minStake"] == 1_000

    async def test_unknown_user(self, db_session, t0):
        with pytest.raises(StakingError) as exc:
            await service.create_stake(db_session, None, 4242, 5_000, now=t0)
        assert exc.value.kind == ErrorKind.NOT_FOUND

    async def test_existing_positions_checkpointed_at_old_apr(self, db_session, alice, t0):
        first = await service.create_stake(db_session, None, FID, 100_000, now=t0)
        old_apr = compose_apr(100_000, 0, 0, False, False).total

        await service.create_stake(db_session, None, FID, 1_000_000, now=t0 + DAY)
        assert first.last_accrual_at == t0 + DAY
        assert first.unclaimed_reward == pytest.approx(reward_delta(100_000, old_apr, t0, t0 + DAY))


class TestUnstakeAndWithdraw:
    """active -> pending_unstake -> unlocked -> withdrawn."""

    async def test_full_timeline(self, db_session, alice, t0):
        position = await service.create_stake(db_session, None, FID, 100_000, now=t0)
        apr = compose_apr(100_000, 0, 0, False, False).total

        unstaked = await service.request_unstake(db_session, None, FID, position.id, now=t0 + DAY)
        assert unstaked.status == StakeStatus.PENDING_UNSTAKE
        assert unstaked.unlock_at == t0 + DAY + timedelta(days=21)
        snapshot = unstaked.unclaimed_reward
        assert snapshot == pytest.approx(reward_delta(100_000, apr, t0, t0 + DAY))

        with pytest.raises(StakingError) as exc:
            await service.withdraw_stake(db_session, None, FID, position.id, now=t0 + 11 * DAY)
        assert exc.value.kind == ErrorKind.STILL_LOCKED

        result = await service.withdraw_stake(
            db_session, None, FID, position.id, now=t0 + 22 * DAY + timedelta(seconds=1),
        )
        assert result["principal"] == 100_000
        assert result["fee"] == 1_000
        assert result["amount"] == 99_000
        assert result["rewardCredited"] == pytest.approx(snapshot * 0.98, abs=1e-6)

        stored = (await db_session.execute(select(StakePosition))).scalar_one()
        assert stored.status == StakeStatus.WITHDRAWN
        assert stored.principal == 0
        assert stored.unclaimed_reward == 0

        payouts = (await db_session.execute(select(Payout))).scalars().all()
        assert [(p.kind, p.net, p.status) for p in payouts] == [("principal", 99_000, "pending")]

    async def test_unstake_twice(self, db_session, alice, t0):
        position = await service.create_stake(db_session, None, FID, 5_000, now=t0)
        await service.request_unstake(db_session, None, FID, position.id, now=t0)
        with pytest.raises(StakingError) as exc:
            await service.request_unstake(db_session, None, FID, position.id, now=t0 + DAY)
        assert exc.value.kind == ErrorKind.INVALID_STATE

    async def test_withdraw_active(self, db_session, alice, t0):
        position = await service.create_stake(db_session, None, FID, 5_000, now=t0)
        with pytest.raises(StakingError) as exc:
            await service.withdraw_stake(db_session, None, FID, position.id, now=t0)
        assert exc.value.kind == ErrorKind.INVALID_STATE

    async def test_withdraw_twice(self, db_session, alice, t0):
        position = await service.create_stake(db_session, None, FID, 5_000, now=t0)
        await service.request_unstake(db_session, None, FID, position.id, now=t0)
        await service.withdraw_stake(db_session, None, FID, position.id, now=t0 + 21 * DAY)
        with pytest.raises(StakingError) as exc:
            await service.withdraw_stake(db_session, None, FID, position.id, now=t0 + 22 * DAY)
        assert exc.value.kind == ErrorKind.ALREADY_WITHDRAWN

    async def test_missing_stake(self, db_session, alice, t0):
        with pytest.raises(StakingError) as exc:
            await service.request_unstake(db_session, None, FID, 999, now=t0)
        assert exc.value.kind == ErrorKind.NOT_FOUND

    async def test_other_users_stake_not_found(self, db_session, alice, t0):
        await make_user(db_session, 2002, "bob")
        position = await service.create_stake(db_session, None, 2002, 5_000, now=t0)
        with pytest.raises(StakingError) as exc:
            await service.request_unstake(db_session, None, FID, position.id, now=t0)
        assert exc.value.kind == ErrorKind.NOT_FOUND

    async def test_unstake_checkpoints_remaining_positions(self, db_session, alice, t0):
        """Remaining active stake keeps what it earned at the pre-unstake APR."""
        keep = await service.create_stake(db_session, None, FID, 100_000, now=t0)
        leave = await service.create_stake(db_session, None, FID, 100_000, now=t0)
        apr = compose_apr(200_000, 0, 0, False, False).total

        await service.request_unstake(db_session, None, FID, leave.id, now=t0 + DAY)
        assert keep.last_accrual_at == t0 + DAY
        assert keep.unclaimed_reward == pytest.approx(reward_delta(100_000, apr, t0, t0 + DAY))

    async def test_sweep_unlocks(self, db_session, alice, t0):
        position = await service.create_stake(db_session, None, FID, 5_000, now=t0)
        await service.request_unstake(db_session, None, FID, position.id, now=t0)

        assert await service.sweep_unlocks(db_session, now=t0 + 20 * DAY) == 0
        assert await service.sweep_unlocks(db_session, now=t0 + 21 * DAY) == 1
        stored = (await db_session.execute(select(StakePosition))).scalar_one()
        assert stored.status == StakeStatus.UNLOCKED


class TestClaim:
    """Claims: fee, XP, streak and cooldown."""

    async def test_first_claim(self, db_session, alice, t0, redis_mock):
        await service.create_stake(db_session, None, FID, 100_000, now=t0)
        apr = compose_apr(100_000, 0, 0, False, False).total

        result = await service.claim(db_session, redis_mock, FID, now=t0 + DAY)
        expected = reward_delta(100_000, apr, t0, t0 + DAY)
        assert result["gross"] == pytest.approx(expected, abs=1e-6)
        assert result["fee"] == pytest.approx(expected * 0.02, abs=1e-6)
        assert result["net"] == pytest.approx(expected * 0.98, abs=1e-6)
        assert result["newXp"] == 25
        assert result["newLevel"] == 0
        assert result["newStreak"] == 1

        user = await reload_user(db_session, FID)
        assert user.withdrawable_balance == pytest.approx(result["net"], abs=1e-6)
        assert user.last_claim_at is not None

        ledger = (await db_session.execute(select(XPLedger))).scalars().all()
        assert [(e.amount, e.source) for e in ledger] == [(25, "claim")]

        channels = [call.args[0] for call in redis_mock.publish.await_args_list]
        assert "pubsub:reward_claimed" in channels

    async def test_too_early_changes_nothing(self, db_session, alice, t0):
        await service.create_stake(db_session, None, FID, 100_000, now=t0)
        first = await service.claim(db_session, None, FID, now=t0 + DAY)

        with pytest.raises(StakingError) as exc:
            await service.claim(db_session, None, FID, now=t0 + DAY + timedelta(hours=12))
        assert exc.value.kind == ErrorKind.TOO_EARLY
        assert exc.value.data["nextClaimInSeconds"] == 43200

        user = await reload_user(db_session, FID)
        assert user.xp == 25
        assert user.daily_streak == 1
        assert user.withdrawable_balance == pytest.approx(first["net"], abs=1e-6)
        ledger = (await db_session.execute(select(XPLedger))).scalars().all()
        assert len(ledger) == 1

    async def test_streak_builds_over_days(self, db_session, alice, t0):
        await service.create_stake(db_session, None, FID, 10_000, now=t0)
        for day in range(1, 4):
            result = await service.claim(db_session, None, FID, now=t0 + day * DAY)
        assert result["newStreak"] == 3
        assert result["newXp"] == 75

    async def test_streak_resets_after_gap(self, db_session, alice, t0):
        await service.create_stake(db_session, None, FID, 10_000, now=t0)
        await service.claim(db_session, None, FID, now=t0 + DAY)
        result = await service.claim(db_session, None, FID, now=t0 + 4 * DAY)
        assert result["newStreak"] == 1

    async def test_level_up_event(self, db_session, alice, t0, redis_mock):
        user = await reload_user(db_session, FID)
        user.xp = 250
        await db_session.commit()

        result = await service.claim(db_session, redis_mock, FID, now=t0)
        assert result["newLevel"] == 1
        channels = [call.args[0] for call in redis_mock.publish.await_args_list]
        assert "pubsub:level_up" in channels

    async def test_claim_without_stake(self, db_session, alice, t0):
        result = await service.claim(db_session, None, FID, now=t0)
        assert result["gross"] == 0.0
        assert result["newXp"] == 25


class TestWithdrawRewards:
    """Claimed balance hand-off."""

    async def test_withdraw_after_claim(self, db_session, alice, t0):
        await service.create_stake(db_session, None, FID, 100_000, now=t0)
        claimed = await service.claim(db_session, None, FID, now=t0 + DAY)

        result = await service.withdraw_rewards(db_session, None, FID, now=t0 + DAY)
        assert result["fee"] == 0.0
        assert result["net"] == pytest.approx(claimed["net"], abs=1e-6)

        user = await reload_user(db_session, FID)
        assert user.withdrawable_balance == 0.0
        payout = (await db_session.execute(select(Payout))).scalar_one()
        assert payout.kind == "reward"

    async def test_nothing_to_withdraw(self, db_session, alice, t0):
        with pytest.raises(StakingError) as exc:
            await service.withdraw_rewards(db_session, None, FID, now=t0)
        assert exc.value.kind == ErrorKind.VALIDATION


class TestStatus:
    """Read-only status view."""

    async def test_new_user(self, db_session, alice, t0):
        status = await service.get_status(db_session, FID, now=t0)
        assert status["totalApr"] == 0.0
        assert status["totalStaked"] == 0
        assert status["canClaim"] is True
        assert status["nextClaimInSeconds"] == 0
        assert status["activeBoost"] is None

    async def test_with_stake(self, db_session, alice, t0):
        await service.create_stake(db_session, None, FID, 100_000, now=t0)
        apr = compose_apr(100_000, 0, 0, False, False)

        status = await service.get_status(db_session, FID, now=t0 + DAY)
        assert status["totalApr"] == apr.total
        assert status["components"]["base"] == apr.base
        assert status["totalStaked"] == 100_000
        assert status["totalUnclaimed"] == pytest.approx(reward_delta(100_000, apr.total, t0, t0 + DAY), abs=1e-6)

    async def test_cooldown_reported(self, db_session, alice, t0):
        await service.claim(db_session, None, FID, now=t0)
        status = await service.get_status(db_session, FID, now=t0 + timedelta(hours=6))
        assert status["canClaim"] is False
        assert status["nextClaimInSeconds"] == 18 * 3600
        assert status["dailyStreak"] == 1

    async def test_list_stakes_applies_unlock(self, db_session, alice, t0):
        position = await service.create_stake(db_session, None, FID, 5_000, now=t0)
        await service.request_unstake(db_session, None, FID, position.id, now=t0)
        positions = await service.list_stakes(db_session, FID, now=t0 + 30 * DAY)
        assert [p.status for p in positions] == [StakeStatus.UNLOCKED]

    async def test_lapsed_streak_earns_no_bonus(self, db_session, alice, t0):
        user = await reload_user(db_session, FID)
        user.daily_streak = 30
        user.last_claim_at = t0
        await db_session.commit()
        await service.create_stake(db_session, None, FID, 100_000, now=t0)

        alive = await service.get_status(db_session, FID, now=t0 + DAY)
        assert alive["streakAlive"] is True
        assert alive["components"]["streak"] == 10

        lapsed = await service.get_status(db_session, FID, now=t0 + 3 * DAY)
        assert lapsed["streakAlive"] is False
        assert lapsed["components"]["streak"] == 0.0
        with_streak = compose_apr(100_000, 0, 30, False, False).total
        without = compose_apr(100_000, 0, 0, False, False).total
        assert lapsed["totalApr"] == without
        assert lapsed["totalUnclaimed"] == pytest.approx(
            reward_delta(100_000, with_streak, t0, t0 + 2 * DAY)
            + reward_delta(100_000, without, t0 + 2 * DAY, t0 + 3 * DAY),
            abs=1e-6,
        )


def _failing_commit() -> AsyncMock:
    return AsyncMock(side_effect=OperationalError("COMMIT", {}, Exception("disk I/O error")))


class TestStorageFailure:
    """A failed commit rolls the whole operation back and surfaces INTERNAL."""

    async def test_claim_rolled_back(self, db_session, alice, t0):
        await service.create_stake(db_session, None, FID, 100_000, now=t0)

        with patch.object(db_session, "commit", _failing_commit()):
            with pytest.raises(StakingError) as exc:
                await service.claim(db_session, None, FID, now=t0 + DAY)
        assert exc.value.kind == ErrorKind.INTERNAL

        user = await reload_user(db_session, FID)
        assert user.xp == 0
        assert user.withdrawable_balance == 0.0
        assert user.last_claim_at is None
        assert user.daily_streak == 0

        position = (await db_session.execute(select(StakePosition))).scalar_one()
        assert ensure_utc(position.last_accrual_at) == t0
        assert position.unclaimed_reward == 0.0
        assert (await db_session.execute(select(XPLedger))).scalars().all() == []

    async def test_claim_succeeds_after_failed_attempt(self, db_session, alice, t0):
        await service.create_stake(db_session, None, FID, 100_000, now=t0)
        with patch.object(db_session, "commit", _failing_commit()):
            with pytest.raises(StakingError):
                await service.claim(db_session, None, FID, now=t0 + DAY)

        result = await service.claim(db_session, None, FID, now=t0 + DAY)
        assert result["newXp"] == 25
        assert result["newStreak"] == 1

    async def test_withdraw_stake_rolled_back(self, db_session, alice, t0):
        position = await service.create_stake(db_session, None, FID, 5_000, now=t0)
        stake_id = position.id
        await service.request_unstake(db_session, None, FID, stake_id, now=t0)

        with patch.object(db_session, "commit", _failing_commit()):
            with pytest.raises(StakingError) as exc:
                await service.withdraw_stake(db_session, None, FID, stake_id, now=t0 + 22 * DAY)
        assert exc.value.kind == ErrorKind.INTERNAL

        stored = (await db_session.execute(select(StakePosition))).scalar_one()
        assert stored.status == StakeStatus.PENDING_UNSTAKE
        assert stored.principal == 5_000
        assert stored.withdrawn_at is None
        assert (await db_session.execute(select(Payout))).scalars().all() == []

        user = await reload_user(db_session, FID)
        assert user.withdrawable_balance == 0.0
