"""ORM models for the staking schema.

These models map one-to-one to the tables created by the Alembic revisions
under alembic/versions. Changing a column means a new revision.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from boop.db.base import Amount, Base, BigIntId
from boop.perks.tiers import BoostKind
from boop.staking.status import StakeStatus


def _enum_values(enum_cls: type) -> list[str]:
    return [member.value for member in enum_cls]


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(Base):
    """A staker. Gamification state lives on the row for O(1) reads."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    fid: Mapped[int] = mapped_column(BigIntId, unique=True, nullable=False)
    username: Mapped[str] = mapped_column(String(64), nullable=False)
    xp: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    daily_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    withdrawable_balance: Mapped[float] = mapped_column(Amount, nullable=False, default=0.0, server_default="0")
    last_claim_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    stakes: Mapped[list[StakePosition]] = relationship("StakePosition", back_populates="user")


# ---------------------------------------------------------------------------
# Staking
# ---------------------------------------------------------------------------


class StakePosition(Base):
    """One discrete deposit tracked through its own lifecycle."""

    __tablename__ = "stake_positions"
    __table_args__ = (Index("idx_stake_positions_user_status", "user_id", "status"),)

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigIntId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    principal: Mapped[float] = mapped_column(Amount, nullable=False)
    status: Mapped[StakeStatus] = mapped_column(
        Enum(StakeStatus, name="stake_status", native_enum=False, length=20, values_callable=_enum_values),
        nullable=False,
        default=StakeStatus.ACTIVE,
    )
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    last_accrual_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    unlock_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    unclaimed_reward: Mapped[float] = mapped_column(Amount, nullable=False, default=0.0, server_default="0")
    withdrawn_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    user: Mapped[User] = relationship("User", back_populates="stakes")


# ---------------------------------------------------------------------------
# Perks
# ---------------------------------------------------------------------------


class Boost(Base):
    """Time-limited APR boost. In effect while starts_at <= now <= ends_at."""

    __tablename__ = "boosts"
    __table_args__ = (Index("idx_boosts_user_window", "user_id", "ends_at"),)

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigIntId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    kind: Mapped[BoostKind] = mapped_column(
        Enum(BoostKind, name="boost_kind", native_enum=False, length=16, values_callable=_enum_values),
        nullable=False,
    )
    starts_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    ends_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class NftHolding(Base):
    """Permanent NFT ownership granting a flat APR bonus."""

    __tablename__ = "nft_holdings"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigIntId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    tier: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    granted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


# ---------------------------------------------------------------------------
# Gamification
# ---------------------------------------------------------------------------


class XPLedger(Base):
    """Immutable XP transaction log with idempotency key."""

    __tablename__ = "xp_ledger"
    __table_args__ = (Index("idx_xp_ledger_user_time", "user_id", "created_at"),)

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigIntId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    source: Mapped[str] = mapped_column(String(32), nullable=False)
    description: Mapped[str | None] = mapped_column(String(256), nullable=True)
    idempotency_key: Mapped[str] = mapped_column(String(256), unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class Mission(Base):
    """A catalog entry shown to players. Read-only through the API."""

    __tablename__ = "missions"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str | None] = mapped_column(String(512), nullable=True)
    reward_xp: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    is_daily: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


# ---------------------------------------------------------------------------
# Settlement hand-off
# ---------------------------------------------------------------------------


class Payout(Base):
    """Funds released to the external settlement collaborator."""

    __tablename__ = "payouts"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigIntId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    stake_id: Mapped[int | None] = mapped_column(BigIntId, ForeignKey("stake_positions.id"), nullable=True)
    kind: Mapped[str] = mapped_column(String(16), nullable=False)
    gross: Mapped[float] = mapped_column(Amount, nullable=False)
    fee: Mapped[float] = mapped_column(Amount, nullable=False)
    net: Mapped[float] = mapped_column(Amount, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending", server_default="pending")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
