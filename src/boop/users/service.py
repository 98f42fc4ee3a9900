"""User lookup and first-time creation keyed by fid."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from boop.db.models import User
from boop.errors import ErrorKind, StakingError
from boop.timeutils import utcnow

logger = logging.getLogger(__name__)


async def get_user_by_fid(db: AsyncSession, fid: int, *, for_update: bool = False) -> User | None:
    """Look up a user. for_update takes a row lock for the rest of the transaction."""
    stmt = select(User).where(User.fid == fid)
    if for_update:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def require_user(db: AsyncSession, fid: int, *, for_update: bool = False) -> User:
    if not fid or fid <= 0:
        raise StakingError(ErrorKind.VALIDATION, "Missing fid")
    user = await get_user_by_fid(db, fid, for_update=for_update)
    if user is None:
        raise StakingError(ErrorKind.NOT_FOUND, "User not found", {"fid": fid})
    return user


async def get_or_create_user(db: AsyncSession, fid: int, username: str | None = None) -> tuple[User, bool]:
    """Get existing user or create a new one. Returns (user, created). Does not commit."""
    if not fid or fid <= 0:
        raise StakingError(ErrorKind.VALIDATION, "fid must be a positive integer")

    user = await get_user_by_fid(db, fid)
    if user is not None:
        if username and username != user.username:
            user.username = username
            user.updated_at = utcnow()
        return user, False

    now = utcnow()
    user = User(
        fid=fid,
        username=username or f"fid_{fid}",
        xp=0,
        level=0,
        daily_streak=0,
        withdrawable_balance=0.0,
        last_claim_at=None,
        created_at=now,
        updated_at=now,
    )
    db.add(user)
    await db.flush()
    logger.info("Created user %s for fid %d", user.id, fid)
    return user, True
