"""Helpers shared by service tests."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from boop.db.models import User
from boop.users.service import get_or_create_user, get_user_by_fid


async def make_user(db: AsyncSession, fid: int, username: str | None = None) -> User:
    user, _ = await get_or_create_user(db, fid, username)
    await db.commit()
    return user


async def reload_user(db: AsyncSession, fid: int) -> User:
    """Re-read a user after a rolled-back operation expired the session."""
    user = await get_user_by_fid(db, fid)
    assert user is not None
    return user
