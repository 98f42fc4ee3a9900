"""Fixtures for service tests: seeded users on the in-memory database."""

from __future__ import annotations

import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from boop.db.models import User
from tests.services.helpers import make_user


@pytest_asyncio.fixture
async def alice(db_session: AsyncSession) -> User:
    return await make_user(db_session, 1001, "alice")
