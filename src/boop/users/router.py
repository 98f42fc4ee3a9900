"""User bootstrap endpoint."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from boop.dependencies import get_db
from boop.staking.service import unit_of_work
from boop.users.schemas import InitUserRequest, UserResponse
from boop.users.service import get_or_create_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["Users"])


@router.post("/users/init", response_model=UserResponse)
async def init_user(body: InitUserRequest, db: AsyncSession = Depends(get_db)):
    """Create the user on first contact; later calls refresh the username."""
    async with unit_of_work(db, "init_user", body.fid):
        user, created = await get_or_create_user(db, body.fid, body.username)

    response = UserResponse.model_validate(user)
    response.created = created
    return response
