"""User settings router: /api/v1/users/me/* endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from trademind.auth.dependencies import get_current_user_id
from trademind.database import get_session
from trademind.users.schemas import (
    DisplayNameResponse,
    DisplayNameUpdateRequest,
    DisplayNameUpdateResponse,
)
from trademind.users.service import InvalidDisplayNameError, get_display_name, set_display_name

router = APIRouter(prefix="/api/v1/users", tags=["Users"])


@router.get("/me/display-name", response_model=DisplayNameResponse)
async def read_display_name(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> DisplayNameResponse:
    """Get the current user's leaderboard display name."""
    return DisplayNameResponse(display_name=await get_display_name(db, user_id))


@router.put("/me/display-name", response_model=DisplayNameUpdateResponse)
async def update_display_name(
    body: DisplayNameUpdateRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> DisplayNameUpdateResponse:
    """Set the leaderboard display name. An empty string clears it."""
    try:
        stored = await set_display_name(db, user_id, body.display_name)
    except InvalidDisplayNameError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return DisplayNameUpdateResponse(display_name=stored)
