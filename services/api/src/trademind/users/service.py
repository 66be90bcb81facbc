"""User settings business logic: leaderboard display names."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import select

from trademind.db.models import UserSettings

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

DISPLAY_NAME_MAX_LENGTH = 20
_DISPLAY_NAME_RE = re.compile(r"^[a-zA-Z0-9_]{3,20}$")


class InvalidDisplayNameError(ValueError):
    """Raised when a display name does not meet the format rules."""


def normalize_display_name(display_name: str) -> str | None:
    """
    Trim and validate a display name.

    Returns None for an empty name (meaning "clear it").

    Raises:
        InvalidDisplayNameError: If the name is not 3-20 letters, digits or underscores.
    """
    if display_name == "":
        return None
    sanitized = display_name.strip()[:DISPLAY_NAME_MAX_LENGTH]
    if not _DISPLAY_NAME_RE.match(sanitized):
        msg = "Display name must be 3-20 characters, alphanumeric and underscores only"
        raise InvalidDisplayNameError(msg)
    return sanitized


async def get_user_settings(db: AsyncSession, user_id: str) -> UserSettings | None:
    """Get user settings if the user has saved any."""
    result = await db.execute(select(UserSettings).where(UserSettings.user_id == user_id))
    return result.scalar_one_or_none()


async def get_display_name(db: AsyncSession, user_id: str) -> str | None:
    """Get the user's display name, or None if unset."""
    settings = await get_user_settings(db, user_id)
    return settings.display_name if settings is not None else None


async def set_display_name(db: AsyncSession, user_id: str, display_name: str) -> str | None:
    """
    Set or clear the user's display name.

    Names are not unique; two traders may share one.

    Returns:
        The stored name, or None when cleared.

    Raises:
        InvalidDisplayNameError: If the name fails validation.
    """
    sanitized = normalize_display_name(display_name)
    now = datetime.now(timezone.utc)

    settings = await get_user_settings(db, user_id)
    if settings is None:
        if sanitized is None:
            return None
        db.add(UserSettings(user_id=user_id, display_name=sanitized, updated_at=now))
    else:
        settings.display_name = sanitized
        settings.updated_at = now

    await db.commit()
    logger.info("display_name_updated", user_id=user_id, cleared=sanitized is None)
    return sanitized
