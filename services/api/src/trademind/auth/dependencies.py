"""FastAPI authentication dependencies."""

from __future__ import annotations

import secrets

import jwt
import structlog
from fastapi import HTTPException, Request

from trademind.auth.jwt import user_id_from_claims, verify_identity_token
from trademind.config import get_settings

logger = structlog.get_logger()


def _extract_token(request: Request) -> str | None:
    """Session token from the Authorization header, else the identity-provider cookie."""
    auth_header = request.headers.get("Authorization", "")
    scheme, _, credentials = auth_header.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    cookie = request.cookies.get(get_settings().identity_cookie_name)
    return cookie or None


def resolve_user_id(request: Request) -> str | None:
    """Resolve the authenticated user id for a request, or None.

    The only place in the service that looks at session tokens.
    """
    token = _extract_token(request)
    if token is None:
        return None
    try:
        payload = verify_identity_token(token)
    except jwt.InvalidTokenError as e:
        logger.info("identity_token_rejected", reason=str(e))
        return None
    return user_id_from_claims(payload)


async def get_current_user_id(request: Request) -> str:
    """Return the authenticated user id. Raises 401 when absent or invalid."""
    user_id = resolve_user_id(request)
    if user_id is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user_id


async def verify_cron_secret(request: Request) -> None:
    """
    Guard scheduler-only endpoints with ``Authorization: Bearer <cron_secret>``.

    When no secret is configured the endpoint is open.
    """
    expected = get_settings().cron_secret
    if not expected:
        return
    provided = request.headers.get("Authorization", "")
    if not secrets.compare_digest(provided.encode(), f"Bearer {expected}".encode()):
        raise HTTPException(status_code=401, detail="Unauthorized")
