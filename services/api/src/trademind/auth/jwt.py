"""
Identity-provider JWT verification.

Sessions are issued by the external identity provider (Privy); this service
never mints user tokens, it only verifies them and reads the user id.
"""

from __future__ import annotations

from typing import Any

import jwt

from trademind.config import get_settings


def verify_identity_token(token: str) -> dict[str, Any]:
    """
    Verify and decode an identity-provider session token.

    Args:
        token: The encoded JWT string.

    Returns:
        Decoded payload dictionary.

    Raises:
        jwt.InvalidTokenError: If the token is invalid, expired, or no key is configured.
    """
    settings = get_settings()
    if not settings.identity_verification_key:
        msg = "Identity verification key is not configured"
        raise jwt.InvalidTokenError(msg)

    options: dict[str, Any] = {"require": ["exp"]}
    if not settings.identity_audience:
        options["verify_aud"] = False

    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            settings.identity_verification_key,
            algorithms=[settings.identity_algorithm],
            issuer=settings.identity_issuer or None,
            audience=settings.identity_audience or None,
            options=options,
        )
    except jwt.ExpiredSignatureError:
        msg = "Token has expired"
        raise jwt.InvalidTokenError(msg) from None
    return payload


def user_id_from_claims(payload: dict[str, Any]) -> str | None:
    """Pull the user id out of decoded claims (``sub``, falling back to ``userId``)."""
    user_id = payload.get("sub") or payload.get("userId")
    if not isinstance(user_id, str) or not user_id.strip():
        return None
    return user_id.strip()
