"""Access tokens for DocSpace sessions.

A token carries ``sub`` (user id), ``email``, ``tenant_id`` (null for users
without a membership, e.g. platform admins) plus ``iat`` and ``exp``. They
are HS256-signed with JWT_SECRET and expire after JWT_EXPIRY_MINUTES. The
auth dependency still loads the user on every request, so deleting a user
revokes their tokens.
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, Any, Optional
from uuid import UUID

import jwt

from ..config import settings

REQUIRED_CLAIMS = ["sub", "exp"]


def _signing_key() -> str:
    if not settings.JWT_SECRET:
        raise ValueError("JWT_SECRET is not configured")
    return settings.JWT_SECRET


def create_access_token(user_id: UUID, email: str, tenant_id: Optional[UUID] = None) -> str:
    """Issue a token for ``user_id``, scoped to ``tenant_id`` when given."""
    issued_at = datetime.now(timezone.utc)
    expires_at = issued_at + timedelta(minutes=settings.JWT_EXPIRY_MINUTES)
    claims = {
        "sub": str(user_id),
        "email": email,
        "tenant_id": None if tenant_id is None else str(tenant_id),
        "iat": int(issued_at.timestamp()),
        "exp": int(expires_at.timestamp()),
    }
    return jwt.encode(claims, _signing_key(), algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> Dict[str, Any]:
    """Verify signature and expiry and return the claims.

    Only the configured algorithm is accepted, so ``alg: none`` tokens fail.

    Raises:
        jwt.ExpiredSignatureError: ``exp`` is in the past
        jwt.InvalidTokenError: Bad signature, malformed token or missing claims
    """
    try:
        return jwt.decode(
            token,
            _signing_key(),
            algorithms=[settings.JWT_ALGORITHM],
            options={"require": REQUIRED_CLAIMS},
        )
    except jwt.ExpiredSignatureError:
        raise jwt.ExpiredSignatureError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise jwt.InvalidTokenError(f"Invalid token: {e}")
