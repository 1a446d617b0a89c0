"""FastAPI dependencies for authentication and authorization.

Usage:
    @router.get("/protected")
    def protected(ctx: AuthContext = Depends(get_auth_context)):
        ...

    @router.get("/admin-only")
    def admin_only(ctx: AuthContext = Depends(require_admin)):
        ...
"""

from dataclasses import dataclass
from typing import Optional
from uuid import UUID

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.user import User, Admin
from .jwt import decode_token

# auto_error is off so a missing header yields 401 rather than 403
security = HTTPBearer(auto_error=False)


@dataclass
class AuthContext:
    """Identity of the caller for the current request."""
    user_id: UUID
    email: str
    tenant_id: Optional[UUID]
    is_admin: bool


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_auth_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> AuthContext:
    """Validate the bearer token and build the caller's AuthContext.

    Admin status is read from the admins table on every request so a
    revoked grant takes effect immediately.

    Raises:
        HTTPException 401: Missing, invalid or expired token, or unknown user
    """
    if credentials is None or not credentials.credentials:
        raise _unauthorized("Not authenticated")

    try:
        payload = decode_token(credentials.credentials)
        user_id = UUID(payload["sub"])
        tenant_claim = payload.get("tenant_id")
        tenant_id = UUID(tenant_claim) if tenant_claim else None
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token has expired")
    except jwt.InvalidTokenError as e:
        raise _unauthorized(str(e))
    except (KeyError, ValueError, TypeError):
        raise _unauthorized("Invalid token claims")

    user = db.query(User).filter(User.user_id == user_id).first()
    if not user:
        raise _unauthorized("User not found")

    is_admin = db.query(Admin).filter(Admin.user_id == user_id).first() is not None

    return AuthContext(
        user_id=user.user_id,
        email=user.email,
        tenant_id=tenant_id,
        is_admin=is_admin,
    )


def require_admin(ctx: AuthContext = Depends(get_auth_context)) -> AuthContext:
    if not ctx.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return ctx


def require_tenant_context(ctx: AuthContext = Depends(get_auth_context)) -> AuthContext:
    """Reject callers without a tenant unless they are platform admins."""
    if ctx.tenant_id is None and not ctx.is_admin:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Tenant context required")
    return ctx


def authorize_access(ctx: AuthContext, resource_tenant_id: Optional[UUID]) -> bool:
    """True iff the caller is an admin or belongs to the resource's tenant."""
    if ctx.is_admin:
        return True
    return ctx.tenant_id is not None and ctx.tenant_id == resource_tenant_id
