"""Tenant visibility rules shared by the agent routers.

Callers see rows of their own tenant; platform admins see every tenant.
A row outside the caller's view is reported as missing, never forbidden.
"""

from typing import Type, TypeVar
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.orm import Query, Session

from ..auth.dependencies import AuthContext

T = TypeVar("T")


def visible(query: Query, model, ctx: AuthContext) -> Query:
    if ctx.is_admin:
        return query
    return query.filter(model.tenant_id == ctx.tenant_id)


def get_visible(db: Session, model: Type[T], key_column, key: UUID, ctx: AuthContext, detail: str) -> T:
    """Fetch one row by key within the caller's view.

    Raises:
        HTTPException 404: No such row, or it belongs to another tenant
    """
    row = visible(db.query(model), model, ctx).filter(key_column == key).first()
    if row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)
    return row


def require_tenant(ctx: AuthContext, detail: str = "Tenant context required") -> UUID:
    """The caller's tenant id, for endpoints that create tenant-owned rows."""
    if ctx.tenant_id is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)
    return ctx.tenant_id
