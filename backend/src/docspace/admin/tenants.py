"""Admin tenant management"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..auth.dependencies import AuthContext, require_admin
from ..database import get_db
from ..models import Tenant, Membership
from ..tenancy.slug import slugify
from .schemas import TenantWrite

router = APIRouter(prefix="/tenants")


def _get_tenant(db: Session, tenant_id: UUID) -> Tenant:
    tenant = db.query(Tenant).filter(Tenant.tenant_id == tenant_id).first()
    if not tenant:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tenant not found")
    return tenant


def _ensure_slug_free(db: Session, slug: str, exclude_id: UUID = None) -> None:
    query = db.query(Tenant.tenant_id).filter(Tenant.slug == slug)
    if exclude_id is not None:
        query = query.filter(Tenant.tenant_id != exclude_id)
    if query.first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Tenant slug already exists")


@router.get("")
async def list_tenants(
    ctx: Annotated[AuthContext, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
):
    rows = (
        db.query(Tenant, func.count(Membership.membership_id))
        .outerjoin(Membership, Membership.tenant_id == Tenant.tenant_id)
        .group_by(Tenant.tenant_id)
        .order_by(Tenant.name)
        .all()
    )
    return {"tenants": [{**t.to_dict(), "member_count": count} for t, count in rows]}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_tenant(
    request: TenantWrite,
    ctx: Annotated[AuthContext, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
):
    slug = slugify(request.name)
    _ensure_slug_free(db, slug)

    tenant = Tenant(name=request.name.strip(), slug=slug)
    db.add(tenant)
    db.commit()
    db.refresh(tenant)
    return {**tenant.to_dict(), "member_count": 0}


@router.put("/{tenant_id}")
async def update_tenant(
    tenant_id: UUID,
    request: TenantWrite,
    ctx: Annotated[AuthContext, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
):
    tenant = _get_tenant(db, tenant_id)
    slug = slugify(request.name)
    _ensure_slug_free(db, slug, exclude_id=tenant_id)

    tenant.name = request.name.strip()
    tenant.slug = slug
    db.commit()
    db.refresh(tenant)
    return tenant.to_dict()


@router.delete("/{tenant_id}")
async def delete_tenant(
    tenant_id: UUID,
    ctx: Annotated[AuthContext, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
):
    tenant = _get_tenant(db, tenant_id)
    db.delete(tenant)
    db.commit()
    return {"message": "Tenant deleted"}
