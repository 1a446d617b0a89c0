"""Admin membership management"""

from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..auth.dependencies import AuthContext, require_admin
from ..database import get_db
from ..models import Membership, Tenant, User, MEMBERSHIP_ROLES
from .schemas import MembershipCreate, MembershipUpdate

router = APIRouter(prefix="/memberships")


def _validate_role(role: str) -> None:
    if role not in MEMBERSHIP_ROLES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Role must be 'owner' or 'member'")


def _membership_row(membership: Membership, email: str, full_name: str, tenant_name: str) -> dict:
    return {
        **membership.to_dict(),
        "user_email": email,
        "user_full_name": full_name,
        "tenant_name": tenant_name,
    }


def _get_membership(db: Session, membership_id: UUID) -> Membership:
    membership = db.query(Membership).filter(Membership.membership_id == membership_id).first()
    if not membership:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Membership not found")
    return membership


@router.get("")
async def list_memberships(
    ctx: Annotated[AuthContext, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
    tenant_id: Optional[UUID] = None,
    user_id: Optional[UUID] = None,
):
    query = (
        db.query(Membership, User.email, User.full_name, Tenant.name)
        .join(User, User.user_id == Membership.user_id)
        .join(Tenant, Tenant.tenant_id == Membership.tenant_id)
    )
    if tenant_id:
        query = query.filter(Membership.tenant_id == tenant_id)
    if user_id:
        query = query.filter(Membership.user_id == user_id)

    rows = query.order_by(Tenant.name, User.email).all()
    return {"memberships": [_membership_row(*row) for row in rows]}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_membership(
    request: MembershipCreate,
    ctx: Annotated[AuthContext, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
):
    _validate_role(request.role)

    tenant = db.query(Tenant).filter(Tenant.tenant_id == request.tenant_id).first()
    if not tenant:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tenant not found")
    user = db.query(User).filter(User.user_id == request.user_id).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    existing = (
        db.query(Membership)
        .filter(Membership.tenant_id == request.tenant_id, Membership.user_id == request.user_id)
        .first()
    )
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User is already a member of this tenant")

    membership = Membership(tenant_id=tenant.tenant_id, user_id=user.user_id, role=request.role)
    db.add(membership)
    db.commit()
    db.refresh(membership)
    return _membership_row(membership, user.email, user.full_name, tenant.name)


@router.put("/{membership_id}")
async def update_membership(
    membership_id: UUID,
    request: MembershipUpdate,
    ctx: Annotated[AuthContext, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
):
    _validate_role(request.role)
    membership = _get_membership(db, membership_id)
    membership.role = request.role
    db.commit()
    db.refresh(membership)
    return membership.to_dict()


@router.delete("/{membership_id}")
async def delete_membership(
    membership_id: UUID,
    ctx: Annotated[AuthContext, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
):
    membership = _get_membership(db, membership_id)
    db.delete(membership)
    db.commit()
    return {"message": "Membership deleted"}
