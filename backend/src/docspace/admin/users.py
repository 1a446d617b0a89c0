"""Admin user management"""

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..auth.dependencies import AuthContext, require_admin
from ..auth.password import hash_password, validate_password_strength
from ..database import get_db
from ..models import User, Admin
from .schemas import AdminUserCreate, AdminUserUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users")


def _user_row(user: User) -> dict:
    return {**user.to_dict(), "is_admin": user.is_admin}


def _get_user(db: Session, user_id: UUID) -> User:
    user = db.query(User).filter(User.user_id == user_id).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


@router.get("")
async def list_users(
    ctx: Annotated[AuthContext, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
):
    users = db.query(User).order_by(User.created_at.desc()).all()
    return {"users": [_user_row(u) for u in users]}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_user(
    request: AdminUserCreate,
    ctx: Annotated[AuthContext, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
):
    ok, message = validate_password_strength(request.password)
    if not ok:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)

    email = request.email.lower()
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")

    user = User(
        email=email,
        password_hash=hash_password(request.password),
        full_name=request.full_name.strip(),
        phone=request.phone,
    )
    db.add(user)
    db.flush()
    if request.is_admin:
        db.add(Admin(user_id=user.user_id, granted_by=ctx.user_id))
    db.commit()
    db.refresh(user)

    logger.info("Admin created user", extra={"user_id": str(user.user_id)})
    return _user_row(user)


@router.put("/{user_id}")
async def update_user(
    user_id: UUID,
    request: AdminUserUpdate,
    ctx: Annotated[AuthContext, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
):
    user = _get_user(db, user_id)

    if request.full_name is not None:
        user.full_name = request.full_name.strip()
    if request.phone is not None:
        user.phone = request.phone or None

    if request.is_admin is True and user.admin_grant is None:
        user.admin_grant = Admin(user_id=user.user_id, granted_by=ctx.user_id)
    elif request.is_admin is False and user.admin_grant is not None:
        user.admin_grant = None

    db.commit()
    db.refresh(user)
    return _user_row(user)


@router.delete("/{user_id}")
async def delete_user(
    user_id: UUID,
    ctx: Annotated[AuthContext, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
):
    if user_id == ctx.user_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot delete yourself")

    user = _get_user(db, user_id)
    db.delete(user)
    db.commit()

    logger.info("Admin deleted user", extra={"user_id": str(user_id)})
    return {"message": "User deleted"}
