"""Authentication endpoints: signup, signin and current user"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.user import User
from ..models.tenant import Tenant, Membership
from ..tenancy.slug import slugify
from .schemas import SignupRequest, SigninRequest, AuthResponse, MeResponse, UserResponse, TenantContextResponse
from .password import hash_password, needs_rehash, verify_password, validate_password_strength
from .jwt import create_access_token
from .dependencies import AuthContext, get_auth_context

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _user_response(user: User) -> UserResponse:
    return UserResponse(**user.to_dict())


@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def signup(request: SignupRequest, db: Annotated[Session, Depends(get_db)]):
    """Create an account and optionally join or create a tenant.

    ``tenant_slug`` joins an existing tenant as member; ``tenant_name``
    creates a new tenant with the caller as owner. Without either the
    user starts with no tenant.

    Raises:
        HTTPException 400: Password too short
        HTTPException 404: Unknown tenant_slug
        HTTPException 409: Email or tenant slug already taken
    """
    ok, message = validate_password_strength(request.password)
    if not ok:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)

    email = request.email.lower()
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")

    tenant: Optional[Tenant] = None
    role = "member"
    if request.tenant_slug:
        tenant = db.query(Tenant).filter(Tenant.slug == request.tenant_slug).first()
        if not tenant:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tenant not found")
    elif request.tenant_name:
        slug = slugify(request.tenant_name)
        if db.query(Tenant).filter(Tenant.slug == slug).first():
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Tenant slug already exists")
        tenant = Tenant(name=request.tenant_name.strip(), slug=slug)
        db.add(tenant)
        role = "owner"

    user = User(
        email=email,
        password_hash=hash_password(request.password),
        full_name=request.full_name.strip(),
    )
    db.add(user)
    db.flush()

    if tenant is not None:
        db.add(Membership(tenant_id=tenant.tenant_id, user_id=user.user_id, role=role))

    db.commit()
    db.refresh(user)

    tenant_id = tenant.tenant_id if tenant else None
    logger.info("User signed up", extra={"user_id": user.user_id, "tenant_id": tenant_id})

    return AuthResponse(
        user=_user_response(user),
        token=create_access_token(user.user_id, user.email, tenant_id),
        tenant_id=tenant_id,
    )


@router.post("/signin", response_model=AuthResponse)
async def signin(request: SigninRequest, db: Annotated[Session, Depends(get_db)]):
    """Authenticate and return a token scoped to the user's first tenant.

    Unknown email and wrong password produce the same 401 message.
    """
    user = db.query(User).filter(User.email == request.email.lower()).first()
    if not user or not verify_password(request.password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")
    if needs_rehash(user.password_hash):
        user.password_hash = hash_password(request.password)
        db.commit()
        logger.info("Upgraded password hash parameters", extra={"user_id": str(user.user_id)})

    membership = (
        db.query(Membership)
        .filter(Membership.user_id == user.user_id)
        .order_by(Membership.created_at)
        .first()
    )
    tenant_id = membership.tenant_id if membership else None

    return AuthResponse(
        user=_user_response(user),
        token=create_access_token(user.user_id, user.email, tenant_id),
        tenant_id=tenant_id,
    )


@router.get("/me", response_model=MeResponse)
async def me(
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    db: Annotated[Session, Depends(get_db)],
):
    user = db.query(User).filter(User.user_id == ctx.user_id).first()

    tenant = None
    if ctx.tenant_id:
        membership = (
            db.query(Membership)
            .filter(Membership.user_id == ctx.user_id, Membership.tenant_id == ctx.tenant_id)
            .first()
        )
        if membership:
            tenant = TenantContextResponse(
                id=membership.tenant.tenant_id,
                name=membership.tenant.name,
                slug=membership.tenant.slug,
                role=membership.role,
            )

    return MeResponse(user=_user_response(user), is_admin=ctx.is_admin, tenant=tenant)
