"""Pydantic schemas for authentication endpoints"""

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field


class SignupRequest(BaseModel):
    """Request schema for account creation.

    Attributes:
        email: Login email (stored lower-cased)
        password: Plain text password, at least 8 characters
        full_name: Display name
        tenant_slug: Join an existing tenant as member
        tenant_name: Create a new tenant and become its owner
    """
    email: EmailStr
    password: str
    full_name: str = Field(..., min_length=1, max_length=200)
    tenant_slug: Optional[str] = None
    tenant_name: Optional[str] = None


class SigninRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class UserResponse(BaseModel):
    """User information response (excludes password_hash)."""
    id: UUID
    email: str
    full_name: str
    phone: Optional[str] = None
    created_at: Optional[str] = None


class AuthResponse(BaseModel):
    """Response for signup and signin."""
    user: UserResponse
    token: str
    tenant_id: Optional[UUID] = None


class TenantContextResponse(BaseModel):
    id: UUID
    name: str
    slug: str
    role: str


class MeResponse(BaseModel):
    user: UserResponse
    is_admin: bool
    tenant: Optional[TenantContextResponse] = None
