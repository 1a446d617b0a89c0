"""Pydantic schemas for admin endpoints"""

from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field


class AdminUserCreate(BaseModel):
    email: EmailStr
    password: str
    full_name: str = Field(..., min_length=1, max_length=200)
    phone: Optional[str] = None
    is_admin: bool = False


class AdminUserUpdate(BaseModel):
    """Partial update; omitted fields are left unchanged."""
    full_name: Optional[str] = Field(None, min_length=1, max_length=200)
    phone: Optional[str] = None
    is_admin: Optional[bool] = None


class TenantWrite(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)


class MembershipCreate(BaseModel):
    tenant_id: UUID
    user_id: UUID
    role: str = "member"


class MembershipUpdate(BaseModel):
    role: str


class PromptCreate(BaseModel):
    function_name: str = Field(..., min_length=1, max_length=100)
    display_name: str = Field(..., min_length=1)
    description: Optional[str] = None
    model_provider: str
    model_name: str = Field(..., min_length=1)
    system_prompt: Optional[str] = None
    user_prompt_template: str = Field(..., min_length=1)
    temperature: float = Field(0.7, ge=0, le=2)
    max_tokens: int = Field(4096, ge=1)
    is_active: bool = True


class PromptUpdate(BaseModel):
    display_name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    model_provider: Optional[str] = None
    model_name: Optional[str] = Field(None, min_length=1)
    system_prompt: Optional[str] = None
    user_prompt_template: Optional[str] = Field(None, min_length=1)
    temperature: Optional[float] = Field(None, ge=0, le=2)
    max_tokens: Optional[int] = Field(None, ge=1)
    is_active: Optional[bool] = None


class BlobCreate(BaseModel):
    """String content is stored as-is; anything else as indented JSON."""
    key: str = Field(..., min_length=1)
    content: Any


class BlobUpdate(BaseModel):
    content: Any
