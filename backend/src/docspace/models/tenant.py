"""Tenant and Membership models - root entities for multi-tenant isolation"""

import re

from sqlalchemy import Column, Text, ForeignKey, DateTime, Uuid, CheckConstraint, UniqueConstraint
from sqlalchemy.orm import relationship, validates

from .base import Base, utcnow, new_uuid, isoformat


MEMBERSHIP_ROLES = ("owner", "member")


class Tenant(Base):
    """
    Tenant model - Root entity for the multi-tenant system.

    Each tenant partitions files, blobs, agents and sessions. Users join
    tenants through memberships.
    """
    __tablename__ = "tenants"

    tenant_id = Column(Uuid, primary_key=True, default=new_uuid)
    name = Column(Text, nullable=False)
    slug = Column(Text, nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    memberships = relationship("Membership", back_populates="tenant", cascade="all, delete-orphan")

    @validates('slug')
    def validate_slug(self, key, value):
        """
        Validate slug format: lowercase alphanumeric with hyphens only.
        """
        if not value:
            raise ValueError("Slug cannot be empty")

        if not re.match(r'^[a-z0-9-]+$', value):
            raise ValueError(
                "Slug must contain only lowercase letters, numbers, and hyphens"
            )

        if len(value) > 100:
            raise ValueError("Slug must not exceed 100 characters")

        return value

    def to_dict(self):
        return {
            "tenant_id": str(self.tenant_id),
            "name": self.name,
            "slug": self.slug,
            "created_at": isoformat(self.created_at),
        }

    def __repr__(self):
        return f"<Tenant(tenant_id={self.tenant_id}, slug='{self.slug}')>"


class Membership(Base):
    """A user's role (owner/member) within a tenant."""
    __tablename__ = "memberships"

    membership_id = Column(Uuid, primary_key=True, default=new_uuid)
    tenant_id = Column(Uuid, ForeignKey("tenants.tenant_id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Uuid, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    role = Column(Text, nullable=False, default="member")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    tenant = relationship("Tenant", back_populates="memberships")
    user = relationship("User", back_populates="memberships")

    __table_args__ = (
        CheckConstraint("role IN ('owner', 'member')", name="ck_memberships_role"),
        UniqueConstraint("tenant_id", "user_id", name="uq_memberships_tenant_user"),
    )

    def to_dict(self):
        return {
            "membership_id": str(self.membership_id),
            "tenant_id": str(self.tenant_id),
            "user_id": str(self.user_id),
            "role": self.role,
            "created_at": isoformat(self.created_at),
        }
