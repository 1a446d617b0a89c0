"""User and Admin SQLAlchemy models"""

import re

from sqlalchemy import Column, Text, ForeignKey, DateTime, Uuid
from sqlalchemy.orm import relationship, validates

from .base import Base, utcnow, new_uuid, isoformat


class User(Base):
    """User model representing authenticated users.

    A user may belong to several tenants through memberships. Platform
    administrators are users with a row in the admins table. Passwords are
    hashed using Argon2id.
    """
    __tablename__ = "users"

    user_id = Column(Uuid, primary_key=True, default=new_uuid)
    email = Column(Text, nullable=False, unique=True)
    password_hash = Column(Text, nullable=False)
    full_name = Column(Text, nullable=False)
    phone = Column(Text, nullable=True)
    phone_verified_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    memberships = relationship(
        "Membership",
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="Membership.created_at",
    )
    admin_grant = relationship(
        "Admin",
        foreign_keys="Admin.user_id",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
    )

    @validates('email')
    def validate_email(self, key, value):
        """Basic email format validation"""
        if not re.match(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$', value):
            raise ValueError("Invalid email format")
        return value.lower()

    @property
    def is_admin(self) -> bool:
        return self.admin_grant is not None

    def to_dict(self):
        """Convert user to dictionary representation (excludes password_hash)"""
        return {
            "id": str(self.user_id),
            "email": self.email,
            "full_name": self.full_name,
            "phone": self.phone,
            "created_at": isoformat(self.created_at),
        }

    def __repr__(self):
        return f"<User(user_id={self.user_id}, email='{self.email}')>"


class Admin(Base):
    """Platform administrator grant. One row per admin user."""
    __tablename__ = "admins"

    admin_id = Column(Uuid, primary_key=True, default=new_uuid)
    user_id = Column(Uuid, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, unique=True)
    granted_by = Column(Uuid, ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True)
    granted_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    user = relationship("User", foreign_keys=[user_id], back_populates="admin_grant")
