#!/usr/bin/env python
"""Seed script for a fresh DocSpace database.

Creates missing tables, the first platform administrator, the default
prompt configurations and, for every tenant (or the one named by
TENANT_SLUG), the builtin agent tools. Safe to run repeatedly: existing
rows are kept, builtin tool descriptions and schemas are refreshed.

Usage:
    python backend/scripts/seed.py

Environment Variables:
    DATABASE_URL: SQLAlchemy connection string
    PASSWORD_PEPPER: Password hashing pepper (required)
    ADMIN_EMAIL: Email for admin user (default: admin@example.com)
    ADMIN_PASSWORD: Password for admin user (default: AdminP@ss123)
    ADMIN_NAME: Display name for admin user (default: System Administrator)
    TENANT_SLUG: Only provision builtin tools for this tenant
"""

import os
import sys

from docspace.auth.password import hash_password, validate_password_strength
from docspace.agents.tools.builtin import provision_builtin_tools
from docspace.database import SessionLocal, init_db
from docspace.models import Admin, Prompt, Tenant, User
from docspace.prompts.defaults import DEFAULT_PROMPTS


def seed_admin(session, email: str, password: str, full_name: str) -> User:
    user = session.query(User).filter(User.email == email.lower()).first()
    if user is None:
        user = User(email=email.lower(), password_hash=hash_password(password), full_name=full_name)
        session.add(user)
        session.flush()
        print(f"Created user {user.email}")
    if user.admin_grant is None:
        session.add(Admin(user_id=user.user_id))
        print(f"Granted admin to {user.email}")
    session.commit()
    return user


def seed_prompts(session) -> int:
    created = 0
    for function_name, config in DEFAULT_PROMPTS.items():
        if session.query(Prompt.prompt_id).filter(Prompt.function_name == function_name).first():
            continue
        session.add(Prompt(**config))
        created += 1
    session.commit()
    return created


def main():
    admin_email = os.getenv("ADMIN_EMAIL", "admin@example.com")
    admin_password = os.getenv("ADMIN_PASSWORD", "AdminP@ss123")
    admin_name = os.getenv("ADMIN_NAME", "System Administrator")
    tenant_slug = os.getenv("TENANT_SLUG")

    is_valid, error_msg = validate_password_strength(admin_password)
    if not is_valid:
        print(f"ERROR: Password does not meet strength requirements: {error_msg}")
        sys.exit(1)

    init_db()
    session = SessionLocal()

    try:
        admin = seed_admin(session, admin_email, admin_password, admin_name)
        print(f"Prompts created: {seed_prompts(session)}")

        tenants = session.query(Tenant)
        if tenant_slug:
            tenants = tenants.filter(Tenant.slug == tenant_slug)
        tenants = tenants.order_by(Tenant.name).all()
        if tenant_slug and not tenants:
            print(f"ERROR: Tenant not found: {tenant_slug}")
            sys.exit(1)

        for tenant in tenants:
            tools = provision_builtin_tools(session, tenant.tenant_id, admin.user_id)
            print(f"Tenant {tenant.slug}: {len(tools)} builtin tools")

    except Exception as e:
        session.rollback()
        print(f"ERROR: Seeding failed: {e}")
        sys.exit(1)

    finally:
        session.close()

    print("SUCCESS: Database seeded")


if __name__ == "__main__":
    main()
