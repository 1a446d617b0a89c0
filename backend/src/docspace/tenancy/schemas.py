"""Pydantic schemas for tenant endpoints"""

from uuid import UUID

from pydantic import BaseModel


class TenantSummary(BaseModel):
    tenant_id: UUID
    name: str
    slug: str
