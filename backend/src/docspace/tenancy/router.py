"""Public tenant directory used by the signup screen"""

from typing import Annotated, List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.tenant import Tenant
from .schemas import TenantSummary

router = APIRouter(prefix="/tenants", tags=["Tenants"])


@router.get("", response_model=List[TenantSummary])
async def list_tenants(db: Annotated[Session, Depends(get_db)]):
    """List all tenants by name. No authentication required."""
    tenants = db.query(Tenant).order_by(Tenant.name).all()
    return [TenantSummary(tenant_id=t.tenant_id, name=t.name, slug=t.slug) for t in tenants]
