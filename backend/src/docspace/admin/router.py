"""Aggregate admin router mounted at /admin"""

from fastapi import APIRouter

from . import users, tenants, memberships, prompts, blobs

router = APIRouter(prefix="/admin", tags=["Admin"])
router.include_router(users.router)
router.include_router(tenants.router)
router.include_router(memberships.router)
router.include_router(prompts.router)
router.include_router(blobs.router)
