"""Aggregate agent routers"""

from fastapi import APIRouter

from . import definitions, sessions, memories, tool_registry, mcp_servers, tool_endpoints

router = APIRouter()
router.include_router(definitions.router)
router.include_router(sessions.router)
router.include_router(sessions.chat_router)
router.include_router(memories.router)
router.include_router(tool_registry.router)
router.include_router(mcp_servers.router)
router.include_router(tool_endpoints.router)
