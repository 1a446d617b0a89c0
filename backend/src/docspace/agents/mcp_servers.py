"""MCP server registration for mcp_server tools.

Credentials are encrypted with AES-256-GCM, bound to the tool id, before
they are stored, and no endpoint ever returns them.
"""

import logging
from typing import Annotated, Any, Dict, Optional
from uuid import UUID

import httpx
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..auth.dependencies import AuthContext, get_auth_context
from ..database import get_db
from ..dependencies import get_http_client
from ..infrastructure.encryption.credential_encryption import encrypt_credentials
from ..models import AgentTool, MCPServer, MCP_AUTH_TYPES
from ..models.base import utcnow
from .access import get_visible, require_tenant, visible
from .schemas import MCPServerCreate, MCPServerUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/mcp-servers", tags=["MCP Servers"])

# Credential fields each auth type must carry
REQUIRED_CREDENTIALS = {
    "api_key": ("api_key",),
    "bearer": ("bearer_token",),
    "basic": ("username", "password"),
}

_CREDENTIAL_LABELS = {
    "api_key": "API key",
    "bearer_token": "Bearer token",
    "username": "Username",
    "password": "Password",
}


def _bad_request(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


def validate_server_url(url: str) -> str:
    value = url.strip()
    try:
        parsed = httpx.URL(value)
    except httpx.InvalidURL:
        raise _bad_request("Invalid server URL format")
    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise _bad_request("Invalid server URL format")
    return value


def validate_credentials(auth_type: str, credentials: Optional[Dict[str, Any]]) -> None:
    """
    Raises:
        HTTPException 400: Unknown auth type, or a credential field is missing
    """
    if auth_type not in MCP_AUTH_TYPES:
        raise _bad_request(f"Invalid auth type. Must be one of: {', '.join(MCP_AUTH_TYPES)}")
    if auth_type == "none":
        return
    if not credentials:
        raise _bad_request("Auth credentials required for non-none auth type")
    for field in REQUIRED_CREDENTIALS[auth_type]:
        value = credentials.get(field)
        if not isinstance(value, str) or not value:
            raise _bad_request(f"{_CREDENTIAL_LABELS[field]} is required for {auth_type} auth type")


def _encrypt(tool_id: UUID, auth_type: str, credentials: Optional[Dict[str, Any]]) -> Optional[str]:
    if auth_type == "none" or not credentials:
        return None
    return encrypt_credentials(credentials, context=f"mcp_server:{tool_id}")


def _get_server(db: Session, ctx: AuthContext, server_id: UUID) -> MCPServer:
    return get_visible(db, MCPServer, MCPServer.mcp_server_id, server_id, ctx, "MCP server not found")


@router.get("")
async def list_servers(
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    db: Annotated[Session, Depends(get_db)],
    tool_id: Optional[UUID] = None,
):
    query = visible(db.query(MCPServer), MCPServer, ctx)
    if tool_id is not None:
        query = query.filter(MCPServer.tool_id == tool_id)
    servers = query.order_by(MCPServer.server_name).all()
    return {"servers": [s.to_dict() for s in servers]}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_server(
    request: MCPServerCreate,
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    db: Annotated[Session, Depends(get_db)],
):
    tenant_id = require_tenant(ctx, "Tenant context required to create MCP server")
    tool = get_visible(db, AgentTool, AgentTool.tool_id, request.tool_id, ctx, "Tool not found")
    if tool.tool_type != "mcp_server":
        raise _bad_request("Tool must be of type mcp_server")
    if db.query(MCPServer.mcp_server_id).filter(MCPServer.tool_id == tool.tool_id).first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="MCP server already exists for this tool")

    server_url = validate_server_url(request.server_url)
    validate_credentials(request.auth_type, request.auth_credentials)

    server = MCPServer(
        tool_id=tool.tool_id,
        tenant_id=tenant_id,
        server_name=request.server_name.strip(),
        server_url=server_url,
        auth_type=request.auth_type,
        auth_config=_encrypt(tool.tool_id, request.auth_type, request.auth_credentials),
    )
    db.add(server)
    db.commit()
    db.refresh(server)

    logger.info(f"Registered MCP server {server.server_name}", extra={"tenant_id": str(tenant_id)})
    return server.to_dict()


@router.get("/{server_id}")
async def get_server(
    server_id: UUID,
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    db: Annotated[Session, Depends(get_db)],
):
    return _get_server(db, ctx, server_id).to_dict()


@router.put("/{server_id}")
async def update_server(
    server_id: UUID,
    request: MCPServerUpdate,
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    db: Annotated[Session, Depends(get_db)],
):
    """Update connection details. Credentials are replaced only when sent."""
    server = _get_server(db, ctx, server_id)

    if request.server_name is not None:
        server.server_name = request.server_name.strip()
    if request.server_url is not None:
        server.server_url = validate_server_url(request.server_url)

    auth_type = request.auth_type or server.auth_type
    if request.auth_type is not None or request.auth_credentials is not None:
        if auth_type == "none":
            validate_credentials(auth_type, None)
            server.auth_config = None
        elif request.auth_credentials is not None:
            validate_credentials(auth_type, request.auth_credentials)
            server.auth_config = _encrypt(server.tool_id, auth_type, request.auth_credentials)
        elif server.auth_config is None or auth_type != server.auth_type:
            raise _bad_request("Auth credentials required for non-none auth type")
        server.auth_type = auth_type

    db.commit()
    db.refresh(server)
    return server.to_dict()


@router.delete("/{server_id}")
async def delete_server(
    server_id: UUID,
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    db: Annotated[Session, Depends(get_db)],
):
    server = _get_server(db, ctx, server_id)
    db.delete(server)
    db.commit()
    return {"deleted": True, "mcp_server_id": str(server_id)}


@router.post("/{server_id}/health")
def check_server_health(
    server_id: UUID,
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    db: Annotated[Session, Depends(get_db)],
    http_client: Annotated[httpx.Client, Depends(get_http_client)],
):
    """Probe ``GET {server_url}/health`` and record the outcome."""
    server = _get_server(db, ctx, server_id)

    try:
        response = http_client.get(f"{server.server_url.rstrip('/')}/health")
        health_status = "healthy" if response.is_success else "unhealthy"
    except httpx.HTTPError as e:
        logger.warning(f"MCP server health probe failed: {e}", extra={"tenant_id": str(server.tenant_id)})
        health_status = "unhealthy"

    server.health_status = health_status
    server.last_health_check = utcnow()
    db.commit()
    db.refresh(server)
    return {"server": server.to_dict(), "health_status": health_status}
