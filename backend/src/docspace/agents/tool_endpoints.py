"""HTTP entry points for the builtin tools.

The agent executor calls the same handlers in-process; these endpoints let
the frontend and scripts drive the tools directly.
"""

from typing import Annotated, Any, Dict
from uuid import UUID

import httpx
from fastapi import APIRouter, Body, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..auth.dependencies import AuthContext, get_auth_context, authorize_access
from ..database import get_db
from ..dependencies import get_blob_store, get_http_client
from ..domain.storage.ports import BlobStorePort
from ..models import AgentSession
from .access import require_tenant
from .tools.context import ToolContext, ToolError
from .tools.files import run_file_action
from .tools.plan import update_plan
from .tools.weather import get_weather

router = APIRouter(prefix="/tools", tags=["Agent Tools"])


def _run(handler, ctx: ToolContext, args: Dict[str, Any]) -> Dict[str, Any]:
    try:
        return {"success": True, "result": handler(ctx, args)}
    except ToolError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/plan")
async def plan_tool(
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    db: Annotated[Session, Depends(get_db)],
    blob_store: Annotated[BlobStorePort, Depends(get_blob_store)],
    args: Annotated[Dict[str, Any], Body()],
):
    raw_session_id = args.get("session_id")
    if not raw_session_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="session_id is required")
    try:
        session_id = UUID(str(raw_session_id))
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="session_id must be a UUID")

    session = db.query(AgentSession).filter(AgentSession.session_id == session_id).first()
    if session is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")
    if not authorize_access(ctx, session.tenant_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")

    tool_ctx = ToolContext(
        db=db,
        tenant_id=session.tenant_id,
        user_id=ctx.user_id,
        blob_store=blob_store,
        session_id=session.session_id,
    )
    return _run(update_plan, tool_ctx, args)


@router.post("/files")
async def files_tool(
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    db: Annotated[Session, Depends(get_db)],
    blob_store: Annotated[BlobStorePort, Depends(get_blob_store)],
    args: Annotated[Dict[str, Any], Body()],
):
    tenant_id = require_tenant(ctx)
    tool_ctx = ToolContext(db=db, tenant_id=tenant_id, user_id=ctx.user_id, blob_store=blob_store)
    return _run(run_file_action, tool_ctx, args)


@router.post("/weather")
def weather_tool(
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    db: Annotated[Session, Depends(get_db)],
    blob_store: Annotated[BlobStorePort, Depends(get_blob_store)],
    http_client: Annotated[httpx.Client, Depends(get_http_client)],
    args: Annotated[Dict[str, Any], Body()],
):
    tool_ctx = ToolContext(
        db=db,
        tenant_id=ctx.tenant_id,
        user_id=ctx.user_id,
        blob_store=blob_store,
        http_client=http_client,
    )
    return _run(get_weather, tool_ctx, args)
