"""Agent tool definitions and their assignment to agents"""

import logging
from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..auth.dependencies import AuthContext, get_auth_context
from ..database import get_db
from ..models import Agent, AgentTool, AgentToolAssignment
from .access import get_visible, require_tenant, visible
from .schemas import ToolAssign, ToolCreate, ToolUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/agent-tools", tags=["Agent Tools"])

# builtin tools are provisioned by scripts/seed.py, not through the API
USER_TOOL_TYPES = ("mcp_server", "python_script")


def _get_tool(db: Session, ctx: AuthContext, tool_id: UUID) -> AgentTool:
    return get_visible(db, AgentTool, AgentTool.tool_id, tool_id, ctx, "Tool not found")


def _ensure_name_free(db: Session, tenant_id: UUID, name: str, exclude: Optional[UUID] = None) -> None:
    query = db.query(AgentTool.tool_id).filter(AgentTool.tenant_id == tenant_id, AgentTool.name == name)
    if exclude is not None:
        query = query.filter(AgentTool.tool_id != exclude)
    if query.first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="A tool with this name already exists")


@router.get("")
async def list_tools(
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    db: Annotated[Session, Depends(get_db)],
):
    tools = visible(db.query(AgentTool), AgentTool, ctx).order_by(AgentTool.name).all()
    return {"tools": [t.to_dict() for t in tools]}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_tool(
    request: ToolCreate,
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    db: Annotated[Session, Depends(get_db)],
):
    tenant_id = require_tenant(ctx, "Tenant context required to create tool")
    if request.tool_type not in USER_TOOL_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid tool type. Must be one of: {', '.join(USER_TOOL_TYPES)}",
        )
    name = request.name.strip()
    _ensure_name_free(db, tenant_id, name)

    tool = AgentTool(
        tenant_id=tenant_id,
        user_id=ctx.user_id,
        name=name,
        description=request.description.strip(),
        tool_type=request.tool_type,
        input_schema=request.input_schema,
        is_active=request.is_active,
    )
    db.add(tool)
    db.commit()
    db.refresh(tool)

    logger.info(f"Registered {tool.tool_type} tool {tool.name}", extra={"tenant_id": str(tenant_id)})
    return tool.to_dict()


@router.get("/{tool_id}")
async def get_tool(
    tool_id: UUID,
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    db: Annotated[Session, Depends(get_db)],
):
    return _get_tool(db, ctx, tool_id).to_dict()


@router.put("/{tool_id}")
async def update_tool(
    tool_id: UUID,
    request: ToolUpdate,
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    db: Annotated[Session, Depends(get_db)],
):
    tool = _get_tool(db, ctx, tool_id)
    if request.name is not None:
        name = request.name.strip()
        _ensure_name_free(db, tool.tenant_id, name, exclude=tool.tool_id)
        tool.name = name
    if request.description is not None:
        tool.description = request.description.strip()
    if request.input_schema is not None:
        tool.input_schema = request.input_schema
    if request.is_active is not None:
        tool.is_active = request.is_active

    db.commit()
    db.refresh(tool)
    return tool.to_dict()


@router.delete("/{tool_id}")
async def delete_tool(
    tool_id: UUID,
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    db: Annotated[Session, Depends(get_db)],
):
    tool = _get_tool(db, ctx, tool_id)
    db.delete(tool)
    db.commit()
    return {"deleted": True, "tool_id": str(tool_id)}


@router.get("/{tool_id}/assignments")
async def list_assignments(
    tool_id: UUID,
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    db: Annotated[Session, Depends(get_db)],
):
    """Agents a tool is assigned to."""
    tool = _get_tool(db, ctx, tool_id)
    return {"agents": [{"agent_id": str(a.agent_id), "is_required": a.is_required} for a in tool.assignments]}


@router.post("/{tool_id}/assign/{agent_id}", status_code=status.HTTP_201_CREATED)
async def assign_tool(
    tool_id: UUID,
    agent_id: UUID,
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    db: Annotated[Session, Depends(get_db)],
    request: Optional[ToolAssign] = None,
):
    agent = get_visible(db, Agent, Agent.agent_id, agent_id, ctx, "Agent not found")
    tool = _get_tool(db, ctx, tool_id)

    existing = (
        db.query(AgentToolAssignment)
        .filter(AgentToolAssignment.agent_id == agent.agent_id, AgentToolAssignment.tool_id == tool.tool_id)
        .first()
    )
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Tool already assigned to this agent")

    assignment = AgentToolAssignment(
        agent_id=agent.agent_id,
        tool_id=tool.tool_id,
        is_required=request.is_required if request else False,
    )
    db.add(assignment)
    db.commit()
    db.refresh(assignment)
    return assignment.to_dict()


@router.delete("/{tool_id}/assign/{agent_id}")
async def unassign_tool(
    tool_id: UUID,
    agent_id: UUID,
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    db: Annotated[Session, Depends(get_db)],
):
    tool = _get_tool(db, ctx, tool_id)
    assignment = (
        db.query(AgentToolAssignment)
        .filter(AgentToolAssignment.agent_id == agent_id, AgentToolAssignment.tool_id == tool.tool_id)
        .first()
    )
    if assignment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Assignment not found")

    db.delete(assignment)
    db.commit()
    return {"deleted": True}
