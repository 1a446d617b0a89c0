"""Agent CRUD and system prompt drafting"""

import logging
from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..auth.dependencies import AuthContext, get_auth_context
from ..database import get_db
from ..dependencies import get_llm_factory
from ..domain.ai.ports import LLMProviderError
from ..infrastructure.ai.factory import LLMProviderFactory
from ..models import Agent, AgentTool, AgentToolAssignment, MODEL_PROVIDERS
from .access import get_visible, require_tenant, visible
from .prompting import generate_agent_prompt
from .schemas import AgentCreate, AgentUpdate, GeneratePromptRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/agents", tags=["Agents"])


def _validate_provider(provider: Optional[str]) -> None:
    if provider is not None and provider not in MODEL_PROVIDERS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid model provider. Must be one of: {', '.join(MODEL_PROVIDERS)}",
        )


def _ensure_name_free(db: Session, tenant_id: UUID, name: str, exclude: Optional[UUID] = None) -> None:
    query = db.query(Agent.agent_id).filter(Agent.tenant_id == tenant_id, Agent.name == name)
    if exclude is not None:
        query = query.filter(Agent.agent_id != exclude)
    if query.first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="An agent with this name already exists")


def _get_agent(db: Session, ctx: AuthContext, agent_id: UUID) -> Agent:
    return get_visible(db, Agent, Agent.agent_id, agent_id, ctx, "Agent not found")


@router.get("")
async def list_agents(
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    db: Annotated[Session, Depends(get_db)],
):
    """Agents in the caller's tenant with the tools assigned to each."""
    agents = visible(db.query(Agent), Agent, ctx).order_by(Agent.name).all()

    assigned = {}
    if agents:
        rows = (
            db.query(AgentToolAssignment.agent_id, AgentTool.tool_id, AgentTool.name)
            .join(AgentTool, AgentTool.tool_id == AgentToolAssignment.tool_id)
            .filter(AgentToolAssignment.agent_id.in_([a.agent_id for a in agents]))
            .order_by(AgentTool.name)
            .all()
        )
        for agent_id, tool_id, name in rows:
            assigned.setdefault(agent_id, []).append({"tool_id": str(tool_id), "name": name})

    return {"agents": [{**a.to_dict(), "assigned_tools": assigned.get(a.agent_id, [])} for a in agents]}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_agent(
    request: AgentCreate,
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    db: Annotated[Session, Depends(get_db)],
):
    tenant_id = require_tenant(ctx, "Tenant context required to create agent")
    _validate_provider(request.model_provider)
    name = request.name.strip()
    _ensure_name_free(db, tenant_id, name)

    agent = Agent(
        tenant_id=tenant_id,
        user_id=ctx.user_id,
        name=name,
        description=request.description.strip() if request.description else None,
        goal=request.goal.strip(),
        system_prompt=request.system_prompt.strip(),
        model_provider=request.model_provider,
        model_name=request.model_name.strip(),
        max_steps=request.max_steps,
        temperature=request.temperature,
        is_active=request.is_active,
    )
    db.add(agent)
    db.commit()
    db.refresh(agent)

    logger.info(f"Created agent {agent.name}", extra={"tenant_id": str(tenant_id), "user_id": str(ctx.user_id)})
    return agent.to_dict()


@router.post("/generate-prompt")
def generate_prompt(
    request: GeneratePromptRequest,
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    db: Annotated[Session, Depends(get_db)],
    llm_factory: Annotated[LLMProviderFactory, Depends(get_llm_factory)],
):
    """Draft a system prompt from the agent's name, description and goal.

    Raises:
        HTTPException 400: A field is missing
        HTTPException 502: The model call failed
    """
    name, description, goal = (
        (value or "").strip() for value in (request.name, request.description, request.goal)
    )
    if not (name and description and goal):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="name, description, and goal are required")

    try:
        return generate_agent_prompt(db, llm_factory, name, description, goal)
    except (LLMProviderError, ValueError) as e:
        logger.error(f"Prompt generation failed: {e}", extra={"user_id": str(ctx.user_id)})
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"Prompt generation failed: {e}")


@router.get("/{agent_id}")
async def get_agent(
    agent_id: UUID,
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    db: Annotated[Session, Depends(get_db)],
):
    return _get_agent(db, ctx, agent_id).to_dict()


@router.put("/{agent_id}")
async def update_agent(
    agent_id: UUID,
    request: AgentUpdate,
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    db: Annotated[Session, Depends(get_db)],
):
    agent = _get_agent(db, ctx, agent_id)
    _validate_provider(request.model_provider)

    changes = request.model_dump(exclude_unset=True)
    if changes.get("name") is not None:
        changes["name"] = changes["name"].strip()
        _ensure_name_free(db, agent.tenant_id, changes["name"], exclude=agent.agent_id)

    for field, value in changes.items():
        if value is None and field != "description":
            continue
        setattr(agent, field, value.strip() if isinstance(value, str) else value)

    db.commit()
    db.refresh(agent)
    return agent.to_dict()


@router.delete("/{agent_id}")
async def delete_agent(
    agent_id: UUID,
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    db: Annotated[Session, Depends(get_db)],
):
    agent = _get_agent(db, ctx, agent_id)
    db.delete(agent)
    db.commit()
    logger.info(f"Deleted agent {agent_id}", extra={"user_id": str(ctx.user_id)})
    return {"deleted": True, "agent_id": str(agent_id)}


@router.get("/{agent_id}/tools")
async def list_agent_tools(
    agent_id: UUID,
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    db: Annotated[Session, Depends(get_db)],
):
    """Tools assigned to an agent, active or not."""
    agent = _get_agent(db, ctx, agent_id)
    tools = (
        db.query(AgentTool)
        .join(AgentToolAssignment, AgentToolAssignment.tool_id == AgentTool.tool_id)
        .filter(AgentToolAssignment.agent_id == agent.agent_id)
        .order_by(AgentTool.name)
        .all()
    )
    return {"tools": [t.to_dict() for t in tools]}
