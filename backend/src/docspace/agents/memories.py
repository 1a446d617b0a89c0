"""Long-term agent memories"""

from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from ..auth.dependencies import AuthContext, get_auth_context
from ..database import get_db
from ..models import Agent, AgentLongTermMemory, MEMORY_TYPES
from ..models.base import utcnow
from .access import get_visible, require_tenant, visible
from .schemas import MemoryCreate, MemoryUpdate

router = APIRouter(prefix="/agent-memories", tags=["Agent Memories"])


def _validate_type(memory_type: Optional[str]) -> None:
    if memory_type is not None and memory_type not in MEMORY_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid memory type. Must be one of: {', '.join(MEMORY_TYPES)}",
        )


def _get_memory(db: Session, ctx: AuthContext, memory_id: UUID) -> AgentLongTermMemory:
    return get_visible(db, AgentLongTermMemory, AgentLongTermMemory.memory_id, memory_id, ctx, "Memory not found")


@router.get("")
async def list_memories(
    agent_id: UUID,
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    db: Annotated[Session, Depends(get_db)],
    memory_type: Annotated[Optional[str], Query(alias="type")] = None,
):
    """Active memories of an agent, most important first."""
    query = visible(db.query(AgentLongTermMemory), AgentLongTermMemory, ctx).filter(
        AgentLongTermMemory.agent_id == agent_id,
        AgentLongTermMemory.is_active.is_(True),
    )
    if memory_type in MEMORY_TYPES:
        query = query.filter(AgentLongTermMemory.memory_type == memory_type)
    memories = query.order_by(AgentLongTermMemory.importance.desc(), AgentLongTermMemory.created_at.desc()).all()
    return {"memories": [m.to_dict() for m in memories]}


@router.get("/{memory_id}")
async def get_memory(
    memory_id: UUID,
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    db: Annotated[Session, Depends(get_db)],
):
    """Fetch a memory and record the access."""
    memory = _get_memory(db, ctx, memory_id)
    memory.access_count = (memory.access_count or 0) + 1
    memory.last_accessed_at = utcnow()
    db.commit()
    db.refresh(memory)
    return memory.to_dict()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_memory(
    agent_id: UUID,
    request: MemoryCreate,
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    db: Annotated[Session, Depends(get_db)],
):
    tenant_id = require_tenant(ctx, "Tenant context required to create memory")
    agent = get_visible(db, Agent, Agent.agent_id, agent_id, ctx, "Agent not found")
    _validate_type(request.memory_type)

    memory = AgentLongTermMemory(
        agent_id=agent.agent_id,
        tenant_id=tenant_id,
        memory_type=request.memory_type,
        content=request.content.strip(),
        source_session_id=request.source_session_id,
        importance=request.importance,
    )
    db.add(memory)
    db.commit()
    db.refresh(memory)
    return memory.to_dict()


@router.put("/{memory_id}")
async def update_memory(
    memory_id: UUID,
    request: MemoryUpdate,
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    db: Annotated[Session, Depends(get_db)],
):
    memory = _get_memory(db, ctx, memory_id)
    _validate_type(request.memory_type)

    if request.content is not None:
        memory.content = request.content.strip()
    if request.memory_type is not None:
        memory.memory_type = request.memory_type
    if request.importance is not None:
        memory.importance = request.importance
    if request.is_active is not None:
        memory.is_active = request.is_active

    db.commit()
    db.refresh(memory)
    return memory.to_dict()


@router.delete("/{memory_id}")
async def delete_memory(
    memory_id: UUID,
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    db: Annotated[Session, Depends(get_db)],
):
    memory = _get_memory(db, ctx, memory_id)
    db.delete(memory)
    db.commit()
    return {"deleted": True, "memory_id": str(memory_id)}
