"""Agent sessions, synchronous chat turns and background runs"""

import logging
from typing import Annotated, Optional
from uuid import UUID

import httpx
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..auth.dependencies import AuthContext, get_auth_context, authorize_access
from ..database import get_db
from ..dependencies import get_blob_store, get_dispatcher, get_http_client, get_llm_factory
from ..domain.ai.ports import LLMProviderError
from ..domain.storage.ports import BlobStorePort
from ..infrastructure.ai.factory import LLMProviderFactory
from ..models import Agent, AgentSession, AgentSessionMemory
from ..models.base import utcnow
from ..workers.dispatch import TaskDispatcher
from .access import get_visible, require_tenant, visible
from .schemas import ChatRequest, RunRequest, SessionCreate
from .service import SessionNotActiveError, run_chat_turn, session_summary

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/agent-sessions", tags=["Agent Sessions"])
chat_router = APIRouter(tags=["Agent Sessions"])

SESSION_LIST_LIMIT = 100


def _get_session(db: Session, ctx: AuthContext, session_id: UUID) -> AgentSession:
    return get_visible(db, AgentSession, AgentSession.session_id, session_id, ctx, "Session not found")


@router.get("")
async def list_sessions(
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    db: Annotated[Session, Depends(get_db)],
    agent_id: Optional[UUID] = None,
):
    query = visible(db.query(AgentSession), AgentSession, ctx)
    if agent_id is not None:
        query = query.filter(AgentSession.agent_id == agent_id)
    sessions = query.order_by(AgentSession.created_at.desc()).limit(SESSION_LIST_LIMIT).all()
    return {"sessions": [s.to_dict() for s in sessions]}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_session(
    request: SessionCreate,
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    db: Annotated[Session, Depends(get_db)],
):
    tenant_id = require_tenant(ctx, "Tenant context required to create session")
    agent = (
        db.query(Agent)
        .filter(Agent.agent_id == request.agent_id, Agent.tenant_id == tenant_id, Agent.is_active.is_(True))
        .first()
    )
    if agent is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Agent not found or inactive")

    session = AgentSession(
        agent_id=agent.agent_id,
        user_id=ctx.user_id,
        tenant_id=tenant_id,
        title=(request.title or "").strip() or f"Session with {agent.name}",
        status="active",
    )
    db.add(session)
    db.commit()
    db.refresh(session)

    logger.info("Agent session started", extra={"session_id": str(session.session_id), "tenant_id": str(tenant_id)})
    return session.to_dict()


@router.get("/{session_id}")
async def get_session(
    session_id: UUID,
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    db: Annotated[Session, Depends(get_db)],
):
    """Session with its messages in step order."""
    session = _get_session(db, ctx, session_id)
    return {**session.to_dict(), "messages": [m.to_dict() for m in session.messages]}


@router.delete("/{session_id}")
async def delete_session(
    session_id: UUID,
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    db: Annotated[Session, Depends(get_db)],
):
    session = _get_session(db, ctx, session_id)
    db.delete(session)
    db.commit()
    return {"deleted": True, "session_id": str(session_id)}


@router.post("/{session_id}/cancel")
async def cancel_session(
    session_id: UUID,
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    db: Annotated[Session, Depends(get_db)],
):
    """Cancel an active session. A running loop stops before its next model call."""
    session = (
        visible(db.query(AgentSession), AgentSession, ctx)
        .filter(AgentSession.session_id == session_id, AgentSession.status == "active")
        .first()
    )
    if session is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Active session not found")

    session.status = "cancelled"
    session.ended_at = utcnow()
    db.commit()
    db.refresh(session)

    logger.info("Agent session cancelled", extra={"session_id": str(session_id)})
    return session.to_dict()


@router.get("/{session_id}/status")
async def session_status(
    session_id: UUID,
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    db: Annotated[Session, Depends(get_db)],
):
    """Lightweight polling view of a session, with its newest message."""
    session = _get_session(db, ctx, session_id)
    last = session.messages[-1].to_dict() if session.messages else None
    return {**session_summary(session), "message_count": len(session.messages), "last_message": last}


@router.get("/{session_id}/memory")
async def session_memory(
    session_id: UUID,
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    db: Annotated[Session, Depends(get_db)],
    key: Optional[str] = None,
):
    """One session memory entry by key (or null), or every entry.

    Raises:
        HTTPException 403: Session belongs to another tenant
        HTTPException 404: Unknown session
    """
    session = db.query(AgentSession).filter(AgentSession.session_id == session_id).first()
    if session is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")
    if not authorize_access(ctx, session.tenant_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")

    query = db.query(AgentSessionMemory).filter(AgentSessionMemory.session_id == session_id)
    if key:
        entry = query.filter(AgentSessionMemory.memory_key == key).first()
        return {"memory": entry.to_dict() if entry else None}
    return {"memories": [m.to_dict() for m in query.order_by(AgentSessionMemory.created_at).all()]}


@router.post("/{session_id}/run", status_code=status.HTTP_202_ACCEPTED)
async def run_session(
    session_id: UUID,
    request: RunRequest,
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    db: Annotated[Session, Depends(get_db)],
    dispatcher: Annotated[TaskDispatcher, Depends(get_dispatcher)],
):
    """Start the autonomous loop in the background."""
    session = _get_session(db, ctx, session_id)
    if session.status != "active":
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Session is not active")

    queued = dispatcher.enqueue_agent_loop(session.session_id, request.message)
    return {"session_id": str(session.session_id), "status": session.status, "queued": queued}


@chat_router.post("/agent-chat")
def agent_chat(
    request: ChatRequest,
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    db: Annotated[Session, Depends(get_db)],
    llm_factory: Annotated[LLMProviderFactory, Depends(get_llm_factory)],
    blob_store: Annotated[BlobStorePort, Depends(get_blob_store)],
    http_client: Annotated[httpx.Client, Depends(get_http_client)],
):
    """Run one synchronous chat turn in a session.

    Raises:
        HTTPException 400: Session is not active
        HTTPException 404: Unknown session
        HTTPException 502: The model call failed
    """
    session = _get_session(db, ctx, request.session_id)
    try:
        return run_chat_turn(db, session, request.message, llm_factory, blob_store, http_client)
    except SessionNotActiveError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except (LLMProviderError, ValueError) as e:
        logger.error(f"Agent chat failed: {e}", extra={"session_id": str(request.session_id)})
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"AI provider error: {e}")
