"""Agent conversations: a single chat turn and the autonomous loop.

Both paths share the same bookkeeping. Every message is stored in
agent_session_messages with a strictly increasing step_number, and
session.current_step always points at the last recorded step.
"""

import logging
import time
from typing import Any, Dict, List, Optional
from uuid import UUID

import httpx
from sqlalchemy.orm import Session

from ..domain.ai.ports import LLMMessage, LLMResponse, ToolDefinition
from ..domain.storage.ports import BlobStorePort
from ..models import Agent, AgentSession, AgentSessionMessage, AgentTool
from ..models.base import utcnow
from ..observability.metrics import agent_steps_total
from .prompting import (
    assigned_tools,
    build_system_prompt,
    is_goal_complete,
    relevant_memories,
    tool_definitions,
)
from .tools.context import ToolContext
from .tools.executor import execute_tool_call
from .tools.plan import has_remaining_work, load_plan

logger = logging.getLogger(__name__)

AGENT_MAX_TOKENS = 4096
MAX_CONSECUTIVE_NON_TOOL_RESPONSES = 3
TOOL_CALL_PLACEHOLDER = "Using tools..."
HISTORY_ROLES = ("user", "assistant")


class SessionNotActiveError(Exception):
    pass


class AgentConversation:
    """LLM context and message log for one session.

    Builds the system prompt and replays user/assistant history on
    creation, then records every new message as it happens.
    """

    def __init__(
        self,
        db: Session,
        session: AgentSession,
        llm_factory,
        blob_store: BlobStorePort,
        http_client: Optional[httpx.Client] = None,
    ):
        self.db = db
        self.session = session
        self.agent: Agent = session.agent
        self.provider = llm_factory.get(self.agent.model_provider)
        self.tools: List[AgentTool] = assigned_tools(db, self.agent.agent_id)
        self.definitions: List[ToolDefinition] = tool_definitions(self.tools)
        self.step = session.current_step
        self.tool_context = ToolContext(
            db=db,
            tenant_id=session.tenant_id,
            user_id=session.user_id,
            blob_store=blob_store,
            session_id=session.session_id,
            http_client=http_client,
        )

        system_prompt = build_system_prompt(self.agent, relevant_memories(db, self.agent.agent_id))
        self.messages: List[LLMMessage] = [LLMMessage(role="system", content=system_prompt)]
        for message in session.messages:
            if message.role in HISTORY_ROLES:
                self.messages.append(LLMMessage(role=message.role, content=message.content))

    def record(self, role: str, content: str, **fields) -> AgentSessionMessage:
        self.step += 1
        message = AgentSessionMessage(
            session_id=self.session.session_id,
            step_number=self.step,
            role=role,
            content=content,
            **fields,
        )
        self.db.add(message)
        self.session.current_step = self.step
        self.db.commit()
        return message

    def add_user_message(self, content: str) -> None:
        self.record("user", content)
        self.messages.append(LLMMessage(role="user", content=content))

    def complete(self) -> LLMResponse:
        return self.provider.complete(
            self.messages,
            model=self.agent.model_name,
            temperature=float(self.agent.temperature),
            max_tokens=AGENT_MAX_TOKENS,
            tools=self.definitions or None,
        )

    def run_tool_calls(self, response: LLMResponse) -> None:
        """Record the tool-calling reply, execute each call and record the results."""
        self.record(
            "assistant",
            response.content or TOOL_CALL_PLACEHOLDER,
            tokens_used=response.tokens_used,
        )
        self.messages.append(
            LLMMessage(role="assistant", content=response.content or "", tool_calls=response.tool_calls)
        )

        for call in response.tool_calls:
            result = execute_tool_call(self.tool_context, self.tools, call.name, call.arguments)
            self.record(
                "tool",
                result.result,
                tool_name=call.name,
                tool_input=call.arguments,
                tool_output=result.to_dict(),
            )
            self.messages.append(
                LLMMessage(role="tool", content=result.result, tool_call_id=call.id, name=call.name)
            )

    def add_reply(self, content: str, tokens_used: int) -> None:
        self.record("assistant", content, tokens_used=tokens_used)
        self.messages.append(LLMMessage(role="assistant", content=content))

    def finish(self, status: str, goal_met: bool = False) -> None:
        self.session.status = status
        self.session.goal_met = goal_met
        self.session.ended_at = utcnow()
        self.db.commit()


def session_summary(session: AgentSession) -> Dict[str, Any]:
    return {
        "session_id": str(session.session_id),
        "status": session.status,
        "current_step": session.current_step,
        "goal_met": session.goal_met,
    }


def run_chat_turn(
    db: Session,
    session: AgentSession,
    message: str,
    llm_factory,
    blob_store: BlobStorePort,
    http_client: Optional[httpx.Client] = None,
) -> Dict[str, Any]:
    """One synchronous exchange: user message, optional tool round, reply.

    Raises:
        SessionNotActiveError: The session is completed, failed or cancelled
        LLMProviderError: A provider call failed
    """
    if session.status != "active":
        raise SessionNotActiveError("Session is not active")

    conversation = AgentConversation(db, session, llm_factory, blob_store, http_client)
    conversation.add_user_message(message)

    response = conversation.complete()
    tokens_used = response.tokens_used
    if response.tool_calls:
        conversation.run_tool_calls(response)
        response = conversation.complete()
        tokens_used += response.tokens_used

    content = response.content or ""
    conversation.add_reply(content, tokens_used)
    if is_goal_complete(content):
        conversation.finish("completed", goal_met=True)

    logger.info(
        f"Agent chat turn finished at step {session.current_step}",
        extra={"session_id": str(session.session_id), "tenant_id": str(session.tenant_id)},
    )
    return {
        "message": {"role": "assistant", "content": content, "tokens_used": tokens_used},
        "session": session_summary(session),
    }


def _is_cancelled(db: Session, session_id: UUID) -> bool:
    status = db.query(AgentSession.status).filter(AgentSession.session_id == session_id).scalar()
    return status == "cancelled"


def run_agent_loop(
    db: Session,
    session_id: UUID,
    llm_factory,
    blob_store: BlobStorePort,
    message: Optional[str] = None,
    http_client: Optional[httpx.Client] = None,
) -> Dict[str, Any]:
    """Let the agent work autonomously for up to ``agent.max_steps`` iterations.

    The loop stops when:
    - the session is cancelled
    - a reply starts with GOAL_COMPLETE (session completed, goal met)
    - a plain reply arrives and the execution plan has no remaining work,
      or MAX_CONSECUTIVE_NON_TOOL_RESPONSES plain replies came in a row
    - max_steps iterations ran (session completed, goal not met)

    Any unexpected error marks the session failed and is re-raised.
    """
    session = db.query(AgentSession).filter(AgentSession.session_id == session_id).first()
    if session is None:
        logger.warning("Agent loop requested for unknown session", extra={"session_id": str(session_id)})
        return {"status": "skipped", "reason": "Session not found"}
    if session.status != "active":
        return {"status": "skipped", "reason": "Session is not active"}

    log_extra = {"session_id": str(session_id), "tenant_id": str(session.tenant_id)}
    start = time.perf_counter()
    iterations = 0

    try:
        conversation = AgentConversation(db, session, llm_factory, blob_store, http_client)
        if message:
            conversation.add_user_message(message)

        non_tool_replies = 0
        for _ in range(conversation.agent.max_steps):
            if _is_cancelled(db, session_id):
                logger.info("Agent loop cancelled", extra=log_extra)
                break

            iterations += 1
            agent_steps_total.inc()
            response = conversation.complete()
            content = response.content or ""

            if is_goal_complete(content):
                conversation.add_reply(content, response.tokens_used)
                conversation.finish("completed", goal_met=True)
                break

            if response.tool_calls:
                conversation.run_tool_calls(response)
                non_tool_replies = 0
                continue

            conversation.add_reply(content, response.tokens_used)
            if has_remaining_work(load_plan(db, session_id)) and non_tool_replies < MAX_CONSECUTIVE_NON_TOOL_RESPONSES:
                non_tool_replies += 1
                logger.info(
                    f"Continuing on plan ({non_tool_replies}/{MAX_CONSECUTIVE_NON_TOOL_RESPONSES})",
                    extra=log_extra,
                )
                continue
            break

        # Running out of steps ends the session even if the last reply was plain
        if (
            session.status == "active"
            and iterations >= conversation.agent.max_steps
            and not _is_cancelled(db, session_id)
        ):
            conversation.finish("completed", goal_met=False)
    except Exception:
        logger.exception("Agent loop failed", extra=log_extra)
        db.rollback()
        session.status = "failed"
        session.ended_at = utcnow()
        db.commit()
        raise

    elapsed = time.perf_counter() - start
    logger.info(
        f"Agent loop finished after {iterations} iterations in {elapsed:.2f}s with status {session.status}",
        extra=log_extra,
    )
    return {"status": session.status, "iterations": iterations, "session": session_summary(session)}
