"""Agent models: agents, sessions, messages and memory"""

from sqlalchemy import (
    Column, Text, Integer, Float, Boolean, ForeignKey, DateTime, Uuid,
    CheckConstraint, UniqueConstraint, Index,
)
from sqlalchemy.orm import relationship

from .base import Base, PortableJSONB, utcnow, new_uuid, isoformat


MODEL_PROVIDERS = ("openai", "anthropic", "gemini")
SESSION_STATUSES = ("active", "completed", "failed", "cancelled")
MESSAGE_ROLES = ("user", "assistant", "tool", "system")
MEMORY_TYPES = ("fact", "preference", "learned", "user_provided")


class Agent(Base):
    """A tenant-owned LLM agent with a goal, a system prompt and a model."""
    __tablename__ = "agents"

    agent_id = Column(Uuid, primary_key=True, default=new_uuid)
    tenant_id = Column(Uuid, ForeignKey("tenants.tenant_id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Uuid, ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True)
    name = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    goal = Column(Text, nullable=False)
    system_prompt = Column(Text, nullable=False)
    model_provider = Column(Text, nullable=False)
    model_name = Column(Text, nullable=False)
    max_steps = Column(Integer, nullable=False, default=10)
    temperature = Column(Float, nullable=False, default=0.7)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    sessions = relationship("AgentSession", back_populates="agent", cascade="all, delete-orphan")
    memories = relationship("AgentLongTermMemory", back_populates="agent", cascade="all, delete-orphan")
    tool_assignments = relationship("AgentToolAssignment", back_populates="agent", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint(
            "model_provider IN ('openai', 'anthropic', 'gemini')",
            name="ck_agents_model_provider",
        ),
        CheckConstraint("max_steps >= 1 AND max_steps <= 100", name="ck_agents_max_steps"),
        CheckConstraint("temperature >= 0 AND temperature <= 2", name="ck_agents_temperature"),
        UniqueConstraint("tenant_id", "name", name="uq_agents_tenant_name"),
    )

    def to_dict(self):
        return {
            "agent_id": str(self.agent_id),
            "tenant_id": str(self.tenant_id),
            "user_id": str(self.user_id) if self.user_id else None,
            "name": self.name,
            "description": self.description,
            "goal": self.goal,
            "system_prompt": self.system_prompt,
            "model_provider": self.model_provider,
            "model_name": self.model_name,
            "max_steps": self.max_steps,
            "temperature": self.temperature,
            "is_active": self.is_active,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }


class AgentSession(Base):
    """A conversation between a user and an agent."""
    __tablename__ = "agent_sessions"

    session_id = Column(Uuid, primary_key=True, default=new_uuid)
    agent_id = Column(Uuid, ForeignKey("agents.agent_id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Uuid, ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True)
    tenant_id = Column(Uuid, ForeignKey("tenants.tenant_id", ondelete="CASCADE"), nullable=False)
    title = Column(Text, nullable=True)
    status = Column(Text, nullable=False, default="active")
    current_step = Column(Integer, nullable=False, default=0)
    goal_met = Column(Boolean, nullable=False, default=False)
    started_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    ended_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    agent = relationship("Agent", back_populates="sessions")
    messages = relationship(
        "AgentSessionMessage",
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="(AgentSessionMessage.step_number, AgentSessionMessage.created_at)",
    )
    memory_entries = relationship("AgentSessionMemory", back_populates="session", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint(
            "status IN ('active', 'completed', 'failed', 'cancelled')",
            name="ck_agent_sessions_status",
        ),
        CheckConstraint("current_step >= 0", name="ck_agent_sessions_current_step"),
        Index("ix_agent_sessions_tenant_created", "tenant_id", "created_at"),
    )

    def to_dict(self):
        return {
            "session_id": str(self.session_id),
            "agent_id": str(self.agent_id),
            "user_id": str(self.user_id) if self.user_id else None,
            "tenant_id": str(self.tenant_id),
            "title": self.title,
            "status": self.status,
            "current_step": self.current_step,
            "goal_met": self.goal_met,
            "started_at": isoformat(self.started_at),
            "ended_at": isoformat(self.ended_at),
            "created_at": isoformat(self.created_at),
        }


class AgentSessionMessage(Base):
    __tablename__ = "agent_session_messages"

    message_id = Column(Uuid, primary_key=True, default=new_uuid)
    session_id = Column(Uuid, ForeignKey("agent_sessions.session_id", ondelete="CASCADE"), nullable=False)
    step_number = Column(Integer, nullable=False)
    role = Column(Text, nullable=False)
    content = Column(Text, nullable=False, default="")
    tool_name = Column(Text, nullable=True)
    tool_input = Column(PortableJSONB, nullable=True)
    tool_output = Column(PortableJSONB, nullable=True)
    reasoning = Column(Text, nullable=True)
    tokens_used = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    session = relationship("AgentSession", back_populates="messages")

    __table_args__ = (
        CheckConstraint(
            "role IN ('user', 'assistant', 'tool', 'system')",
            name="ck_agent_session_messages_role",
        ),
        CheckConstraint("step_number >= 0", name="ck_agent_session_messages_step"),
        Index("ix_agent_session_messages_session_step", "session_id", "step_number"),
    )

    def to_dict(self):
        return {
            "message_id": str(self.message_id),
            "session_id": str(self.session_id),
            "step_number": self.step_number,
            "role": self.role,
            "content": self.content,
            "tool_name": self.tool_name,
            "tool_input": self.tool_input,
            "tool_output": self.tool_output,
            "reasoning": self.reasoning,
            "tokens_used": self.tokens_used,
            "created_at": isoformat(self.created_at),
        }


class AgentLongTermMemory(Base):
    """Facts and preferences an agent carries across sessions."""
    __tablename__ = "agent_long_term_memory"

    memory_id = Column(Uuid, primary_key=True, default=new_uuid)
    agent_id = Column(Uuid, ForeignKey("agents.agent_id", ondelete="CASCADE"), nullable=False)
    tenant_id = Column(Uuid, ForeignKey("tenants.tenant_id", ondelete="CASCADE"), nullable=False)
    memory_type = Column(Text, nullable=False, default="user_provided")
    content = Column(Text, nullable=False)
    source_session_id = Column(Uuid, ForeignKey("agent_sessions.session_id", ondelete="SET NULL"), nullable=True)
    importance = Column(Integer, nullable=False, default=5)
    last_accessed_at = Column(DateTime(timezone=True), nullable=True)
    access_count = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    agent = relationship("Agent", back_populates="memories")

    __table_args__ = (
        CheckConstraint(
            "memory_type IN ('fact', 'preference', 'learned', 'user_provided')",
            name="ck_agent_long_term_memory_type",
        ),
        CheckConstraint("importance >= 1 AND importance <= 10", name="ck_agent_long_term_memory_importance"),
        Index("ix_agent_long_term_memory_agent", "agent_id", "importance"),
    )

    def to_dict(self):
        return {
            "memory_id": str(self.memory_id),
            "agent_id": str(self.agent_id),
            "tenant_id": str(self.tenant_id),
            "memory_type": self.memory_type,
            "content": self.content,
            "source_session_id": str(self.source_session_id) if self.source_session_id else None,
            "importance": self.importance,
            "last_accessed_at": isoformat(self.last_accessed_at),
            "access_count": self.access_count,
            "is_active": self.is_active,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }


class AgentSessionMemory(Base):
    """Per-session key/value scratch space (e.g. the execution plan)."""
    __tablename__ = "agent_session_memory"

    memory_id = Column(Uuid, primary_key=True, default=new_uuid)
    session_id = Column(Uuid, ForeignKey("agent_sessions.session_id", ondelete="CASCADE"), nullable=False)
    memory_key = Column(Text, nullable=False)
    memory_value = Column(PortableJSONB, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    session = relationship("AgentSession", back_populates="memory_entries")

    __table_args__ = (
        UniqueConstraint("session_id", "memory_key", name="uq_agent_session_memory_key"),
    )

    def to_dict(self):
        return {
            "memory_id": str(self.memory_id),
            "session_id": str(self.session_id),
            "memory_key": self.memory_key,
            "memory_value": self.memory_value,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }
