"""Agent tool models: tool definitions, assignments and MCP servers"""

from sqlalchemy import (
    Column, Text, Boolean, ForeignKey, DateTime, Uuid, CheckConstraint, UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .base import Base, PortableJSONB, utcnow, new_uuid, isoformat


TOOL_TYPES = ("mcp_server", "python_script", "builtin")
MCP_AUTH_TYPES = ("none", "api_key", "bearer", "basic")


class AgentTool(Base):
    """A function an agent may call, described by a JSON schema."""
    __tablename__ = "agent_tools"

    tool_id = Column(Uuid, primary_key=True, default=new_uuid)
    tenant_id = Column(Uuid, ForeignKey("tenants.tenant_id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Uuid, ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True)
    name = Column(Text, nullable=False)
    description = Column(Text, nullable=False)
    tool_type = Column(Text, nullable=False)
    input_schema = Column(PortableJSONB, nullable=False, default=dict)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    assignments = relationship("AgentToolAssignment", back_populates="tool", cascade="all, delete-orphan")
    mcp_server = relationship("MCPServer", back_populates="tool", uselist=False, cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint(
            "tool_type IN ('mcp_server', 'python_script', 'builtin')",
            name="ck_agent_tools_tool_type",
        ),
        UniqueConstraint("tenant_id", "name", name="uq_agent_tools_tenant_name"),
    )

    def to_dict(self):
        return {
            "tool_id": str(self.tool_id),
            "tenant_id": str(self.tenant_id),
            "user_id": str(self.user_id) if self.user_id else None,
            "name": self.name,
            "description": self.description,
            "tool_type": self.tool_type,
            "input_schema": self.input_schema,
            "is_active": self.is_active,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }


class AgentToolAssignment(Base):
    __tablename__ = "agent_tool_assignments"

    assignment_id = Column(Uuid, primary_key=True, default=new_uuid)
    agent_id = Column(Uuid, ForeignKey("agents.agent_id", ondelete="CASCADE"), nullable=False)
    tool_id = Column(Uuid, ForeignKey("agent_tools.tool_id", ondelete="CASCADE"), nullable=False)
    is_required = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    agent = relationship("Agent", back_populates="tool_assignments")
    tool = relationship("AgentTool", back_populates="assignments")

    __table_args__ = (
        UniqueConstraint("agent_id", "tool_id", name="uq_agent_tool_assignments_agent_tool"),
    )

    def to_dict(self):
        return {
            "assignment_id": str(self.assignment_id),
            "agent_id": str(self.agent_id),
            "tool_id": str(self.tool_id),
            "is_required": self.is_required,
            "created_at": isoformat(self.created_at),
        }


class MCPServer(Base):
    """Connection details for a tool backed by an MCP server.

    auth_config holds the credentials encrypted with CredentialEncryption and
    is never returned by the API.
    """
    __tablename__ = "mcp_servers"

    mcp_server_id = Column(Uuid, primary_key=True, default=new_uuid)
    tool_id = Column(Uuid, ForeignKey("agent_tools.tool_id", ondelete="CASCADE"), nullable=False, unique=True)
    tenant_id = Column(Uuid, ForeignKey("tenants.tenant_id", ondelete="CASCADE"), nullable=False)
    server_name = Column(Text, nullable=False)
    server_url = Column(Text, nullable=False)
    auth_type = Column(Text, nullable=False, default="none")
    auth_config = Column(Text, nullable=True)
    health_status = Column(Text, nullable=False, default="unknown")
    last_health_check = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    tool = relationship("AgentTool", back_populates="mcp_server")

    __table_args__ = (
        CheckConstraint(
            "auth_type IN ('none', 'api_key', 'bearer', 'basic')",
            name="ck_mcp_servers_auth_type",
        ),
        CheckConstraint(
            "health_status IN ('healthy', 'unhealthy', 'unknown')",
            name="ck_mcp_servers_health_status",
        ),
    )

    def to_dict(self):
        return {
            "mcp_server_id": str(self.mcp_server_id),
            "tool_id": str(self.tool_id),
            "tenant_id": str(self.tenant_id),
            "server_name": self.server_name,
            "server_url": self.server_url,
            "auth_type": self.auth_type,
            "has_credentials": self.auth_config is not None,
            "health_status": self.health_status,
            "last_health_check": isoformat(self.last_health_check),
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }
