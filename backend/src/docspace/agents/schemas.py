"""Pydantic schemas for agent endpoints"""

from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class AgentCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    goal: str = Field(..., min_length=1)
    system_prompt: str = Field(..., min_length=1)
    model_provider: str
    model_name: str = Field(..., min_length=1)
    max_steps: int = Field(10, ge=1, le=100)
    temperature: float = Field(0.7, ge=0, le=2)
    is_active: bool = True


class AgentUpdate(BaseModel):
    """Partial update; omitted fields are left unchanged."""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    goal: Optional[str] = Field(None, min_length=1)
    system_prompt: Optional[str] = Field(None, min_length=1)
    model_provider: Optional[str] = None
    model_name: Optional[str] = Field(None, min_length=1)
    max_steps: Optional[int] = Field(None, ge=1, le=100)
    temperature: Optional[float] = Field(None, ge=0, le=2)
    is_active: Optional[bool] = None


class GeneratePromptRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    goal: Optional[str] = None


class SessionCreate(BaseModel):
    agent_id: UUID
    title: Optional[str] = None


class RunRequest(BaseModel):
    message: Optional[str] = None


class ChatRequest(BaseModel):
    session_id: UUID
    message: str = Field(..., min_length=1)


class MemoryCreate(BaseModel):
    content: str = Field(..., min_length=1)
    memory_type: str = "user_provided"
    importance: int = Field(5, ge=1, le=10)
    source_session_id: Optional[UUID] = None


class MemoryUpdate(BaseModel):
    content: Optional[str] = Field(None, min_length=1)
    memory_type: Optional[str] = None
    importance: Optional[int] = Field(None, ge=1, le=10)
    is_active: Optional[bool] = None


class ToolCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1)
    tool_type: str
    input_schema: Dict[str, Any] = Field(default_factory=lambda: {"type": "object", "properties": {}})
    is_active: bool = True


class ToolUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, min_length=1)
    input_schema: Optional[Dict[str, Any]] = None
    is_active: Optional[bool] = None


class ToolAssign(BaseModel):
    is_required: bool = False


class MCPServerCreate(BaseModel):
    tool_id: UUID
    server_name: str = Field(..., min_length=1)
    server_url: str = Field(..., min_length=1)
    auth_type: str = "none"
    auth_credentials: Optional[Dict[str, Any]] = None


class MCPServerUpdate(BaseModel):
    server_name: Optional[str] = Field(None, min_length=1)
    server_url: Optional[str] = Field(None, min_length=1)
    auth_type: Optional[str] = None
    auth_credentials: Optional[Dict[str, Any]] = None
