"""
LLM Provider Port - Abstract interface for LLM providers.

Business logic (extraction, Q&A generation, agents) depends on this port,
not on the OpenAI, Anthropic or Gemini adapters behind it.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class ToolCall:
    """A function call requested by the model.

    Attributes:
        id: Provider-assigned call id, echoed back in the tool result message
        name: Tool name
        arguments: Parsed JSON arguments
    """
    id: str
    name: str
    arguments: Dict[str, Any] = field(default_factory=dict)


@dataclass
class LLMMessage:
    """
    Message format for LLM conversations.

    Attributes:
        role: 'system', 'user', 'assistant' or 'tool'
        content: Text content
        tool_call_id: For role 'tool', the ToolCall.id this result answers
        tool_calls: For role 'assistant', calls the model requested
        name: For role 'tool', the tool name (Gemini needs it)
    """
    role: str
    content: str = ""
    tool_call_id: Optional[str] = None
    tool_calls: Optional[List[ToolCall]] = None
    name: Optional[str] = None


@dataclass
class ToolDefinition:
    """A tool offered to the model, described by a JSON schema."""
    name: str
    description: str
    parameters: Dict[str, Any] = field(default_factory=lambda: {"type": "object", "properties": {}})


@dataclass
class Attachment:
    """Binary document sent alongside the last user message."""
    mime_type: str
    data: bytes
    file_name: Optional[str] = None


@dataclass
class LLMResponse:
    """
    Result of a completion call.

    Attributes:
        content: Text reply (None when the model only called tools)
        tool_calls: Requested tool calls, empty if none
        tokens_in: Prompt tokens (0 if the provider does not report)
        tokens_out: Completion tokens
        finish_reason: Provider stop reason
        provider: Provider name ('openai', 'anthropic', 'gemini')
        model: Model name
    """
    content: Optional[str]
    tool_calls: List[ToolCall] = field(default_factory=list)
    tokens_in: int = 0
    tokens_out: int = 0
    finish_reason: Optional[str] = None
    provider: str = ""
    model: str = ""

    @property
    def tokens_used(self) -> int:
        return self.tokens_in + self.tokens_out


class LLMProviderPort(ABC):
    """
    Abstract interface for LLM providers.

    Implementations must handle:
    - API authentication
    - Translating LLMMessage/ToolDefinition/Attachment into the provider format
    - Response parsing into LLMResponse
    - Mapping SDK and HTTP errors onto the LLMProviderError hierarchy
    """

    name: str = ""

    @abstractmethod
    def complete(
        self,
        messages: List[LLMMessage],
        *,
        model: str,
        temperature: float = 0.7,
        max_tokens: int = 4096,
        tools: Optional[List[ToolDefinition]] = None,
        attachments: Optional[List[Attachment]] = None,
        json_mode: bool = False,
    ) -> LLMResponse:
        """
        Run a chat completion.

        Args:
            messages: Conversation, optionally starting with a system message
            model: Provider model name
            temperature: Sampling temperature
            max_tokens: Output token limit
            tools: Tools the model may call
            attachments: Documents attached to the last user message
            json_mode: Ask the provider for a JSON-only response where supported

        Raises:
            LLMTimeoutError: Request timed out
            LLMRateLimitError: Rate limit exceeded
            LLMAuthError: Authentication failed
            LLMServiceError: Provider service unavailable
            LLMInvalidResponseError: Response could not be interpreted
        """
        pass


# Custom exceptions for LLM operations
class LLMProviderError(Exception):
    """Base exception for LLM operations"""
    pass


class LLMTimeoutError(LLMProviderError):
    """LLM request timed out"""
    pass


class LLMRateLimitError(LLMProviderError):
    """Rate limit exceeded"""
    pass


class LLMAuthError(LLMProviderError):
    """Authentication failed"""
    pass


class LLMServiceError(LLMProviderError):
    """Provider service unavailable or returned error"""
    pass


class LLMInvalidResponseError(LLMProviderError):
    """Provider returned invalid/unexpected response"""
    pass
