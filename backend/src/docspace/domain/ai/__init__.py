"""LLM provider port and the types exchanged with it."""

from .ports import (
    LLMMessage,
    ToolCall,
    ToolDefinition,
    Attachment,
    LLMResponse,
    LLMProviderPort,
    LLMProviderError,
    LLMTimeoutError,
    LLMRateLimitError,
    LLMAuthError,
    LLMServiceError,
    LLMInvalidResponseError,
)

__all__ = [
    "LLMMessage",
    "ToolCall",
    "ToolDefinition",
    "Attachment",
    "LLMResponse",
    "LLMProviderPort",
    "LLMProviderError",
    "LLMTimeoutError",
    "LLMRateLimitError",
    "LLMAuthError",
    "LLMServiceError",
    "LLMInvalidResponseError",
]
