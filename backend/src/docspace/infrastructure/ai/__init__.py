"""LLM provider adapters"""

from .openai_provider import OpenAIProvider
from .anthropic_provider import AnthropicProvider
from .gemini_provider import GeminiProvider
from .factory import LLMProviderFactory, SUPPORTED_PROVIDERS

__all__ = [
    "OpenAIProvider",
    "AnthropicProvider",
    "GeminiProvider",
    "LLMProviderFactory",
    "SUPPORTED_PROVIDERS",
]
