"""Provider lookup by name"""

import logging
from typing import Dict, Optional

from ...config import Settings, settings as default_settings
from ...domain.ai.ports import LLMProviderPort
from .openai_provider import OpenAIProvider
from .anthropic_provider import AnthropicProvider
from .gemini_provider import GeminiProvider

logger = logging.getLogger(__name__)

SUPPORTED_PROVIDERS = ("openai", "anthropic", "gemini")


class LLMProviderFactory:
    """Builds and caches one provider instance per name."""

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or default_settings
        self._providers: Dict[str, LLMProviderPort] = {}

    def get(self, provider_name: str) -> LLMProviderPort:
        """
        Args:
            provider_name: 'openai', 'anthropic' or 'gemini'

        Raises:
            ValueError: Unknown provider, or its API key is not configured
        """
        name = provider_name
        if name not in SUPPORTED_PROVIDERS:
            raise ValueError(f"Unsupported provider: {provider_name}")

        if name not in self._providers:
            self._providers[name] = self._build(name)
        return self._providers[name]

    def _build(self, name: str) -> LLMProviderPort:
        timeout = self.config.LLM_TIMEOUT_SECONDS
        if name == "openai":
            return OpenAIProvider(api_key=self.config.OPENAI_API_KEY, timeout=timeout)
        if name == "anthropic":
            return AnthropicProvider(api_key=self.config.ANTHROPIC_API_KEY, timeout=timeout)
        return GeminiProvider(
            api_key=self.config.GEMINI_API_KEY,
            base_url=self.config.GEMINI_BASE_URL,
            timeout=timeout,
        )
