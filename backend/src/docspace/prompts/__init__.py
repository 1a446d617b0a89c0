"""Database-driven LLM prompt configuration."""

from .service import PromptConfig, get_active_prompt, resolve_prompt, render_template, prompt_hash
from .defaults import DEFAULT_PROMPTS

__all__ = [
    "PromptConfig",
    "get_active_prompt",
    "resolve_prompt",
    "render_template",
    "prompt_hash",
    "DEFAULT_PROMPTS",
]
