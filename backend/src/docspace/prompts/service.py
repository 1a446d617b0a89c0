"""Prompt lookup and template rendering"""

import hashlib
import re
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from ..models.prompt import Prompt
from .defaults import DEFAULT_PROMPTS

_PLACEHOLDER = re.compile(r"\{\{\s*(\w+)\s*\}\}")


@dataclass
class PromptConfig:
    """Resolved model settings and templates for one LLM function"""
    function_name: str
    model_provider: str
    model_name: str
    user_prompt_template: str
    system_prompt: Optional[str] = None
    temperature: float = 0.7
    max_tokens: int = 4096
    version: int = 0

    @classmethod
    def from_row(cls, row: Prompt) -> "PromptConfig":
        return cls(
            function_name=row.function_name,
            model_provider=row.model_provider,
            model_name=row.model_name,
            user_prompt_template=row.user_prompt_template,
            system_prompt=row.system_prompt,
            temperature=float(row.temperature),
            max_tokens=int(row.max_tokens),
            version=row.version,
        )


def get_active_prompt(db: Session, function_name: str) -> Optional[PromptConfig]:
    """Return the active prompt for a function, or None."""
    row = (
        db.query(Prompt)
        .filter(Prompt.function_name == function_name, Prompt.is_active.is_(True))
        .first()
    )
    return PromptConfig.from_row(row) if row else None


def resolve_prompt(db: Session, function_name: str) -> PromptConfig:
    """Active prompt for a function, falling back to the built-in default.

    Raises:
        KeyError: If there is neither an active row nor a default
    """
    config = get_active_prompt(db, function_name)
    if config is not None:
        return config

    default = DEFAULT_PROMPTS[function_name]
    return PromptConfig(
        function_name=function_name,
        model_provider=default["model_provider"],
        model_name=default["model_name"],
        user_prompt_template=default["user_prompt_template"],
        system_prompt=default["system_prompt"],
        temperature=default["temperature"],
        max_tokens=default["max_tokens"],
    )


def render_template(template: str, **values) -> str:
    """Replace every ``{{name}}`` placeholder with its value.

    Unknown placeholders are left untouched.

    Example:
        >>> render_template("Hello {{name}}, {{name}}!", name="Ada")
        'Hello Ada, Ada!'
    """
    def substitute(match):
        key = match.group(1)
        return str(values[key]) if key in values else match.group(0)

    return _PLACEHOLDER.sub(substitute, template)


def prompt_hash(config: PromptConfig) -> str:
    """SHA-256 over the system prompt and template, for job lineage."""
    material = f"{config.system_prompt or ''}\n{config.user_prompt_template}"
    return hashlib.sha256(material.encode("utf-8")).hexdigest()
