"""
Anthropic Provider - LLMProviderPort implementation using the Messages API.

The system message moves to the ``system`` parameter. Tool calls map to
``tool_use`` blocks and tool results to ``tool_result`` blocks; results
for one assistant turn are grouped into a single user message as the
API requires.
"""

import base64
import logging
from typing import List, Optional

from anthropic import (
    Anthropic,
    APIConnectionError,
    APIStatusError,
    APITimeoutError,
    AuthenticationError,
    RateLimitError,
)
from httpx import Timeout

from ...domain.ai.ports import (
    LLMProviderPort,
    LLMMessage,
    LLMResponse,
    ToolCall,
    ToolDefinition,
    Attachment,
    LLMProviderError,
    LLMTimeoutError,
    LLMRateLimitError,
    LLMAuthError,
    LLMServiceError,
)
from .instrumentation import track_call, record_tokens

logger = logging.getLogger(__name__)


def _attachment_block(attachment: Attachment) -> dict:
    data = base64.b64encode(attachment.data).decode("ascii")
    if attachment.mime_type == "application/pdf":
        return {
            "type": "document",
            "source": {"type": "base64", "media_type": "application/pdf", "data": data},
        }
    if attachment.mime_type.startswith("image/"):
        return {
            "type": "image",
            "source": {"type": "base64", "media_type": attachment.mime_type, "data": data},
        }
    raise LLMProviderError(f"Anthropic does not accept attachments of type {attachment.mime_type}")


class AnthropicProvider(LLMProviderPort):
    """Anthropic Claude implementation of LLMProviderPort."""

    name = "anthropic"

    def __init__(self, api_key: Optional[str] = None, timeout: float = 120.0, client: Optional[Anthropic] = None):
        if client is None and not api_key:
            raise ValueError("Anthropic API key not provided. Set ANTHROPIC_API_KEY environment variable.")
        self.client = client or Anthropic(
            api_key=api_key,
            timeout=Timeout(timeout=timeout, read=timeout, write=10.0, connect=5.0),
        )

    def _convert_messages(self, messages: List[LLMMessage], attachments: Optional[List[Attachment]]):
        system = "\n\n".join(m.content for m in messages if m.role == "system" and m.content)
        converted = []

        for m in messages:
            if m.role == "system":
                continue
            if m.role == "tool":
                block = {"type": "tool_result", "tool_use_id": m.tool_call_id or "", "content": m.content}
                previous = converted[-1] if converted else None
                if previous and previous["role"] == "user" and isinstance(previous["content"], list) \
                        and all(b.get("type") == "tool_result" for b in previous["content"]):
                    previous["content"].append(block)
                else:
                    converted.append({"role": "user", "content": [block]})
            elif m.role == "assistant" and m.tool_calls:
                blocks = [{"type": "text", "text": m.content}] if m.content else []
                blocks.extend(
                    {"type": "tool_use", "id": tc.id, "name": tc.name, "input": tc.arguments}
                    for tc in m.tool_calls
                )
                converted.append({"role": "assistant", "content": blocks})
            else:
                converted.append({"role": m.role, "content": m.content})

        if attachments:
            last_user = next(
                (m for m in reversed(converted) if m["role"] == "user" and isinstance(m["content"], str)),
                None,
            )
            if last_user is None:
                last_user = {"role": "user", "content": ""}
                converted.append(last_user)
            blocks = [_attachment_block(a) for a in attachments]
            if last_user["content"]:
                blocks.append({"type": "text", "text": last_user["content"]})
            last_user["content"] = blocks

        return system, converted

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
        system, converted = self._convert_messages(messages, attachments)
        params = {
            "model": model,
            "max_tokens": max_tokens,
            "messages": converted,
            "temperature": temperature,
        }
        if system:
            params["system"] = system
        if tools:
            params["tools"] = [
                {"name": t.name, "description": t.description, "input_schema": t.parameters}
                for t in tools
            ]

        try:
            with track_call(self.name):
                response = self.client.messages.create(**params)
        except APITimeoutError as e:
            raise LLMTimeoutError(f"Anthropic API timeout: {str(e)}")
        except RateLimitError as e:
            raise LLMRateLimitError(f"Anthropic rate limit exceeded: {str(e)}")
        except AuthenticationError as e:
            raise LLMAuthError(f"Anthropic authentication failed: {str(e)}")
        except (APIConnectionError, APIStatusError) as e:
            raise LLMServiceError(f"Anthropic service error: {str(e)}")

        texts = []
        tool_calls = []
        for block in response.content:
            if block.type == "text":
                texts.append(block.text)
            elif block.type == "tool_use":
                tool_calls.append(ToolCall(id=block.id, name=block.name, arguments=dict(block.input or {})))

        tokens_in = response.usage.input_tokens if response.usage else 0
        tokens_out = response.usage.output_tokens if response.usage else 0
        record_tokens(self.name, tokens_in, tokens_out)

        return LLMResponse(
            content="".join(texts) if texts else None,
            tool_calls=tool_calls,
            tokens_in=tokens_in,
            tokens_out=tokens_out,
            finish_reason=response.stop_reason or "end_turn",
            provider=self.name,
            model=model,
        )
