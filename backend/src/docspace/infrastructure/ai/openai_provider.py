"""
OpenAI Provider - LLMProviderPort implementation using the Chat Completions API.

Tools are passed as function tools; PDFs are attached as ``file`` content
parts and images as ``image_url`` parts on the last user message.
"""

import base64
import json
import logging
from typing import List, Optional

from openai import OpenAI, APIError, RateLimitError, APIConnectionError, APITimeoutError, AuthenticationError

from ...domain.ai.ports import (
    LLMProviderPort,
    LLMMessage,
    LLMResponse,
    ToolCall,
    ToolDefinition,
    Attachment,
    LLMTimeoutError,
    LLMRateLimitError,
    LLMAuthError,
    LLMServiceError,
    LLMInvalidResponseError,
)
from .instrumentation import track_call, record_tokens

logger = logging.getLogger(__name__)


def _data_url(attachment: Attachment) -> str:
    return f"data:{attachment.mime_type};base64,{base64.b64encode(attachment.data).decode('ascii')}"


class OpenAIProvider(LLMProviderPort):
    """
    OpenAI implementation of LLMProviderPort.

    Uses the OpenAI Python SDK (v1.x+).
    """

    name = "openai"

    def __init__(self, api_key: Optional[str] = None, timeout: float = 120.0, client: Optional[OpenAI] = None):
        """
        Args:
            api_key: OpenAI API key
            timeout: Request timeout in seconds
            client: Preconfigured SDK client (tests)

        Raises:
            ValueError: If no API key and no client is provided
        """
        if client is None and not api_key:
            raise ValueError("OpenAI API key not provided. Set OPENAI_API_KEY environment variable.")
        self.client = client or OpenAI(api_key=api_key, timeout=timeout)

    def _convert_messages(self, messages: List[LLMMessage], attachments: Optional[List[Attachment]]) -> list:
        converted = []
        for m in messages:
            if m.role == "tool":
                converted.append({"role": "tool", "content": m.content, "tool_call_id": m.tool_call_id or ""})
            elif m.role == "assistant" and m.tool_calls:
                converted.append({
                    "role": "assistant",
                    "content": m.content or None,
                    "tool_calls": [
                        {
                            "id": tc.id,
                            "type": "function",
                            "function": {"name": tc.name, "arguments": json.dumps(tc.arguments)},
                        }
                        for tc in m.tool_calls
                    ],
                })
            else:
                converted.append({"role": m.role, "content": m.content})

        if attachments:
            last_user = next((m for m in reversed(converted) if m["role"] == "user"), None)
            if last_user is None:
                last_user = {"role": "user", "content": ""}
                converted.append(last_user)
            parts = [{"type": "text", "text": last_user["content"]}]
            for attachment in attachments:
                if attachment.mime_type.startswith("image/"):
                    parts.append({"type": "image_url", "image_url": {"url": _data_url(attachment)}})
                else:
                    parts.append({
                        "type": "file",
                        "file": {
                            "filename": attachment.file_name or "document",
                            "file_data": _data_url(attachment),
                        },
                    })
            last_user["content"] = parts

        return converted

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
        params = {
            "model": model,
            "messages": self._convert_messages(messages, attachments),
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if tools:
            params["tools"] = [
                {
                    "type": "function",
                    "function": {"name": t.name, "description": t.description, "parameters": t.parameters},
                }
                for t in tools
            ]
        if json_mode and not tools:
            params["response_format"] = {"type": "json_object"}

        try:
            with track_call(self.name):
                response = self.client.chat.completions.create(**params)
        except APITimeoutError as e:
            raise LLMTimeoutError(f"OpenAI API timeout: {str(e)}")
        except RateLimitError as e:
            raise LLMRateLimitError(f"OpenAI rate limit exceeded: {str(e)}")
        except AuthenticationError as e:
            raise LLMAuthError(f"OpenAI authentication failed: {str(e)}")
        except (APIConnectionError, APIError) as e:
            raise LLMServiceError(f"OpenAI service error: {str(e)}")

        if not response.choices:
            raise LLMInvalidResponseError("No response from OpenAI")
        choice = response.choices[0]

        tool_calls = []
        for tc in choice.message.tool_calls or []:
            try:
                arguments = json.loads(tc.function.arguments or "{}")
            except json.JSONDecodeError:
                logger.warning(f"OpenAI returned non-JSON arguments for tool {tc.function.name}")
                arguments = {}
            tool_calls.append(ToolCall(id=tc.id, name=tc.function.name, arguments=arguments))

        usage = response.usage
        tokens_in = usage.prompt_tokens if usage else 0
        tokens_out = usage.completion_tokens if usage else 0
        record_tokens(self.name, tokens_in, tokens_out)

        return LLMResponse(
            content=choice.message.content,
            tool_calls=tool_calls,
            tokens_in=tokens_in,
            tokens_out=tokens_out,
            finish_reason=choice.finish_reason or "stop",
            provider=self.name,
            model=model,
        )
