"""
Gemini Provider - LLMProviderPort implementation over the generateContent REST API.

Requests go to ``{base_url}/v1beta/models/{model}:generateContent`` with
the key in the ``x-goog-api-key`` header. Attachments are sent as
``inline_data`` parts; tools as ``functionDeclarations``.
"""

import base64
import json
import logging
import uuid
from typing import List, Optional

import httpx

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

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com"


def _function_declaration(tool: ToolDefinition) -> dict:
    parameters = tool.parameters or {}
    return {
        "name": tool.name,
        "description": tool.description,
        "parameters": {
            "type": "object",
            "properties": parameters.get("properties", {}),
            "required": parameters.get("required", []),
        },
    }


class GeminiProvider(LLMProviderPort):
    """Google Gemini implementation of LLMProviderPort."""

    name = "gemini"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 120.0,
        client: Optional[httpx.Client] = None,
    ):
        if not api_key:
            raise ValueError("Gemini API key not provided. Set GEMINI_API_KEY environment variable.")
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.client = client or httpx.Client(timeout=timeout)

    def _build_contents(self, messages: List[LLMMessage], attachments: Optional[List[Attachment]]) -> list:
        contents = []
        for m in messages:
            if m.role == "system":
                continue
            if m.role == "tool":
                contents.append({
                    "role": "user",
                    "parts": [{
                        "functionResponse": {
                            "name": m.name or "tool",
                            "response": {"content": m.content},
                        }
                    }],
                })
            elif m.role == "assistant":
                parts = [{"text": m.content}] if m.content else []
                parts.extend({"functionCall": {"name": tc.name, "args": tc.arguments}} for tc in m.tool_calls or [])
                contents.append({"role": "model", "parts": parts or [{"text": ""}]})
            else:
                contents.append({"role": "user", "parts": [{"text": m.content}]})

        if attachments:
            last_user = next((c for c in reversed(contents) if c["role"] == "user"), None)
            if last_user is None:
                last_user = {"role": "user", "parts": []}
                contents.append(last_user)
            for attachment in attachments:
                last_user["parts"].append({
                    "inline_data": {
                        "mime_type": attachment.mime_type,
                        "data": base64.b64encode(attachment.data).decode("ascii"),
                    }
                })

        return contents

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
        body = {
            "contents": self._build_contents(messages, attachments),
            "generationConfig": {
                "temperature": temperature,
                "maxOutputTokens": max_tokens,
            },
        }
        system = "\n\n".join(m.content for m in messages if m.role == "system" and m.content)
        if system:
            body["systemInstruction"] = {"parts": [{"text": system}]}
        if tools:
            body["tools"] = [{"functionDeclarations": [_function_declaration(t) for t in tools]}]
        if json_mode and not tools:
            body["generationConfig"]["responseMimeType"] = "application/json"

        url = f"{self.base_url}/v1beta/models/{model}:generateContent"
        try:
            with track_call(self.name):
                response = self.client.post(
                    url,
                    headers={"Content-Type": "application/json", "x-goog-api-key": self.api_key},
                    json=body,
                )
                if response.status_code == 429:
                    raise LLMRateLimitError(f"Gemini rate limit exceeded: {response.text}")
                if response.status_code in (401, 403):
                    raise LLMAuthError(f"Gemini authentication failed: {response.status_code}")
                if response.status_code >= 400:
                    raise LLMServiceError(f"Gemini API error: {response.status_code} - {response.text}")
        except httpx.TimeoutException as e:
            raise LLMTimeoutError(f"Gemini API timeout: {str(e)}")
        except httpx.HTTPError as e:
            raise LLMServiceError(f"Gemini service error: {str(e)}")

        try:
            result = response.json()
        except json.JSONDecodeError:
            raise LLMInvalidResponseError("Gemini returned a non-JSON response")

        candidates = result.get("candidates") or []
        if not candidates:
            raise LLMInvalidResponseError("No content returned from Gemini")
        candidate = candidates[0]

        texts = []
        tool_calls = []
        for part in (candidate.get("content") or {}).get("parts", []):
            if "text" in part:
                texts.append(part["text"])
            elif "functionCall" in part:
                call = part["functionCall"]
                tool_calls.append(
                    ToolCall(
                        id=f"call_{uuid.uuid4().hex[:12]}",
                        name=call.get("name", ""),
                        arguments=call.get("args") or {},
                    )
                )

        usage = result.get("usageMetadata") or {}
        tokens_in = usage.get("promptTokenCount", 0)
        tokens_out = usage.get("candidatesTokenCount", 0)
        record_tokens(self.name, tokens_in, tokens_out)

        return LLMResponse(
            content="".join(texts) if texts else None,
            tool_calls=tool_calls,
            tokens_in=tokens_in,
            tokens_out=tokens_out,
            finish_reason=candidate.get("finishReason", "STOP"),
            provider=self.name,
            model=model,
        )
