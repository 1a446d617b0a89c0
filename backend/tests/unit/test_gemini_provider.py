"""Unit tests for the Gemini provider and provider factory

Tests cover:
- Request body: system instruction, roles, attachments, tools, JSON mode
- Response parsing: text, function calls, token usage
- HTTP status to LLM error mapping
- Factory lookup and caching
"""

import base64
import json

import httpx
import pytest

from docspace.config import Settings
from docspace.domain.ai.ports import (
    Attachment,
    LLMAuthError,
    LLMInvalidResponseError,
    LLMMessage,
    LLMRateLimitError,
    LLMServiceError,
    LLMTimeoutError,
    ToolCall,
    ToolDefinition,
)
from docspace.infrastructure.ai.factory import LLMProviderFactory
from docspace.infrastructure.ai.gemini_provider import GeminiProvider

MODEL = "gemini-test"
BASE_URL = "https://gemini.test"


def text_response(text, prompt_tokens=12, output_tokens=7):
    return {
        "candidates": [{"content": {"parts": [{"text": text}]}, "finishReason": "STOP"}],
        "usageMetadata": {"promptTokenCount": prompt_tokens, "candidatesTokenCount": output_tokens},
    }


class Recorder:
    """MockTransport handler returning a fixed response and keeping requests"""

    def __init__(self, status_code=200, body=None, raises=None):
        self.status_code = status_code
        self.body = body if body is not None else text_response("ok")
        self.raises = raises
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        if self.raises:
            raise self.raises
        return httpx.Response(self.status_code, json=self.body)

    @property
    def last_body(self):
        return json.loads(self.requests[-1].content)


def make_provider(recorder):
    client = httpx.Client(transport=httpx.MockTransport(recorder))
    return GeminiProvider(api_key="test-key", base_url=BASE_URL + "/", client=client)


class TestRequestBuilding:
    def test_url_and_headers(self):
        recorder = Recorder()
        make_provider(recorder).complete([LLMMessage("user", "hi")], model=MODEL)

        request = recorder.requests[0]
        assert str(request.url) == f"{BASE_URL}/v1beta/models/{MODEL}:generateContent"
        assert request.headers["x-goog-api-key"] == "test-key"

    def test_system_messages_become_instruction(self):
        recorder = Recorder()
        make_provider(recorder).complete(
            [LLMMessage("system", "Be brief"), LLMMessage("user", "hi"), LLMMessage("assistant", "hello")],
            model=MODEL,
            temperature=0.2,
            max_tokens=50,
        )

        body = recorder.last_body
        assert body["systemInstruction"] == {"parts": [{"text": "Be brief"}]}
        assert [c["role"] for c in body["contents"]] == ["user", "model"]
        assert body["generationConfig"] == {"temperature": 0.2, "maxOutputTokens": 50}

    def test_attachments_join_last_user_message(self):
        recorder = Recorder()
        make_provider(recorder).complete(
            [LLMMessage("user", "Extract this")],
            model=MODEL,
            attachments=[Attachment("application/pdf", b"%PDF-1.4")],
        )

        parts = recorder.last_body["contents"][0]["parts"]
        assert parts[0] == {"text": "Extract this"}
        assert parts[1]["inline_data"]["mime_type"] == "application/pdf"
        assert base64.b64decode(parts[1]["inline_data"]["data"]) == b"%PDF-1.4"

    def test_json_mode_sets_response_mime_type(self):
        recorder = Recorder()
        make_provider(recorder).complete([LLMMessage("user", "x")], model=MODEL, json_mode=True)

        assert recorder.last_body["generationConfig"]["responseMimeType"] == "application/json"

    def test_tools_become_function_declarations(self):
        recorder = Recorder()
        tool = ToolDefinition(
            name="get_weather",
            description="Weather lookup",
            parameters={"type": "object", "properties": {"location": {"type": "string"}}, "required": ["location"]},
        )

        make_provider(recorder).complete([LLMMessage("user", "x")], model=MODEL, tools=[tool], json_mode=True)

        body = recorder.last_body
        declaration = body["tools"][0]["functionDeclarations"][0]
        assert declaration["name"] == "get_weather"
        assert declaration["parameters"]["required"] == ["location"]
        assert "responseMimeType" not in body["generationConfig"]

    def test_tool_round_trip_messages(self):
        recorder = Recorder()
        make_provider(recorder).complete(
            [
                LLMMessage("user", "weather?"),
                LLMMessage("assistant", "", tool_calls=[ToolCall("c1", "get_weather", {"location": "Paris"})]),
                LLMMessage("tool", '{"temp": 20}', tool_call_id="c1", name="get_weather"),
            ],
            model=MODEL,
        )

        contents = recorder.last_body["contents"]
        assert contents[1]["parts"] == [{"functionCall": {"name": "get_weather", "args": {"location": "Paris"}}}]
        assert contents[2]["parts"][0]["functionResponse"]["name"] == "get_weather"


class TestResponseParsing:
    def test_text_and_usage(self):
        response = make_provider(Recorder(body=text_response("Hello", 30, 4))).complete(
            [LLMMessage("user", "hi")], model=MODEL
        )

        assert response.content == "Hello"
        assert response.tokens_in == 30
        assert response.tokens_out == 4
        assert response.tokens_used == 34
        assert response.provider == "gemini"
        assert response.tool_calls == []

    def test_function_call(self):
        body = {"candidates": [{"content": {"parts": [
            {"functionCall": {"name": "update_plan", "args": {"action": "complete"}}},
        ]}}]}

        response = make_provider(Recorder(body=body)).complete([LLMMessage("user", "x")], model=MODEL)

        assert response.content is None
        assert response.tool_calls[0].name == "update_plan"
        assert response.tool_calls[0].arguments == {"action": "complete"}
        assert response.tool_calls[0].id.startswith("call_")

    def test_no_candidates(self):
        with pytest.raises(LLMInvalidResponseError):
            make_provider(Recorder(body={"candidates": []})).complete([LLMMessage("user", "x")], model=MODEL)


class TestErrorMapping:
    @pytest.mark.parametrize("status_code,error", [
        (429, LLMRateLimitError),
        (401, LLMAuthError),
        (403, LLMAuthError),
        (400, LLMServiceError),
        (503, LLMServiceError),
    ])
    def test_status_codes(self, status_code, error):
        provider = make_provider(Recorder(status_code=status_code, body={"error": "x"}))
        with pytest.raises(error):
            provider.complete([LLMMessage("user", "x")], model=MODEL)

    def test_timeout(self):
        provider = make_provider(Recorder(raises=httpx.ReadTimeout("slow")))
        with pytest.raises(LLMTimeoutError):
            provider.complete([LLMMessage("user", "x")], model=MODEL)

    def test_connection_error(self):
        provider = make_provider(Recorder(raises=httpx.ConnectError("down")))
        with pytest.raises(LLMServiceError):
            provider.complete([LLMMessage("user", "x")], model=MODEL)

    def test_missing_api_key(self):
        with pytest.raises(ValueError, match="GEMINI_API_KEY"):
            GeminiProvider(api_key=None)


class TestProviderFactory:
    def test_unknown_provider(self):
        with pytest.raises(ValueError, match="Unsupported provider"):
            LLMProviderFactory(Settings()).get("bogus")

    def test_gemini_instance_is_cached(self):
        factory = LLMProviderFactory(Settings(GEMINI_API_KEY="k"))

        provider = factory.get("gemini")

        assert isinstance(provider, GeminiProvider)
        assert factory.get("gemini") is provider
