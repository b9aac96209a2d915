"""
Unit tests for the OpenAI adapter against a mocked HTTP transport.
"""

import json

import httpx
import pytest

from betterphone.config import Settings
from betterphone.llm.factory import create_llm_gateway
from betterphone.llm.models import (
    ChatMessage,
    ChatRequest,
    LLMAuthenticationError,
    LLMProviderError,
    LLMRateLimitError,
    TranscriptionRequest,
)
from betterphone.llm.openai_adapter import OpenAIAdapter

BASE_URL = "https://llm.test/v1"


def chat_reply(content: str = '{"ok": true}') -> httpx.Response:
    return httpx.Response(
        200,
        json={
            "model": "gpt-4o-mini",
            "choices": [{"message": {"role": "assistant", "content": content}}],
            "usage": {"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15},
        },
    )


class Recorder:
    """Serves scripted responses in order and records requests and sleeps."""

    def __init__(self, *responses: httpx.Response) -> None:
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []
        self.sleeps: list[float] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responses.pop(0)

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)

    def adapter(self, api_key: str = "sk-test", max_retries: int = 2) -> OpenAIAdapter:
        client = httpx.AsyncClient(transport=httpx.MockTransport(self.handler))
        return OpenAIAdapter(
            api_key=api_key,
            base_url=BASE_URL,
            max_retries=max_retries,
            client=client,
            sleep=self.sleep,
        )


def make_request(**kwargs) -> ChatRequest:
    return ChatRequest(messages=[ChatMessage.system("rules"), ChatMessage.user("hello")], **kwargs)


class TestChatCompletion:
    @pytest.mark.asyncio
    async def test_success(self) -> None:
        recorder = Recorder(chat_reply('{"summary": "fine"}'))

        response = await recorder.adapter().chat_completion(make_request(response_format="json_object"))

        assert response.content == '{"summary": "fine"}'
        assert response.model == "gpt-4o-mini"
        assert response.usage["total_tokens"] == 15
        sent = recorder.requests[0]
        assert str(sent.url) == f"{BASE_URL}/chat/completions"
        assert sent.headers["authorization"] == "Bearer sk-test"
        body = json.loads(sent.content)
        assert body["model"] == "gpt-4o-mini"
        assert body["messages"] == [
            {"role": "system", "content": "rules"},
            {"role": "user", "content": "hello"},
        ]
        assert body["response_format"] == {"type": "json_object"}
        assert body["temperature"] == 0.3

    @pytest.mark.asyncio
    async def test_request_model_overrides_default(self) -> None:
        recorder = Recorder(chat_reply())
        await recorder.adapter().chat_completion(make_request(model="gpt-4-turbo-preview", temperature=None))

        body = json.loads(recorder.requests[0].content)
        assert body["model"] == "gpt-4-turbo-preview"
        assert "temperature" not in body
        assert "response_format" not in body

    @pytest.mark.asyncio
    async def test_rate_limit_is_retried_with_retry_after(self) -> None:
        recorder = Recorder(
            httpx.Response(429, headers={"retry-after": "3"}),
            httpx.Response(429),
            chat_reply(),
        )

        response = await recorder.adapter().chat_completion(make_request())

        assert response.content == '{"ok": true}'
        assert recorder.sleeps == [3.0, 1.0]

    @pytest.mark.asyncio
    async def test_zero_retry_after_uses_backoff(self) -> None:
        recorder = Recorder(httpx.Response(429, headers={"retry-after": "0"}), chat_reply())
        await recorder.adapter().chat_completion(make_request())
        assert recorder.sleeps == [0.5]

    @pytest.mark.asyncio
    async def test_rate_limit_exhausts_retries(self) -> None:
        recorder = Recorder(httpx.Response(429), httpx.Response(429))

        with pytest.raises(LLMRateLimitError):
            await recorder.adapter(max_retries=1).chat_completion(make_request())
        assert len(recorder.requests) == 2

    @pytest.mark.asyncio
    async def test_server_errors_become_provider_error(self) -> None:
        recorder = Recorder(httpx.Response(503), httpx.Response(502), httpx.Response(500))

        with pytest.raises(LLMProviderError, match="500"):
            await recorder.adapter().chat_completion(make_request())
        assert recorder.sleeps == [0.5, 1.0]

    @pytest.mark.asyncio
    async def test_unauthorized_is_not_retried(self) -> None:
        recorder = Recorder(httpx.Response(401))

        with pytest.raises(LLMAuthenticationError):
            await recorder.adapter().chat_completion(make_request())
        assert recorder.sleeps == []

    @pytest.mark.asyncio
    async def test_client_error_is_not_retried(self) -> None:
        recorder = Recorder(httpx.Response(400, text="bad request"))

        with pytest.raises(LLMProviderError, match="400"):
            await recorder.adapter().chat_completion(make_request())
        assert len(recorder.requests) == 1

    @pytest.mark.asyncio
    async def test_missing_api_key_fails_without_http_call(self) -> None:
        recorder = Recorder()

        with pytest.raises(LLMAuthenticationError):
            await recorder.adapter(api_key="").chat_completion(make_request())
        assert recorder.requests == []

    @pytest.mark.asyncio
    async def test_malformed_payload(self) -> None:
        recorder = Recorder(httpx.Response(200, json={"choices": []}))

        with pytest.raises(LLMProviderError, match="Malformed"):
            await recorder.adapter().chat_completion(make_request())


class TestTranscription:
    @pytest.mark.asyncio
    async def test_multipart_upload(self) -> None:
        recorder = Recorder(httpx.Response(200, json={"text": "we fight about screens"}))

        result = await recorder.adapter().transcribe(TranscriptionRequest(audio=b"RIFFdata", filename="step-1.webm"))

        assert result.text == "we fight about screens"
        assert result.model == "whisper-1"
        sent = recorder.requests[0]
        assert str(sent.url) == f"{BASE_URL}/audio/transcriptions"
        assert sent.headers["content-type"].startswith("multipart/form-data")
        assert b'name="model"' in sent.content
        assert b"whisper-1" in sent.content
        assert b'name="language"' in sent.content
        assert b'filename="step-1.webm"' in sent.content
        assert b"RIFFdata" in sent.content

    @pytest.mark.asyncio
    async def test_missing_text(self) -> None:
        recorder = Recorder(httpx.Response(200, json={"error": None}))

        with pytest.raises(LLMProviderError):
            await recorder.adapter().transcribe(TranscriptionRequest(audio=b"x"))


class TestFactory:
    def test_gateway_uses_settings(self) -> None:
        settings = Settings(
            openai_api_key="sk-abc",
            openai_chat_model="gpt-test",
            openai_base_url="https://proxy.test/v1/",
        )

        gateway = create_llm_gateway("OpenAI", settings=settings)

        assert isinstance(gateway, OpenAIAdapter)
        assert gateway.default_model == "gpt-test"

    def test_unknown_provider(self) -> None:
        with pytest.raises(LLMProviderError, match="Unsupported"):
            create_llm_gateway("anthropic", settings=Settings())
