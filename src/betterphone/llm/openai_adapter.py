"""
OpenAI HTTP adapter: chat completions and Whisper transcription over httpx.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import Any

import httpx

from betterphone.llm.gateway import BaseLLMAdapter
from betterphone.llm.models import (
    ChatRequest,
    ChatResponse,
    LLMAuthenticationError,
    LLMError,
    LLMProvider,
    LLMProviderError,
    LLMRateLimitError,
    LLMTimeoutError,
    TranscriptionRequest,
    TranscriptionResult,
)
from betterphone.shared.logging import get_logger

logger = get_logger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com/v1"


class OpenAIAdapter(BaseLLMAdapter):
    """
    OpenAI REST adapter.

    Rate limits, timeouts and 5xx replies are retried with exponential
    backoff; authentication and other 4xx errors fail immediately.
    """

    def __init__(
        self,
        api_key: str,
        default_model: str = "gpt-4o-mini",
        timeout_seconds: float = 60.0,
        max_retries: int = 2,
        base_url: str | None = None,
        transcription_model: str = "whisper-1",
        client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        super().__init__(api_key, default_model, timeout_seconds, max_retries)
        self._base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self._chat_endpoint = f"{self._base_url}/chat/completions"
        self._transcription_endpoint = f"{self._base_url}/audio/transcriptions"
        self._transcription_model = transcription_model
        self._client = client
        self._sleep = sleep

    @property
    def provider(self) -> LLMProvider:
        return LLMProvider.OPENAI

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._api_key}"}

    async def chat_completion(self, request: ChatRequest) -> ChatResponse:
        model = request.model or self._default_model
        payload: dict[str, Any] = {
            "model": model,
            "messages": [{"role": m.role.value, "content": m.content} for m in request.messages],
        }
        if request.temperature is not None:
            payload["temperature"] = request.temperature
        if request.max_tokens is not None:
            payload["max_tokens"] = request.max_tokens
        if request.response_format == "json_object":
            payload["response_format"] = {"type": "json_object"}

        started = time.perf_counter()
        data = await self._post(
            self._chat_endpoint,
            correlation_id=request.correlation_id,
            json=payload,
        )
        latency_ms = (time.perf_counter() - started) * 1000

        try:
            content = data["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError) as exc:
            raise LLMProviderError(
                "Malformed chat completion payload",
                provider=self.provider,
                correlation_id=request.correlation_id,
                original_error=exc,
            ) from exc

        logger.info(
            "Chat completion finished",
            extra={
                "model": model,
                "latency_ms": round(latency_ms, 1),
                "llm_correlation_id": request.correlation_id,
            },
        )
        return ChatResponse(
            content=content,
            model=data.get("model", model),
            provider=self.provider,
            usage={k: v for k, v in (data.get("usage") or {}).items() if isinstance(v, int)},
            correlation_id=request.correlation_id,
            latency_ms=latency_ms,
        )

    async def transcribe(self, request: TranscriptionRequest) -> TranscriptionResult:
        model = request.model or self._transcription_model
        form: dict[str, str] = {"model": model}
        if request.language:
            form["language"] = request.language

        started = time.perf_counter()
        data = await self._post(
            self._transcription_endpoint,
            correlation_id=request.correlation_id,
            data=form,
            files={"file": (request.filename, request.audio, request.content_type)},
        )
        latency_ms = (time.perf_counter() - started) * 1000

        text = data.get("text")
        if not isinstance(text, str):
            raise LLMProviderError(
                "Transcription payload has no text",
                provider=self.provider,
                correlation_id=request.correlation_id,
            )
        logger.info(
            "Transcription finished",
            extra={"model": model, "latency_ms": round(latency_ms, 1), "chars": len(text)},
        )
        return TranscriptionResult(text=text, model=model, provider=self.provider, latency_ms=latency_ms)

    async def _post(self, url: str, *, correlation_id: str, **kwargs: Any) -> dict[str, Any]:
        attempt = 0
        while True:
            try:
                return await self._post_once(url, correlation_id=correlation_id, **kwargs)
            except (LLMRateLimitError, LLMTimeoutError, _RetryableServerError) as exc:
                if attempt >= self._max_retries:
                    if isinstance(exc, _RetryableServerError):
                        raise LLMProviderError(
                            str(exc),
                            provider=self.provider,
                            correlation_id=correlation_id,
                        ) from exc
                    raise
                delay = getattr(exc, "retry_after", None) or 0.5 * (2**attempt)
                attempt += 1
                logger.warning(
                    "Retrying OpenAI request",
                    extra={"url": url, "attempt": attempt, "delay_seconds": delay, "error": str(exc)},
                )
                await self._sleep(delay)

    async def _post_once(self, url: str, *, correlation_id: str, **kwargs: Any) -> dict[str, Any]:
        if not self._api_key:
            raise LLMAuthenticationError(
                "OPENAI_API_KEY not configured",
                provider=self.provider,
                correlation_id=correlation_id,
            )
        try:
            if self._client is not None:
                response = await self._client.post(url, headers=self._headers(), timeout=self._timeout_seconds, **kwargs)
            else:
                async with httpx.AsyncClient(timeout=self._timeout_seconds) as client:
                    response = await client.post(url, headers=self._headers(), **kwargs)
        except httpx.TimeoutException as exc:
            raise LLMTimeoutError(
                "OpenAI request timed out",
                provider=self.provider,
                correlation_id=correlation_id,
                original_error=exc,
            ) from exc
        except httpx.HTTPError as exc:
            raise LLMProviderError(
                f"OpenAI request failed: {exc}",
                provider=self.provider,
                correlation_id=correlation_id,
                original_error=exc,
            ) from exc

        status = response.status_code
        if status == 401:
            raise LLMAuthenticationError(
                "OpenAI rejected the API key",
                provider=self.provider,
                correlation_id=correlation_id,
            )
        if status == 429:
            raise LLMRateLimitError(
                "OpenAI rate limit exceeded",
                retry_after=_parse_retry_after(response.headers.get("retry-after")),
                provider=self.provider,
                correlation_id=correlation_id,
            )
        if status >= 500:
            raise _RetryableServerError(f"OpenAI error {status}", provider=self.provider, correlation_id=correlation_id)
        if status != 200:
            raise LLMProviderError(
                f"OpenAI error {status}: {response.text[:500]}",
                provider=self.provider,
                correlation_id=correlation_id,
            )
        return response.json()


class _RetryableServerError(LLMError):
    pass


def _parse_retry_after(value: str | None) -> float | None:
    if not value:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        return None
