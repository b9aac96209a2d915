"""
LLM gateway interface definition.
"""

from abc import ABC, abstractmethod
from typing import Protocol, runtime_checkable

from betterphone.llm.models import (
    ChatRequest,
    ChatResponse,
    LLMProvider,
    TranscriptionRequest,
    TranscriptionResult,
)


@runtime_checkable
class LLMGateway(Protocol):
    """Protocol for LLM gateway implementations.

    Services depend on this protocol only, so tests substitute an
    in-memory fake.
    """

    @property
    def provider(self) -> LLMProvider:
        """Get the LLM provider type."""
        ...

    async def chat_completion(self, request: ChatRequest) -> ChatResponse:
        """Execute a chat completion request.

        Raises:
            LLMTimeoutError: If the request times out.
            LLMRateLimitError: If rate limited by the provider.
            LLMAuthenticationError: If authentication fails.
            LLMProviderError: For other provider errors.
        """
        ...

    async def transcribe(self, request: TranscriptionRequest) -> TranscriptionResult:
        """Transcribe an audio file to text."""
        ...


class BaseLLMAdapter(ABC):
    """Base class for LLM adapter implementations."""

    def __init__(
        self,
        api_key: str,
        default_model: str,
        timeout_seconds: float = 30.0,
        max_retries: int = 3,
    ) -> None:
        """Initialize the adapter.

        Args:
            api_key: API key for the provider.
            default_model: Default chat model.
            timeout_seconds: Request timeout in seconds.
            max_retries: Retries for rate-limited, timed out or 5xx requests.
        """
        self._api_key = api_key
        self._default_model = default_model
        self._timeout_seconds = timeout_seconds
        self._max_retries = max_retries

    @property
    @abstractmethod
    def provider(self) -> LLMProvider:
        raise NotImplementedError

    @property
    def default_model(self) -> str:
        return self._default_model

    @abstractmethod
    async def chat_completion(self, request: ChatRequest) -> ChatResponse:
        raise NotImplementedError

    @abstractmethod
    async def transcribe(self, request: TranscriptionRequest) -> TranscriptionResult:
        raise NotImplementedError
