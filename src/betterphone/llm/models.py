"""
Data models for the LLM gateway.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal
from uuid import uuid4

from pydantic import BaseModel, Field


class LLMProvider(str, Enum):
    """Supported LLM providers."""

    OPENAI = "openai"


class MessageRole(str, Enum):
    """Message roles in a conversation."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class ChatMessage(BaseModel):
    """A single message in a chat conversation."""

    role: MessageRole
    content: str

    model_config = {"frozen": True}

    @classmethod
    def system(cls, content: str) -> "ChatMessage":
        return cls(role=MessageRole.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> "ChatMessage":
        return cls(role=MessageRole.USER, content=content)


class ChatRequest(BaseModel):
    """Request for chat completion."""

    messages: list[ChatMessage]
    model: str | None = None
    temperature: float | None = 0.3
    max_tokens: int | None = None
    response_format: Literal["text", "json_object"] = "text"
    correlation_id: str = Field(default_factory=lambda: str(uuid4()))


class ChatResponse(BaseModel):
    """Response from chat completion."""

    content: str
    model: str
    provider: LLMProvider
    usage: dict[str, int] = Field(default_factory=dict)
    correlation_id: str
    latency_ms: float
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class TranscriptionRequest(BaseModel):
    """Speech-to-text request for one audio file."""

    audio: bytes
    filename: str = "audio.webm"
    content_type: str = "audio/webm"
    model: str | None = None
    language: str | None = "en"
    correlation_id: str = Field(default_factory=lambda: str(uuid4()))


class TranscriptionResult(BaseModel):
    text: str
    model: str
    provider: LLMProvider
    latency_ms: float


class LLMError(Exception):
    """Base exception for LLM gateway errors."""

    def __init__(
        self,
        message: str,
        correlation_id: str | None = None,
        provider: LLMProvider | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.correlation_id = correlation_id
        self.provider = provider
        self.original_error = original_error


class LLMTimeoutError(LLMError):
    """Timeout error for LLM requests."""

    pass


class LLMRateLimitError(LLMError):
    """Rate limit error for LLM requests."""

    def __init__(
        self,
        message: str,
        retry_after: float | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.retry_after = retry_after


class LLMAuthenticationError(LLMError):
    """Authentication error for LLM requests."""

    pass


class LLMProviderError(LLMError):
    """Generic provider error for LLM requests."""

    pass


class LLMResponseFormatError(LLMError):
    """The model reply could not be parsed into the requested shape."""

    pass
