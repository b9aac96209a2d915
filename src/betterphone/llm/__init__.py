"""
LLM gateway for chat completion and speech-to-text.
"""

from betterphone.llm.factory import create_llm_gateway, get_llm_gateway
from betterphone.llm.gateway import LLMGateway
from betterphone.llm.models import (
    ChatMessage,
    ChatRequest,
    ChatResponse,
    LLMError,
    LLMProvider,
    MessageRole,
    TranscriptionRequest,
    TranscriptionResult,
)
from betterphone.llm.openai_adapter import OpenAIAdapter
from betterphone.llm.parser import parse_json_object

__all__ = [
    "ChatMessage",
    "ChatRequest",
    "ChatResponse",
    "LLMError",
    "LLMGateway",
    "LLMProvider",
    "MessageRole",
    "OpenAIAdapter",
    "TranscriptionRequest",
    "TranscriptionResult",
    "create_llm_gateway",
    "get_llm_gateway",
    "parse_json_object",
]
