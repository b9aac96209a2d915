"""
Factory for creating LLM gateway instances.
"""

from betterphone.config import Settings, get_settings
from betterphone.llm.gateway import LLMGateway
from betterphone.llm.models import LLMProvider, LLMProviderError
from betterphone.llm.openai_adapter import OpenAIAdapter
from betterphone.shared.logging import get_logger

logger = get_logger(__name__)


def create_llm_gateway(
    provider: LLMProvider | str = LLMProvider.OPENAI,
    settings: Settings | None = None,
) -> LLMGateway:
    """Create an LLM gateway for the given provider.

    Args:
        provider: LLM provider name or enum.
        settings: Settings override; defaults to the application settings.

    Raises:
        LLMProviderError: If the provider is unsupported.
    """
    settings = settings or get_settings()

    if isinstance(provider, str):
        try:
            provider = LLMProvider(provider.lower())
        except ValueError:
            raise LLMProviderError(
                f"Unsupported LLM provider: {provider}. "
                f"Supported providers: {[p.value for p in LLMProvider]}"
            ) from None

    if not settings.openai_api_key:
        logger.warning("OPENAI_API_KEY not configured; LLM calls will fail")

    logger.info(
        "Creating LLM gateway",
        extra={
            "provider": provider.value,
            "model": settings.openai_chat_model,
            "timeout_seconds": settings.openai_timeout_seconds,
        },
    )

    return OpenAIAdapter(
        api_key=settings.openai_api_key,
        default_model=settings.openai_chat_model,
        timeout_seconds=settings.openai_timeout_seconds,
        max_retries=settings.openai_max_retries,
        base_url=settings.openai_base_url,
        transcription_model=settings.openai_transcription_model,
    )


def get_llm_gateway() -> LLMGateway:
    """FastAPI dependency; overridden in tests with a fake gateway."""
    return create_llm_gateway()
