"""
LLM Provider implementations.
"""

from typing import Optional, Union

from .bedrock import BedrockProvider
from .openai_provider import OpenAIProvider

Provider = Union[BedrockProvider, OpenAIProvider]


def create_provider(
    settings,
    max_tokens: Optional[int] = None,
    temperature: Optional[float] = None,
) -> Provider:
    """
    Build the provider selected by settings.llm_provider.

    Args:
        settings: Application settings
        max_tokens: Default max tokens for this provider instance
        temperature: Default temperature for this provider instance
    """
    max_tokens = max_tokens or settings.handler_max_tokens
    temperature = settings.handler_temperature if temperature is None else temperature

    if settings.is_bedrock:
        return BedrockProvider(
            model_id=settings.bedrock_llm_model_id,
            region=settings.aws_region,
            max_tokens=max_tokens,
            temperature=temperature,
        )
    if settings.is_openai:
        return OpenAIProvider(
            api_key=settings.openai_api_key,
            model_id=settings.openai_llm_model,
            max_tokens=max_tokens,
            temperature=temperature,
        )
    raise ValueError(f"Unsupported LLM provider: {settings.llm_provider}")


__all__ = ["BedrockProvider", "OpenAIProvider", "Provider", "create_provider"]
