"""
OpenAI LLM Provider.
"""

import logging
from typing import Optional

import openai
from openai import OpenAI

from ..resilience import ClassifierAuthError, ClassifierUnavailable

logger = logging.getLogger(__name__)


class OpenAIProvider:
    """
    OpenAI LLM provider.

    SDK errors are translated into the router's error taxonomy so the
    retry wrapper can tell transient failures from permanent ones.
    """

    DEFAULT_MODEL = "gpt-4o-mini"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_id: str = DEFAULT_MODEL,
        max_tokens: int = 1024,
        temperature: float = 0.3,
        client: Optional[OpenAI] = None,
    ):
        """
        Initialize OpenAI provider.

        Args:
            api_key: OpenAI API key
            model_id: Model ID
            max_tokens: Maximum tokens
            temperature: Generation temperature
            client: Preconfigured client (tests)
        """
        if client is not None:
            self._client = client
        else:
            self._client = OpenAI(api_key=api_key) if api_key else OpenAI()

        self.model_id = model_id
        self.max_tokens = max_tokens
        self.temperature = temperature

        logger.info(f"OpenAI provider initialized: {model_id}")

    def generate(
        self,
        prompt: str,
        system: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None
    ) -> str:
        """
        Generate response from prompt.

        Args:
            prompt: User prompt
            system: System prompt
            max_tokens: Override max tokens
            temperature: Override temperature

        Returns:
            Generated response

        Raises:
            ClassifierUnavailable: Timeout, connection error, rate limit or 5xx
            ClassifierAuthError: Credentials rejected
        """
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        try:
            response = self._client.chat.completions.create(
                model=self.model_id,
                messages=messages,
                max_tokens=max_tokens or self.max_tokens,
                temperature=temperature if temperature is not None else self.temperature
            )
        except (openai.APIConnectionError, openai.RateLimitError, openai.InternalServerError) as e:
            # APITimeoutError is an APIConnectionError
            logger.warning(f"OpenAI transient error: {type(e).__name__}")
            raise ClassifierUnavailable(f"OpenAI unavailable: {type(e).__name__}") from e
        except (openai.AuthenticationError, openai.PermissionDeniedError) as e:
            logger.error(f"OpenAI rejected credentials: {type(e).__name__}")
            raise ClassifierAuthError("OpenAI rejected credentials") from e
        except Exception as e:
            logger.error(f"OpenAI generation failed: {e}")
            raise

        content = response.choices[0].message.content
        return content.strip() if content else ""
