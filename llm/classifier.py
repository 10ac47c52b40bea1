"""
Intent Classifier Adapter.

Sends the masked routing context to the configured LLM provider and returns
its raw text. Parsing and validation happen in decision_parser; failure
handling beyond timeout/retry happens in the router.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Optional

from .handlers import DEFAULT_HANDLER, HandlerName
from .metrics import record_classifier_latency
from .prompt_templates import PromptTemplates
from .resilience import BackoffPolicy, with_retry, with_timeout

logger = logging.getLogger(__name__)


class IntentClassifierAdapter:
    """
    Single-call intent classifier.

    The provider is any object with a synchronous
    generate(prompt, system=None, max_tokens=None, temperature=None) method.
    Each attempt runs in a worker thread under a timeout; the whole call is
    retried on retryable errors.
    """

    def __init__(
        self,
        provider: Any,
        system_prompt: Optional[str] = None,
        timeout_seconds: float = 15.0,
        max_attempts: int = 3,
        backoff: Optional[BackoffPolicy] = None,
        max_tokens: int = 512,
        temperature: float = 0.1,
        default_handler: HandlerName = DEFAULT_HANDLER,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """
        Initialize the classifier adapter.

        Args:
            provider: LLM provider
            system_prompt: Override for the classifier system prompt
            timeout_seconds: Budget per attempt
            max_attempts: Total attempts including the first
            backoff: Delay policy between attempts
            max_tokens: Max tokens for the classifier answer
            temperature: Sampling temperature
            default_handler: Handler the prompt names as the catch-all
            sleep: Sleep function used between retries
        """
        self.provider = provider
        self.system_prompt = system_prompt or PromptTemplates.get_classifier_prompt(default_handler)
        self.timeout_seconds = timeout_seconds
        self.max_attempts = max_attempts
        self.backoff = backoff or BackoffPolicy()
        self.max_tokens = max_tokens
        self.temperature = temperature
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings, provider: Any, default_handler: HandlerName = DEFAULT_HANDLER):
        return cls(
            provider=provider,
            timeout_seconds=settings.classifier_timeout_seconds,
            max_attempts=settings.retry_max_attempts,
            backoff=BackoffPolicy.from_settings(settings),
            max_tokens=settings.classifier_max_tokens,
            temperature=settings.classifier_temperature,
            default_handler=default_handler,
        )

    async def classify(self, masked_text: str) -> str:
        """
        Ask the model which handler fits masked_text.

        Returns:
            Raw model output (expected to contain a JSON decision)

        Raises:
            ClassifierError subclasses or any provider error once retries
            are exhausted
        """
        start = time.time()
        try:
            raw = await with_retry(
                lambda: self._attempt(masked_text),
                label="intent classifier",
                max_attempts=self.max_attempts,
                backoff=self.backoff,
                sleep=self._sleep,
            )
        except Exception:
            record_classifier_latency(time.time() - start, "error")
            raise

        duration = time.time() - start
        record_classifier_latency(duration, "ok")
        logger.debug(f"Classifier answered in {duration * 1000:.0f}ms")
        return raw

    async def _attempt(self, masked_text: str) -> str:
        return await with_timeout(
            asyncio.to_thread(
                self.provider.generate,
                masked_text,
                system=self.system_prompt,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            ),
            self.timeout_seconds,
            label="intent classifier",
        )
