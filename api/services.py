"""
Service initialization and dependency injection for the Intent Router API.

Creates and manages all service instances used by the API.
"""

import logging
from typing import Any, Optional

from config.settings import get_settings, Settings
from privacy import MaskingConfig, PIIMasker
from llm.classifier import IntentClassifierAdapter
from llm.handlers import DEFAULT_HANDLER, HandlerName, resolve_default_handler
from llm.orchestrator import ChatOrchestrator, HandlerDispatcher, LLMHandlerDispatcher
from llm.providers import create_provider
from llm.router import IntentRouter

logger = logging.getLogger(__name__)


class Services:
    """Container for all application services."""

    def __init__(self):
        self.settings: Optional[Settings] = None
        self.masker: Optional[PIIMasker] = None
        self.classifier: Optional[IntentClassifierAdapter] = None
        self.router: Optional[IntentRouter] = None
        self.dispatcher: Optional[HandlerDispatcher] = None
        self.orchestrator: Optional[ChatOrchestrator] = None
        self.default_handler: HandlerName = DEFAULT_HANDLER
        self._initialized = False

    def initialize(
        self,
        settings: Optional[Settings] = None,
        classifier_provider: Any = None,
        dispatcher: Optional[HandlerDispatcher] = None,
    ):
        """
        Initialize all services.

        Args:
            settings: Settings override (defaults to get_settings())
            classifier_provider: LLM provider for the classifier (built from settings if omitted)
            dispatcher: Handler dispatcher (LLM-backed if omitted)
        """
        if self._initialized:
            return

        self.settings = settings or get_settings()
        logger.info(f"Initializing services with provider: {self.settings.llm_provider}")

        try:
            self._init_masker()
            self._init_router(classifier_provider)
            self._init_dispatcher(dispatcher)
            self._init_orchestrator()
            self._initialized = True
            logger.info("All services initialized successfully")
        except Exception as e:
            logger.error(f"Service initialization failed: {e}")
            # Allow API to start even if some services fail
            self._initialized = True
            logger.warning("API starting in degraded mode")

    def _init_masker(self):
        """Initialize the PII masker."""
        self.masker = PIIMasker(MaskingConfig.from_settings(self.settings))

    def _init_router(self, provider: Any):
        """Initialize classifier and router."""
        s = self.settings

        self.default_handler = resolve_default_handler(s.default_handler)
        if self.default_handler.value != s.default_handler:
            logger.warning(
                f"DEFAULT_HANDLER {s.default_handler!r} is not registered, "
                f"using {self.default_handler.value}"
            )

        if provider is None:
            provider = create_provider(
                s, max_tokens=s.classifier_max_tokens, temperature=s.classifier_temperature
            )
        self.classifier = IntentClassifierAdapter.from_settings(
            s, provider, default_handler=self.default_handler
        )
        self.router = IntentRouter(self.classifier, default_handler=self.default_handler)
        logger.info(f"Intent router ready (default handler: {self.default_handler.value})")

    def _init_dispatcher(self, dispatcher: Optional[HandlerDispatcher]):
        """Initialize the handler dispatcher."""
        self.dispatcher = dispatcher or LLMHandlerDispatcher(create_provider(self.settings))

    def _init_orchestrator(self):
        """Initialize the chat orchestrator."""
        self.orchestrator = ChatOrchestrator(
            router=self.router,
            dispatcher=self.dispatcher,
            masker=self.masker,
            history_window=self.settings.history_window,
            resource_id=self.settings.resource_id,
        )
        logger.info("Chat orchestrator ready")

    @property
    def is_ready(self) -> bool:
        return self._initialized and self.orchestrator is not None

    def health(self) -> dict:
        """Return health status of all services."""
        return {
            "initialized": self._initialized,
            "masker": self.masker is not None,
            "router": self.router is not None,
            "dispatcher": self.dispatcher is not None,
            "orchestrator": self.orchestrator is not None,
        }


# Singleton
_services = Services()


def get_services() -> Services:
    """Get the global services instance."""
    return _services


def initialize_services():
    """Initialize all services (called at startup)."""
    _services.initialize()
