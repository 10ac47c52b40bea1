"""
Intent Router.

Turns masked conversation context into a handler choice. Every failure of
the classifier or of its answer ends in the default handler, so callers
always get a usable result.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .decision_parser import DecisionParseError, UnknownHandlerError, parse_decision
from .handlers import DEFAULT_HANDLER, HandlerName
from .metrics import record_fallback, record_routing_decision
from .resilience import ClassifierTimeout

logger = logging.getLogger(__name__)


class FallbackReason:
    """Why a request fell back to the default handler."""
    CLASSIFIER_TIMEOUT = "classifier_timeout"
    CLASSIFIER_ERROR = "classifier_error"
    PARSE_ERROR = "parse_error"
    UNKNOWN_HANDLER = "unknown_handler"


@dataclass
class RouteResult:
    """Outcome of routing one request."""
    handler_name: HandlerName
    task_context: Optional[str] = None
    reasoning: Optional[str] = None
    fallback: bool = False
    fallback_reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "handler_name": self.handler_name.value,
            "task_context": self.task_context,
            "reasoning": self.reasoning,
            "fallback": self.fallback,
            "fallback_reason": self.fallback_reason,
        }


class IntentRouter:
    """
    Routes masked context to a registered handler.

    Holds no per-request state; one instance serves concurrent requests.
    """

    def __init__(self, classifier: Any, default_handler: HandlerName = DEFAULT_HANDLER):
        """
        Initialize the router.

        Args:
            classifier: Object with async classify(masked_text) -> str
            default_handler: Handler used whenever routing fails
        """
        self.classifier = classifier
        self.default_handler = default_handler

    async def route(self, masked_context: str) -> RouteResult:
        """
        Pick a handler for masked_context.

        Never raises for classifier or parsing failures; those produce a
        fallback result with no task context. Task cancellation still
        propagates.
        """
        try:
            raw_output = await self.classifier.classify(masked_context)
        except asyncio.CancelledError:
            raise
        except ClassifierTimeout as e:
            return self._fallback(FallbackReason.CLASSIFIER_TIMEOUT, str(e))
        except Exception as e:
            return self._fallback(FallbackReason.CLASSIFIER_ERROR, f"{type(e).__name__}: {e}")

        try:
            decision = parse_decision(raw_output)
        except UnknownHandlerError as e:
            return self._fallback(FallbackReason.UNKNOWN_HANDLER, str(e))
        except DecisionParseError as e:
            return self._fallback(FallbackReason.PARSE_ERROR, str(e))
        except Exception as e:
            logger.error(f"Unexpected error parsing classifier output: {type(e).__name__}: {e}")
            return self._fallback(FallbackReason.PARSE_ERROR, type(e).__name__)

        logger.info(
            f"Routed to {decision.handler_name.value}"
            + (f" (reasoning: {decision.reasoning})" if decision.reasoning else "")
        )
        record_routing_decision(decision.handler_name.value, fallback=False)
        return RouteResult(
            handler_name=decision.handler_name,
            task_context=decision.task_context,
            reasoning=decision.reasoning,
        )

    def _fallback(self, reason: str, detail: str) -> RouteResult:
        logger.warning(f"Routing fell back to {self.default_handler.value} ({reason}): {detail}")
        record_fallback(reason)
        record_routing_decision(self.default_handler.value, fallback=True)
        return RouteResult(
            handler_name=self.default_handler,
            task_context=None,
            fallback=True,
            fallback_reason=reason,
        )
