"""
Chat Orchestrator for the Intent Router.

Runs one request through the routing pipeline:

1. Resolve the session (thread id)
2. Build and mask the classifier input
3. Route on masked text
4. Apply model override and inject the unmasked task context
5. Dispatch the original prompt to the chosen handler

The PII mapping lives only inside process() for the duration of one request.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Protocol

from privacy import PIICategory, PIIMasker, extract_masked_tokens, unmask

from .context import (
    DEFAULT_HISTORY_WINDOW,
    ConversationTurn,
    build_classifier_input,
    build_final_prompt,
    extract_message_content,
    extract_user_prompt,
    inject_context,
)
from .handlers import HandlerName
from .metrics import record_pii_masked
from .prompt_templates import PromptTemplates
from .router import IntentRouter
from .session import DEFAULT_RESOURCE_ID, THREAD_ID_KEYS, resolve_session

logger = logging.getLogger(__name__)

PROMPT_KEYS = ("prompt", "text", "input")


@dataclass
class ChatRequest:
    """Request for a routed chat completion."""
    prompt: str
    history: List[ConversationTurn] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)
    model_provider: Optional[str] = None
    model: Optional[str] = None

    @classmethod
    def from_payload(cls, body: Mapping[str, Any]) -> "ChatRequest":
        """
        Build a request from an inbound JSON body.

        Accepts an explicit prompt/text/input field, or an AI-SDK style
        messages array whose last user message is the prompt. Optional
        conversationHistory, thread id fields and modelProvider/model.

        Raises:
            ValueError: No prompt could be found
        """
        if not isinstance(body, Mapping):
            raise ValueError("Request body must be a JSON object")

        prompt = next(
            (body[k] for k in PROMPT_KEYS if isinstance(body.get(k), str) and body[k].strip()),
            None,
        )

        history: List[ConversationTurn] = []
        conversation_history = body.get("conversationHistory")
        if isinstance(conversation_history, list):
            history.extend(
                ConversationTurn.from_message(m) for m in conversation_history if isinstance(m, dict)
            )

        messages = body.get("messages")
        if isinstance(messages, list):
            messages = [m for m in messages if isinstance(m, dict)]
            derived = not prompt
            if derived:
                prompt = extract_user_prompt(messages)
            history.extend(
                ConversationTurn.from_message(m) for m in _without_current(messages, prompt, derived)
            )

        if not prompt or not prompt.strip():
            raise ValueError("Missing prompt: provide prompt, text, input or a user message")

        metadata = {
            key: body[key]
            for aliases in THREAD_ID_KEYS
            for key in aliases
            if body.get(key) is not None
        }

        return cls(
            prompt=prompt,
            history=history,
            metadata=metadata,
            model_provider=body.get("modelProvider") or None,
            model=body.get("model") or None,
        )


def _without_current(
    messages: List[Dict[str, Any]], prompt: Optional[str], derived: bool
) -> List[Dict[str, Any]]:
    """Drop the last user message when it is the prompt being routed."""
    for i in range(len(messages) - 1, -1, -1):
        if messages[i].get("role") == "user":
            same_text = prompt is not None and extract_message_content(messages[i]).strip() == prompt.strip()
            if derived or same_text:
                return messages[:i] + messages[i + 1:]
            break
    return messages


@dataclass
class ChatResponse:
    """Response from a routed chat completion."""
    response: str
    handler: str
    thread_id: str
    task_context: Optional[str] = None
    fallback: bool = False
    processing_time_ms: float = 0.0
    timestamp: str = field(default_factory=lambda: datetime.utcnow().isoformat())

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "response": self.response,
            "handler": self.handler,
            "thread_id": self.thread_id,
            "task_context": self.task_context,
            "fallback": self.fallback,
            "processing_time_ms": self.processing_time_ms,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class DispatchRequest:
    """What a handler receives."""
    handler_name: HandlerName
    prompt: str
    thread_id: str
    resource_id: str


class HandlerDispatcher(Protocol):
    """Delivers a routed prompt to a downstream handler."""

    async def dispatch(self, request: DispatchRequest) -> str:
        ...


class LLMHandlerDispatcher:
    """
    Dispatcher that answers with an LLM under a per-handler system prompt.

    Stands in for dedicated handler services.
    """

    def __init__(self, provider: Any):
        self.provider = provider

    async def dispatch(self, request: DispatchRequest) -> str:
        logger.info(f"Dispatching to {request.handler_name.value} (thread {request.thread_id})")
        return await asyncio.to_thread(
            self.provider.generate,
            request.prompt,
            system=PromptTemplates.get_handler_prompt(request.handler_name),
        )


class ChatOrchestrator:
    """
    Orchestrates the routed chat pipeline.

    Holds only configuration and collaborators; per-request data (including
    the PII mapping) is passed explicitly and never stored on the instance.
    """

    def __init__(
        self,
        router: IntentRouter,
        dispatcher: HandlerDispatcher,
        masker: Optional[PIIMasker] = None,
        history_window: int = DEFAULT_HISTORY_WINDOW,
        resource_id: str = DEFAULT_RESOURCE_ID,
    ):
        """
        Initialize the orchestrator.

        Args:
            router: Intent router
            dispatcher: Handler dispatcher
            masker: PII masker (module default if omitted)
            history_window: Number of prior turns shown to the classifier
            resource_id: Resource namespace passed to handlers
        """
        self.router = router
        self.dispatcher = dispatcher
        self.masker = masker
        self.history_window = history_window
        self.resource_id = resource_id

    async def process(self, request: ChatRequest) -> ChatResponse:
        """
        Process a chat request through the full pipeline.

        Args:
            request: Chat request

        Returns:
            Chat response

        Raises:
            Whatever the dispatcher raises; routing itself never fails.
        """
        start_time = time.time()

        session = resolve_session(request.metadata, self.resource_id)

        classifier_input = build_classifier_input(
            request.history,
            request.prompt,
            window=self.history_window,
            masker=self.masker,
        )
        mapping = classifier_input.mapping
        logger.info(
            f"Current message masked: {len(classifier_input.masked_prompt)} chars, "
            f"{len(set(extract_masked_tokens(classifier_input.masked_prompt)))} tokens "
            f"({len(mapping)} in request)"
        )
        for category in PIICategory:
            record_pii_masked(
                category.value, sum(1 for t in mapping.values() if t.category == category)
            )

        route = await self.router.route(classifier_input.text)

        final_prompt = build_final_prompt(request.prompt, request.model_provider, request.model)
        final_prompt = inject_context(final_prompt, route.task_context, mapping)

        try:
            response_text = await self.dispatcher.dispatch(
                DispatchRequest(
                    handler_name=route.handler_name,
                    prompt=final_prompt,
                    thread_id=session.thread_id,
                    resource_id=session.resource_id,
                )
            )
        except Exception as e:
            logger.error(f"Handler {route.handler_name.value} failed: {e}")
            raise

        task_context = unmask(route.task_context, mapping) if route.task_context else None
        processing_time = (time.time() - start_time) * 1000

        return ChatResponse(
            response=response_text,
            handler=route.handler_name.value,
            thread_id=session.thread_id,
            task_context=task_context,
            fallback=route.fallback,
            processing_time_ms=round(processing_time, 2),
        )
