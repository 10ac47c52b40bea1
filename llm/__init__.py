"""
LLM Routing Module for the Intent Router.

This module handles:
- LLM provider abstraction (Bedrock, OpenAI)
- Intent classification on masked text
- Decision parsing and fallback-safe routing
- Session continuity and handler dispatch
"""

from .classifier import IntentClassifierAdapter
from .decision_parser import DecisionParseError, RoutingDecision, UnknownHandlerError, parse_decision
from .handlers import DEFAULT_HANDLER, HandlerName, lookup_handler
from .orchestrator import (
    ChatOrchestrator,
    ChatRequest,
    ChatResponse,
    DispatchRequest,
    HandlerDispatcher,
    LLMHandlerDispatcher,
)
from .prompt_templates import PromptTemplates
from .router import IntentRouter, RouteResult

__all__ = [
    "ChatOrchestrator",
    "ChatRequest",
    "ChatResponse",
    "DEFAULT_HANDLER",
    "DecisionParseError",
    "DispatchRequest",
    "HandlerDispatcher",
    "HandlerName",
    "IntentClassifierAdapter",
    "IntentRouter",
    "LLMHandlerDispatcher",
    "PromptTemplates",
    "RouteResult",
    "RoutingDecision",
    "UnknownHandlerError",
    "lookup_handler",
    "parse_decision",
]
