"""
Handler registry for the Intent Router.

The set of downstream handlers is closed and known at import time. A
classifier answer naming anything else is invalid.
"""

from enum import Enum
from typing import Dict, List, Optional


class HandlerName(str, Enum):
    """Downstream handlers a request can be routed to."""
    MICROLEARNING = "microlearningAgent"          # Training creation & upload
    PHISHING_EMAIL = "phishingEmailAssistant"     # Phishing simulations
    SMISHING_SMS = "smishingSmsAssistant"         # SMS phishing simulations
    VISHING_CALL = "vishingCallAssistant"         # Voice phishing calls
    DEEPFAKE_VIDEO = "deepfakeVideoAssistant"     # Deepfake video generation
    USER_INFO = "userInfoAssistant"               # User lookup & risk analysis
    POLICY_SUMMARY = "policySummaryAssistant"     # Company policy questions


DEFAULT_HANDLER = HandlerName.MICROLEARNING

HANDLER_DESCRIPTIONS: Dict[HandlerName, str] = {
    HandlerName.MICROLEARNING: "Creates, uploads and assigns security awareness training",
    HandlerName.PHISHING_EMAIL: "Creates phishing email simulations and landing pages",
    HandlerName.SMISHING_SMS: "Creates SMS phishing simulations",
    HandlerName.VISHING_CALL: "Places and summarizes voice phishing simulation calls",
    HandlerName.DEEPFAKE_VIDEO: "Generates deepfake awareness videos",
    HandlerName.USER_INFO: "Finds users, analyzes their risk and suggests a plan",
    HandlerName.POLICY_SUMMARY: "Answers company security policy questions",
}

_BY_FOLDED_VALUE = {h.value.casefold(): h for h in HandlerName}


def registered_handlers() -> List[str]:
    """Wire names of all registered handlers."""
    return [h.value for h in HandlerName]


def lookup_handler(name: Optional[str]) -> Optional[HandlerName]:
    """
    Resolve a wire name to a registered handler.

    Exact match first, then a case-insensitive match to the canonical name.
    Returns None for anything outside the registry.
    """
    if not isinstance(name, str):
        return None
    name = name.strip()
    if not name:
        return None
    try:
        return HandlerName(name)
    except ValueError:
        return _BY_FOLDED_VALUE.get(name.casefold())


def resolve_default_handler(name: Optional[str]) -> HandlerName:
    """Configured default handler, or the built-in default if it is not registered."""
    return lookup_handler(name) or DEFAULT_HANDLER
