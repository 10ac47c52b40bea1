"""
Context assembly for the Intent Router.

Builds the masked text block the classifier sees, and re-injects the
classifier's (unmasked) task context into the prompt a handler receives.
Also holds the message-shape helpers used to read chat payloads.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Sequence, Union

from privacy import PIIMasker, PIIToken, mask, unmask

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_WINDOW = 10

HISTORY_HEADER = "CONVERSATION HISTORY"
CURRENT_HEADER = "CURRENT MESSAGE"
SECTION_DELIMITER = "---"

_CURRENT_SECTION = f"\n{SECTION_DELIMITER}\n{CURRENT_HEADER}\n"


@dataclass
class ConversationTurn:
    """One prior message of the conversation."""
    role: str
    content: str

    @property
    def speaker(self) -> str:
        return "User" if self.role == "user" else "Assistant"

    @classmethod
    def from_message(cls, message: Mapping[str, Any]) -> "ConversationTurn":
        """Build a turn from a chat message dict of any supported shape."""
        return cls(
            role=str(message.get("role") or "user"),
            content=extract_message_content(message),
        )


@dataclass
class ClassifierInput:
    """Masked classifier text plus the mapping that reverses it."""
    text: str
    masked_prompt: str
    mapping: Dict[str, PIIToken] = field(default_factory=dict)


Turn = Union[ConversationTurn, Mapping[str, Any], str]


# ── Message helpers ───────────────────────────────────────────────

def extract_message_content(message: Mapping[str, Any]) -> str:
    """
    Extract text from a chat message.

    Handles plain string content, a list of content parts (text/image),
    AI-SDK style "parts", tool invocations and an object fallback.
    """
    content = message.get("content")

    if isinstance(content, str):
        return content

    if isinstance(content, list):
        texts = []
        for part in content:
            if not isinstance(part, dict):
                texts.append("")
            elif part.get("type") == "text":
                texts.append(part.get("text") or "")
            elif part.get("type") == "image":
                texts.append("[Image]")
            else:
                texts.append("")
        return " ".join(texts)

    parts = message.get("parts")
    if isinstance(parts, list):
        return " ".join(
            (p.get("text") or "") if isinstance(p, dict) and p.get("type") == "text" else ""
            for p in parts
        )

    if message.get("toolInvocations") or message.get("function_call") or message.get("tool_calls"):
        return "[Tool Execution Result]"

    if isinstance(content, dict):
        text = content.get("text")
        return text if text else _json_text(content)

    return "[Empty Message]"


def _json_text(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False)


# UI signal -> note shown to the classifier instead of the raw payload
UI_SIGNAL_NOTES = {
    "canvas_open": "[Training Created]",
    "phishing_email": "[Phishing Simulation Email Created]",
    "landing_page": "[Phishing Simulation Landing Page Created]",
    "training_uploaded": "[Training Uploaded]",
    "phishing_uploaded": "[Phishing Simulation Uploaded]",
    "training_assigned": "[Training Assigned to User]",
    "phishing_assigned": "[Phishing Simulation Assigned to User]",
}

_UI_SIGNAL_PATTERN = re.compile(r"::ui:\w+::[^\n]*")
_URL_PATTERN = re.compile(r"https?://[^\s)]+")
_URL_ID_PATTERN = re.compile(r"[/=]([A-Za-z0-9_-]+)(?:[&?#]|$)")
_WHITESPACE = re.compile(r"\s+")


def clean_message_content(content: Optional[str]) -> str:
    """
    Reduce a message to what matters for routing.

    A message carrying a known UI signal becomes its semantic note. Other
    UI signals are stripped, URLs shortened and whitespace collapsed.
    """
    if not content:
        return ""

    for signal, note in UI_SIGNAL_NOTES.items():
        if f"::ui:{signal}::" in content:
            return note

    cleaned = _UI_SIGNAL_PATTERN.sub("", content)
    cleaned = _URL_PATTERN.sub(_shorten_url, cleaned)
    return _WHITESPACE.sub(" ", cleaned).strip()


def _shorten_url(match) -> str:
    id_match = _URL_ID_PATTERN.search(match.group(0))
    if id_match and len(id_match.group(1)) > 10:
        return f"[URL: {id_match.group(1)[:20]}...]"
    return "[URL]"


def extract_user_prompt(messages: Sequence[Mapping[str, Any]]) -> Optional[str]:
    """Text of the last user message, or None."""
    if not messages:
        return None

    user_messages = [m for m in messages if isinstance(m, dict) and m.get("role") == "user"]
    if not user_messages:
        return None
    last = user_messages[-1]

    if isinstance(last.get("content"), str):
        return last["content"]

    parts = last.get("parts")
    if isinstance(parts, list):
        texts = [
            p["text"] for p in parts
            if isinstance(p, dict) and p.get("type") == "text" and isinstance(p.get("text"), str)
        ]
        if texts:
            return "\n".join(texts)

    return None


# ── Classifier input ──────────────────────────────────────────────

def _as_turn(turn: Turn) -> ConversationTurn:
    if isinstance(turn, ConversationTurn):
        return turn
    # Bare strings are user messages
    if isinstance(turn, str):
        return ConversationTurn(role="user", content=turn)
    if not isinstance(turn, Mapping):
        raise ValueError(f"Unsupported history turn: {type(turn).__name__}")
    return ConversationTurn.from_message(turn)


def render_history(history: Sequence[Turn], window: int = DEFAULT_HISTORY_WINDOW) -> str:
    """Render the last window turns as "User: ..." / "Assistant: ..." lines."""
    if not history or window <= 0:
        return ""
    recent = [_as_turn(t) for t in list(history)[-window:]]
    return "\n".join(f"{t.speaker}: {clean_message_content(t.content)}" for t in recent)


def build_classifier_input(
    history: Optional[Sequence[Turn]],
    current_message: str,
    window: int = DEFAULT_HISTORY_WINDOW,
    masker: Optional[PIIMasker] = None,
) -> ClassifierInput:
    """
    Assemble and mask the text sent to the classifier.

    History and current message are concatenated first and masked in one
    call, so a value repeated across turns gets a single token.

    Args:
        history: Prior turns, oldest first
        current_message: The message being routed
        window: Number of most recent turns to keep
        masker: Masker to use (module default if omitted)

    Returns:
        ClassifierInput with the masked block, the masked current message
        and the mapping for this request.
    """
    rendered = render_history(history or [], window)

    if not rendered:
        result = mask(current_message, masker)
        return ClassifierInput(
            text=result.masked_text,
            masked_prompt=result.masked_text,
            mapping=result.mapping,
        )

    block = f"{HISTORY_HEADER}\n{rendered}{_CURRENT_SECTION}{current_message}"
    result = mask(block, masker)

    # Rendered history has no newlines, so the first section marker is ours
    _, _, masked_prompt = result.masked_text.partition(_CURRENT_SECTION)

    turns = min(len(history), window)
    logger.info(f"Classifier input built from {turns} history turns")
    return ClassifierInput(text=result.masked_text, masked_prompt=masked_prompt, mapping=result.mapping)


# ── Handler prompt ────────────────────────────────────────────────

def build_final_prompt(
    prompt: str,
    model_provider: Optional[str] = None,
    model: Optional[str] = None,
) -> str:
    """Prepend a model override instruction when the caller asked for one."""
    if not (model_provider or model):
        return prompt

    logger.info(f"Model override received: provider={model_provider}, model={model}")
    if model_provider and model:
        return f"[Use this model: {model_provider} - {model}]\n\n{prompt}"
    if model_provider:
        return f"[Use this model provider: {model_provider}]\n\n{prompt}"
    return prompt


def inject_context(
    final_prompt: str,
    task_context: Optional[str],
    mapping: Mapping[str, Union[PIIToken, str]],
) -> str:
    """
    Prepend the classifier's task context, with PII restored.

    Returns final_prompt unchanged when task_context is empty.
    """
    if not task_context or not task_context.strip():
        return final_prompt

    restored = unmask(task_context, mapping)
    logger.debug("Orchestrator context injected into handler prompt")
    return f"[CONTEXT FROM ORCHESTRATOR: {restored}]\n\n{final_prompt}"
