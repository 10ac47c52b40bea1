"""
Routing decision parsing for the Intent Router.

The classifier is a generative model, so its answer may be wrapped in
markdown fences or prose, or be near-miss JSON. This module isolates the
JSON object, normalizes known defects, tries one structural repair, and
validates the handler name against the closed registry.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .handlers import HandlerName, lookup_handler
from .resilience import NonRetryableError

logger = logging.getLogger(__name__)


class DecisionParseError(NonRetryableError):
    """Classifier output could not be turned into a valid RoutingDecision."""


class UnknownHandlerError(DecisionParseError):
    """The classifier named a handler outside the registry."""

    def __init__(self, handler: Any):
        self.handler = handler
        super().__init__(f"Unknown handler: {handler!r}")


@dataclass(frozen=True)
class RoutingDecision:
    """A validated routing decision."""
    handler_name: HandlerName
    task_context: Optional[str] = None
    reasoning: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "agent": self.handler_name.value,
            "taskContext": self.task_context,
            "reasoning": self.reasoning,
        }


HANDLER_KEYS = ("agent", "handlerName", "handler")
TASK_CONTEXT_KEYS = ("taskContext", "task_context")

_FENCE_PATTERN = re.compile(r"```[ \t]*(?:json|JSON)?[ \t]*\n?(.*?)```", re.DOTALL)
_INVISIBLE_CHARS = re.compile("[\ufeff\u200b\u200c\u200d\u2060]")
_SMART_DOUBLE = re.compile("[\u201c\u201d\u201e\u201f\u00ab\u00bb]")
_SMART_SINGLE = re.compile("[\u2018\u2019\u201a\u201b]")
_CONTROL_ESCAPES = {"\n": "\\n", "\r": "\\r", "\t": "\\t", "\b": "\\b", "\f": "\\f"}
_LITERALS = {
    "True": "true", "False": "false", "None": "null",
    "true": "true", "false": "false", "null": "null",
}


def parse_decision(raw_output: str) -> RoutingDecision:
    """
    Extract and validate a routing decision from raw classifier text.

    Args:
        raw_output: Text returned by the classifier

    Returns:
        RoutingDecision for a registered handler

    Raises:
        DecisionParseError: No usable JSON object was found
        UnknownHandlerError: The object names an unregistered handler
    """
    if not isinstance(raw_output, str) or not raw_output.strip():
        raise DecisionParseError("Empty classifier output")

    text = _unwrap(raw_output.strip())
    candidates = _object_candidates(text)
    if not candidates:
        raise DecisionParseError("No JSON object found in classifier output")

    last_error = DecisionParseError("No JSON object found in classifier output")
    for candidate in candidates:
        try:
            data = _load(candidate)
        except DecisionParseError as e:
            last_error = e
            continue
        if isinstance(data, dict) and any(k in data for k in HANDLER_KEYS):
            return _validate(data)
        last_error = DecisionParseError("JSON object has no handler field")

    raise last_error


# ── Extraction ────────────────────────────────────────────────────

def _unwrap(text: str) -> str:
    """Undo wrapping quotes and code fences."""
    if len(text) >= 2 and text[0] == text[-1] and text[0] in "\"'":
        try:
            inner = json.loads(text) if text[0] == '"' else text[1:-1]
        except (ValueError, RecursionError):
            inner = None
        if isinstance(inner, str) and "{" in inner:
            text = inner.strip()

    for block in _FENCE_PATTERN.findall(text):
        if "{" in block:
            return block.strip()
    return text


def _object_candidates(text: str) -> List[str]:
    """
    Top-level {...} spans in order of appearance.

    Braces inside JSON strings are ignored. An object that is never closed
    runs to the end of the text so the repair pass can close it.
    """
    candidates = []
    i = 0
    n = len(text)
    while i < n:
        start = text.find("{", i)
        if start < 0:
            break
        depth = 0
        in_string = False
        escaped = False
        end = None
        for j in range(start, n):
            ch = text[j]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    end = j + 1
                    break
        if end is None:
            candidates.append(text[start:])
            break
        candidates.append(text[start:end])
        i = end
    return candidates


# ── Normalization & repair ────────────────────────────────────────

def _load(candidate: str) -> Any:
    normalized = _normalize(candidate)
    try:
        return json.loads(normalized)
    except (ValueError, RecursionError):
        pass

    repaired = _normalize(_repair_structure(normalized))
    try:
        data = json.loads(repaired)
    except json.JSONDecodeError as e:
        raise DecisionParseError(f"Unparseable JSON after repair: {e.msg}") from e
    except (ValueError, RecursionError) as e:
        raise DecisionParseError(f"Unparseable JSON after repair: {type(e).__name__}") from e
    logger.info("Classifier output required structural repair")
    return data


def _normalize(text: str) -> str:
    """
    Fix defects that do not change structure.

    Removes invisible characters and trailing commas, escapes raw control
    characters inside strings, drops them outside strings. Smart double
    quotes become ASCII quotes when the text has no ASCII double quotes.
    """
    text = _INVISIBLE_CHARS.sub("", text)
    if '"' not in text:
        text = _SMART_DOUBLE.sub('"', text)

    out: List[str] = []
    in_string = False
    escaped = False
    n = len(text)
    i = 0
    while i < n:
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
                out.append(ch)
            elif ch == "\\":
                escaped = True
                out.append(ch)
            elif ch == '"':
                in_string = False
                out.append(ch)
            elif ord(ch) < 0x20:
                out.append(_CONTROL_ESCAPES.get(ch, f"\\u{ord(ch):04x}"))
            else:
                out.append(ch)
        elif ch == '"':
            in_string = True
            out.append(ch)
        elif ch == ",":
            k = i + 1
            while k < n and text[k] in " \t\r\n":
                k += 1
            if k < n and text[k] in "}]":
                i += 1
                continue
            out.append(ch)
        elif ord(ch) < 0x20 and ch not in " \t\r\n":
            pass
        else:
            out.append(ch)
        i += 1
    return "".join(out)


def _repair_structure(text: str) -> str:
    """
    One structural repair pass.

    Converts smart and single quotes to JSON strings, quotes bare keys and
    bare word values, maps Python literals to JSON, drops stray closers and
    closes anything left open.
    """
    text = _SMART_DOUBLE.sub('"', text)
    text = _SMART_SINGLE.sub("'", text)

    out: List[str] = []
    closers: List[str] = []
    n = len(text)
    i = 0
    while i < n:
        ch = text[i]

        if ch in "\"'":
            quote = ch
            buf: List[str] = []
            j = i + 1
            closed = False
            while j < n:
                c = text[j]
                if c == "\\" and j + 1 < n:
                    nxt = text[j + 1]
                    buf.append("'" if nxt == "'" else c + nxt)
                    j += 2
                    continue
                if c == quote:
                    closed = True
                    break
                buf.append('\\"' if c == '"' else c)
                j += 1
            out.append('"' + "".join(buf) + '"')
            i = j + 1 if closed else n
            continue

        if ch.isalpha() or ch == "_":
            j = i
            while j < n and (text[j].isalnum() or text[j] in "_-"):
                j += 1
            word = text[i:j]
            k = j
            while k < n and text[k] in " \t\r\n":
                k += 1
            if k < n and text[k] == ":":
                out.append(f'"{word}"')
            else:
                out.append(_LITERALS.get(word, f'"{word}"'))
            i = j
            continue

        if ch in "{[":
            closers.append("}" if ch == "{" else "]")
        elif ch in "}]":
            if not closers or closers[-1] != ch:
                i += 1
                continue
            closers.pop()
        out.append(ch)
        i += 1

    repaired = "".join(out).rstrip()
    if repaired.endswith(","):
        repaired = repaired[:-1]
    return repaired + "".join(reversed(closers))


# ── Validation ────────────────────────────────────────────────────

def _validate(data: Dict[str, Any]) -> RoutingDecision:
    raw_handler = next((data[k] for k in HANDLER_KEYS if k in data), None)
    handler = lookup_handler(raw_handler)
    if handler is None:
        raise UnknownHandlerError(raw_handler)

    task_context = next((data[k] for k in TASK_CONTEXT_KEYS if k in data), None)
    return RoutingDecision(
        handler_name=handler,
        task_context=_as_text(task_context),
        reasoning=_as_text(data.get("reasoning")),
    )


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        value = json.dumps(value, ensure_ascii=False)
    value = value.strip()
    return value or None
