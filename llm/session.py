"""
Session continuity for routed conversations.

A thread id ties consecutive requests of one conversation to the same
handler memory. Callers may supply one; otherwise a new one is generated.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Mapping, Optional

logger = logging.getLogger(__name__)

DEFAULT_RESOURCE_ID = "agentic-ally-user"

# Checked in order; the first non-empty value wins
THREAD_ID_KEYS = (
    ("conversationId", "conversation_id"),
    ("threadId", "thread_id"),
    ("sessionId", "session_id"),
)


@dataclass(frozen=True)
class Session:
    """Thread and resource namespace a handler call runs under."""
    thread_id: str
    resource_id: str = DEFAULT_RESOURCE_ID


def resolve_thread_id(metadata: Optional[Mapping[str, Any]]) -> str:
    """
    Pick the caller's thread id, or generate one.

    Args:
        metadata: Request body or any mapping carrying conversationId,
            threadId or sessionId (camelCase or snake_case)

    Returns:
        Stripped caller-supplied id, or a fresh UUID4 string.
    """
    metadata = metadata or {}
    for aliases in THREAD_ID_KEYS:
        for key in aliases:
            value = metadata.get(key)
            if value is None:
                continue
            value = str(value).strip()
            if value:
                logger.info("Thread id provided by caller")
                return value

    thread_id = str(uuid.uuid4())
    logger.info("Thread id generated")
    return thread_id


def resolve_session(
    metadata: Optional[Mapping[str, Any]],
    resource_id: str = DEFAULT_RESOURCE_ID,
) -> Session:
    """Resolve the session for one request."""
    return Session(thread_id=resolve_thread_id(metadata), resource_id=resource_id)
