"""
Chat API Routes for the Intent Router.
"""

import logging
from typing import List, Dict, Any, Optional

from fastapi import APIRouter, HTTPException, BackgroundTasks
from pydantic import BaseModel

from ..services import get_services
from llm.handlers import HANDLER_DESCRIPTIONS, HandlerName
from llm.orchestrator import ChatRequest as OrchestratorRequest

logger = logging.getLogger(__name__)

router = APIRouter()


# ── Request / Response Models ─────────────────────────────────────

class ChatRequest(BaseModel):
    prompt: Optional[str] = None
    text: Optional[str] = None
    input: Optional[str] = None
    messages: Optional[List[Dict[str, Any]]] = None
    conversationHistory: Optional[List[Dict[str, Any]]] = None
    conversationId: Optional[str] = None
    threadId: Optional[str] = None
    sessionId: Optional[str] = None
    modelProvider: Optional[str] = None
    model: Optional[str] = None


class ChatResponse(BaseModel):
    response: str
    handler: str
    thread_id: str
    task_context: Optional[str] = None
    fallback: bool = False
    processing_time_ms: float
    timestamp: str


class HandlerInfo(BaseModel):
    name: str
    description: str
    is_default: bool


# ── Endpoints ─────────────────────────────────────────────────────

@router.post("/chat", response_model=ChatResponse)
async def chat(request: ChatRequest, background_tasks: BackgroundTasks):
    """
    Route a chat message to the right handler.

    1. Mask PII  2. Classify intent  3. Fall back if needed
    4. Restore PII in the task context  5. Dispatch to the handler
    """
    try:
        orch_request = OrchestratorRequest.from_payload(request.model_dump(exclude_none=True))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    services = get_services()
    if not services.is_ready:
        raise HTTPException(status_code=503, detail="Routing services are not initialized")

    result = await services.orchestrator.process(orch_request)

    background_tasks.add_task(
        _log_chat_analytics,
        result.thread_id,
        len(orch_request.prompt),
        result.handler,
        result.fallback,
    )

    return ChatResponse(**result.to_dict())


@router.get("/handlers", response_model=List[HandlerInfo])
async def list_handlers():
    """List the handlers requests can be routed to."""
    default_handler = get_services().default_handler
    return [
        HandlerInfo(
            name=h.value,
            description=HANDLER_DESCRIPTIONS[h],
            is_default=h == default_handler,
        )
        for h in HandlerName
    ]


# ── Helpers ───────────────────────────────────────────────────────

def _log_chat_analytics(thread_id: str, message_length: int, handler: str, fallback: bool):
    """Log chat analytics (background task)."""
    logger.info(
        "Chat analytics",
        extra={
            "thread_id": thread_id,
            "message_length": message_length,
            "handler": handler,
            "fallback": fallback,
        },
    )
