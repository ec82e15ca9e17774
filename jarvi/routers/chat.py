"""
Chat Router - HTTP surface of the delegation core.

This router only handles HTTP. All interpretation and execution lives in
ChatService.

Endpoints:
==========
- POST /chat        {text, userId} -> {success, type, agentResponse}
- GET  /chat/stats  aggregated pipeline counters
"""

import logging
from typing import Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from jarvi.core.config import settings
from jarvi.environments.google import GoogleWorkspaceAdapter
from jarvi.monitoring import pipeline_monitor
from jarvi.services.chat_service import ChatResponse, ChatService
from jarvi.services.executors import CalendarExecutor, TaskExecutor


# ---------------------------------------------------------------------------
# LOGGER SETUP
# ---------------------------------------------------------------------------
logger = logging.getLogger("jarvi.routers.chat")


# ---------------------------------------------------------------------------
# ROUTER SETUP
# ---------------------------------------------------------------------------
router = APIRouter(prefix="/chat", tags=["chat"])


# ---------------------------------------------------------------------------
# REQUEST/RESPONSE SCHEMAS
# ---------------------------------------------------------------------------

class ChatRequest(BaseModel):
    """
    Request schema for the /chat endpoint.

    Example:
    {
        "text": "3:30-6:00 study, then a 5 minute break",
        "userId": "telegram:42"
    }
    """
    model_config = ConfigDict(populate_by_name=True)

    text: str = Field(..., min_length=1, max_length=2000, description="Chat message")
    user_id: str = Field(..., min_length=1, alias="userId", description="Stable id of the sender")


class PipelineStatsResponse(BaseModel):
    """Response schema for /chat/stats."""
    messages_processed: int
    successful: int
    failed: int
    success_rate: str
    events_extracted: int
    reconciliations: int
    avg_latency_ms: float
    by_intent: Dict[str, int]
    by_error_kind: Dict[str, int]


# ---------------------------------------------------------------------------
# DEPENDENCIES
# ---------------------------------------------------------------------------

_chat_service: Optional[ChatService] = None


def get_chat_service() -> ChatService:
    """
    Shared ChatService wired to Google Workspace.

    One instance per process, so every request goes through the same
    per-user dispatcher.
    """
    global _chat_service
    if _chat_service is None:
        adapter = GoogleWorkspaceAdapter(access_token=settings.GOOGLE_ACCESS_TOKEN)
        _chat_service = ChatService(executors=[CalendarExecutor(adapter), TaskExecutor(adapter)])
        logger.info("Chat service initialized")
    return _chat_service


# ---------------------------------------------------------------------------
# ENDPOINTS
# ---------------------------------------------------------------------------

@router.post("", response_model=ChatResponse, response_model_by_alias=True, response_model_exclude_none=True)
async def chat(
    request: ChatRequest,
    service: ChatService = Depends(get_chat_service),
):
    """
    Interpret one chat message and delegate it.

    **Examples:**
    - "3:30 - 6:00 - grinding programming for uni - and break of 5 minutes afterwards - 6:05-6:50 - grind more"
    - "what's on my calendar tomorrow"
    - "move \"Gym\" to 6-7pm"
    - "add task call the dentist due Friday"
    """
    return await service.process(request.text, request.user_id)


@router.get("/stats", response_model=PipelineStatsResponse)
async def get_pipeline_stats():
    """Aggregated counters since process start."""
    stats = pipeline_monitor.get_stats()
    return PipelineStatsResponse(**stats.to_dict())
