"""AI chat assistant endpoint."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from api.deps import Services, get_services
from core.ai import AssistantError
from core.ai.assistant import DEFAULT_MODEL, FALLBACK_RESPONSE

logger = logging.getLogger(__name__)

router = APIRouter(tags=["ai"])


class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1)
    model: str = DEFAULT_MODEL
    context: list[dict[str, Any]] = Field(default_factory=list)


@router.post("/functions/ai-chat-assistant")
async def ai_chat_assistant(payload: ChatRequest, services: Services = Depends(get_services)) -> Any:
    try:
        reply = await services.assistant.chat(payload.message, model=payload.model, context=payload.context)
    except AssistantError as exc:
        return JSONResponse(status_code=500, content={"error": str(exc), "response": FALLBACK_RESPONSE})
    return reply.to_dict()
