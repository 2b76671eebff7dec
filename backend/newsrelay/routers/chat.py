"""Chat, history, and session reset endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from newsrelay.errors import ValidationError
from newsrelay.models.schemas import (
    ChatRequest,
    ChatResponse,
    HistoryResponse,
    ResetRequest,
    ResetResponse,
)
from newsrelay.services.container import ServiceContainer
from newsrelay.utils.sanitize import strip_markup

logger = logging.getLogger(__name__)

router = APIRouter()


def get_services(request: Request) -> ServiceContainer:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(status_code=500, detail="Services are not configured")
    return services


def _require(value: str | None, message: str) -> str:
    cleaned = strip_markup(value)
    if not cleaned:
        raise ValidationError(message)
    return cleaned


@router.post("/chat", response_model=ChatResponse)
async def chat(
    body: ChatRequest,
    services: ServiceContainer = Depends(get_services),
) -> ChatResponse:
    """Answer a news question using retrieved articles and session history."""
    session_id = _require(body.session_id, "session_id and message are required")
    message = _require(body.message, "session_id and message are required")
    reply = await services.rag.process_query(session_id, message)
    return ChatResponse(response=reply)


@router.get("/history", response_model=HistoryResponse)
async def history(
    session_id: str | None = Query(default=None),
    page: int | None = Query(default=None, ge=1),
    page_size: int = Query(default=10, ge=1, le=100),
    services: ServiceContainer = Depends(get_services),
) -> HistoryResponse:
    """Return the session's turns as role-tagged messages, oldest first."""
    cleaned = _require(session_id, "session_id is required")
    if page is None:
        turns = await services.history.get(cleaned)
        return HistoryResponse(messages=services.history.to_messages(turns))

    turns = await services.history.get_page(cleaned, page, page_size)
    offset = (page - 1) * page_size
    return HistoryResponse(messages=services.history.to_messages(turns, start_index=offset))


@router.post("/reset", response_model=ResetResponse)
async def reset(
    body: ResetRequest,
    services: ServiceContainer = Depends(get_services),
) -> ResetResponse:
    """Delete the session's history."""
    cleaned = _require(body.session_id, "session_id is required")
    await services.history.reset(cleaned)
    return ResetResponse(success=True)
