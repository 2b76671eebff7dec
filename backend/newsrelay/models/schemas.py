"""Pydantic schemas and internal contracts for the chat pipeline."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


class Turn(BaseModel):
    """One committed exchange; stored as a single JSON item per turn."""

    user: str
    bot: str
    user_timestamp: datetime = Field(default_factory=utc_now, alias="userTimestamp")
    bot_timestamp: datetime = Field(default_factory=utc_now, alias="botTimestamp")

    model_config = {"populate_by_name": True, "frozen": True}


class HistoryMessage(BaseModel):
    """A single role-tagged message as exposed by the history endpoint."""

    id: str
    role: Literal["user", "assistant"]
    type: Literal["user", "bot"]
    content: str
    timestamp: datetime


class SearchMatch(BaseModel):
    """One nearest-neighbour hit from the vector index."""

    id: str | int | None = None
    score: float
    payload: dict[str, Any] = Field(default_factory=dict)

    @property
    def text(self) -> str:
        value = self.payload.get("maintext") or self.payload.get("text") or ""
        return str(value)


class PromptSpec(BaseModel):
    """Fully assembled generation request."""

    system_instruction: str
    context: str
    history: str
    query: str


class ChatRequest(BaseModel):
    """Chat payload; fields are optional so missing values map to a 400."""

    session_id: str | None = None
    message: str | None = None


class ChatResponse(BaseModel):
    response: str


class ResetRequest(BaseModel):
    session_id: str | None = None


class ResetResponse(BaseModel):
    success: bool = True


class HistoryResponse(BaseModel):
    messages: list[HistoryMessage] = Field(default_factory=list)


class CacheSummary(BaseModel):
    hits: int
    misses: int
    hitRate: float


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str
    store: Literal["connected", "disconnected"]
    cache: CacheSummary
    timestamp: datetime


class ErrorResponse(BaseModel):
    error: str
