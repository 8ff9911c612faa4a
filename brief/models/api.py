"""Request and response models for the HTTP API."""

from datetime import datetime

from pydantic import BaseModel, Field

from brief.models.conversation import ChatMessage


class ConversationRequest(BaseModel):
    """Request model for conversation endpoint."""

    message: str
    conversation_id: str | None = None
    model: str | None = None
    routing_hint: str | None = None


class ContextStatusResponse(BaseModel):
    """Context window usage of a conversation."""

    model: str
    context_size: int
    used_tokens: int
    remaining_tokens: int
    usage_percent: int
    near_limit: bool


class ConversationResponse(BaseModel):
    """Response model for conversation endpoint."""

    response: str
    conversation_id: str
    context: ContextStatusResponse


class ConversationHistoryResponse(BaseModel):
    """Messages of a conversation that are visible to the user."""

    conversation_id: str
    model: str
    messages: list[ChatMessage]


class CompactRequest(BaseModel):
    """Request model for explicit compaction."""

    reserve_tokens: int | None = Field(default=None, ge=0)
    model: str | None = None


class CompactResponse(BaseModel):
    """Outcome of a compaction request."""

    conversation_id: str
    was_trimmed: bool
    was_truncated: bool
    message_count: int


class PasteRequest(BaseModel):
    """Request model for paste processing."""

    text: str
    index: int = Field(default=1, ge=1)


class PasteResponse(BaseModel):
    """Placeholder and actual text for a processed paste."""

    display_text: str
    actual_text: str
    was_summarized: bool
    was_truncated: bool
    line_count: int


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str
    timestamp: datetime
    version: str
