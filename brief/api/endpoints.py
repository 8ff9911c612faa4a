"""API endpoints exposing the conversation engine."""

from datetime import UTC, datetime

from fastapi import APIRouter, Depends, HTTPException, Request

from brief import __version__
from brief.models.api import (
    CompactRequest,
    CompactResponse,
    ContextStatusResponse,
    ConversationHistoryResponse,
    ConversationRequest,
    ConversationResponse,
    HealthResponse,
    PasteRequest,
    PasteResponse,
)
from brief.models.conversation import Conversation
from brief.services.container import Services
from brief.services.context import context_status
from brief.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


def get_services(request: Request) -> Services:
    return request.app.state.services


def _get_conversation(services: Services, conversation_id: str) -> Conversation:
    conversation = services.store.get(conversation_id)
    if conversation is None:
        logger.warning(f"Unknown conversation ID: {conversation_id}")
        raise HTTPException(status_code=404, detail=f"Unknown conversation ID: {conversation_id}")
    return conversation


def _context_response(conversation: Conversation, model: str | None) -> ContextStatusResponse:
    status = context_status(conversation, model or conversation.default_model)
    return ContextStatusResponse(
        model=status.model,
        context_size=status.context_size,
        used_tokens=status.used_tokens,
        remaining_tokens=status.remaining_tokens,
        usage_percent=status.usage_percent,
        near_limit=status.near_limit,
    )


@router.post("/conversation", response_model=ConversationResponse, tags=["Conversation"])
async def handle_conversation(
    request: ConversationRequest, services: Services = Depends(get_services)
) -> ConversationResponse:
    """Handle a user turn and return the assistant's reply."""
    if request.conversation_id:
        conversation = _get_conversation(services, request.conversation_id)
    else:
        logger.info("Creating new conversation")
        conversation = services.store.add(services.conversations.new_conversation(request.model))

    conversation_id = conversation.id
    try:
        logger.info(f"Processing message for conversation {conversation_id}: {request.message[:50]}...")
        response_text = await services.conversations.process_message(
            request.message,
            conversation,
            model=request.model,
            routing_hint=request.routing_hint,
        )
    except ValueError as e:
        logger.warning(f"Message validation error for conversation {conversation_id}: {e}")
        if not request.conversation_id:
            services.store.delete(conversation_id)
        raise HTTPException(status_code=400, detail=str(e)) from e
    except Exception as e:
        logger.error(f"Conversation processing error for conversation {conversation_id}: {e}", exc_info=True)
        response_text = "I apologize, but I'm experiencing technical difficulties. Please try again."

    return ConversationResponse(
        response=response_text,
        conversation_id=conversation_id,
        context=_context_response(conversation, request.model),
    )


@router.get("/conversation/{conversation_id}", response_model=ConversationHistoryResponse, tags=["Conversation"])
async def get_conversation(
    conversation_id: str, services: Services = Depends(get_services)
) -> ConversationHistoryResponse:
    """Return the messages of a conversation that are visible to the user."""
    conversation = _get_conversation(services, conversation_id)
    return ConversationHistoryResponse(
        conversation_id=conversation.id,
        model=conversation.default_model,
        messages=services.conversations.visible_messages(conversation),
    )


@router.get(
    "/conversation/{conversation_id}/context", response_model=ContextStatusResponse, tags=["Context"]
)
async def get_context_status(
    conversation_id: str, model: str | None = None, services: Services = Depends(get_services)
) -> ContextStatusResponse:
    """Report context window usage for status display."""
    conversation = _get_conversation(services, conversation_id)
    return _context_response(conversation, model)


@router.post("/conversation/{conversation_id}/compact", response_model=CompactResponse, tags=["Context"])
async def compact_conversation(
    conversation_id: str, request: CompactRequest, services: Services = Depends(get_services)
) -> CompactResponse:
    """Compact a conversation's history if the reserve does not fit."""
    conversation = _get_conversation(services, conversation_id)
    reserve = request.reserve_tokens if request.reserve_tokens is not None else services.config.context_reserve_tokens
    result = await services.summary.trim_if_needed(
        conversation, request.model or conversation.default_model, reserve
    )
    return CompactResponse(
        conversation_id=conversation.id,
        was_trimmed=result.was_trimmed,
        was_truncated=result.was_truncated,
        message_count=len(result.messages),
    )


@router.delete("/conversation/{conversation_id}", status_code=204, tags=["Conversation"])
async def delete_conversation(conversation_id: str, services: Services = Depends(get_services)) -> None:
    """Discard a conversation."""
    if not services.store.delete(conversation_id):
        raise HTTPException(status_code=404, detail=f"Unknown conversation ID: {conversation_id}")


@router.post("/paste", response_model=PasteResponse, tags=["Composer"])
async def process_paste(request: PasteRequest, services: Services = Depends(get_services)) -> PasteResponse:
    """Turn pasted text into a placeholder plus the text to send on submit."""
    summary = await services.summary.process_paste(request.text, request.index)
    return PasteResponse(
        display_text=summary.display_text,
        actual_text=summary.actual_text,
        was_summarized=summary.was_summarized,
        was_truncated=summary.was_truncated,
        line_count=summary.line_count,
    )


@router.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(UTC),
        version=__version__,
    )
