"""Conversation, message and tool-call data models."""

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from cuid2 import cuid_wrapper
from pydantic import BaseModel, ConfigDict, Field, model_validator

from brief.config import DEFAULT_MODEL
from brief.utils.logging import get_logger

logger = get_logger(__name__)

cuid = cuid_wrapper()


class Role(StrEnum):
    """Role of a message sender in a conversation."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class Source(StrEnum):
    """Provenance of a message.

    The source decides whether a message is sent to the endpoint, counted against
    the context budget and shown to the user:

    - USER_INPUT, LLM_OUTPUT, SYSTEM: sent and shown.
    - TOOL_OUTPUT: sent with the tool role, shown only when tool display is enabled.
    - INTERNAL: ephemeral routing hint, sent only while it is the last message, never shown.
    - LOCAL: display-only text, never sent.
    """

    USER_INPUT = "user-input"
    LLM_OUTPUT = "llm-output"
    SYSTEM = "system"
    TOOL_OUTPUT = "tool-output"
    INTERNAL = "internal"
    LOCAL = "local"

    @property
    def counts_toward_budget(self) -> bool:
        return self not in (Source.INTERNAL, Source.LOCAL)


class ToolCallStatus(StrEnum):
    """Lifecycle status of a tool call."""

    PENDING = "pending"
    COMPLETED = "completed"
    ERROR = "error"


class ToolCall(BaseModel):
    """A tool invocation requested by the model and executed locally.

    Created pending; moves once to completed or error and is immutable afterwards.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    provider_id: str
    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)
    status: ToolCallStatus = ToolCallStatus.PENDING
    result: dict[str, Any] | None = None
    error: dict[str, Any] | None = None

    def completed(self, result: dict[str, Any]) -> "ToolCall":
        """Return a completed copy carrying the result."""
        self._require_pending()
        return self.model_copy(update={"status": ToolCallStatus.COMPLETED, "result": result})

    def failed(self, error: dict[str, Any]) -> "ToolCall":
        """Return an errored copy carrying the error payload."""
        self._require_pending()
        return self.model_copy(update={"status": ToolCallStatus.ERROR, "error": error})

    def _require_pending(self) -> None:
        if self.status is not ToolCallStatus.PENDING:
            raise ValueError(f"Tool call {self.id} is already {self.status.value}")


class ChatMessage(BaseModel):
    """A single message in a conversation."""

    id: str
    conversation_id: str
    index: int = Field(ge=0)
    role: Role
    source: Source
    content: str = ""
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    model: str | None = None
    provider: str | None = None
    tool_call_id: str | None = None
    tool_calls: list[ToolCall] | None = None

    @model_validator(mode="after")
    def check_tool_correlation(self) -> "ChatMessage":
        """Tool-role messages must be correlated to the call that produced them."""
        if self.role is Role.TOOL and not (self.tool_call_id and self.tool_call_id.strip()):
            raise ValueError("Tool messages require a non-empty tool_call_id")
        return self

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)

    @property
    def is_sendable(self) -> bool:
        """Whether the provenance allows sending this message at all."""
        return self.source is not Source.LOCAL


def short_id() -> str:
    """Short random suffix for synthesized message ids."""
    return uuid.uuid4().hex[:8]


@dataclass
class Conversation:
    """Ordered, append-only log of messages.

    Insertion order is wire order. The only non-append mutation is
    ``replace_range``, which swaps a contiguous range for a single message.
    """

    id: str = field(default_factory=cuid)
    default_model: str = DEFAULT_MODEL
    provider: str = "anthropic"
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    metadata: dict[str, str] = field(default_factory=dict)
    messages: list[ChatMessage] = field(default_factory=list)
    _emitted_tool_call_ids: set[str] = field(default_factory=set, init=False, repr=False)

    def __post_init__(self) -> None:
        existing = list(self.messages)
        self.messages = []
        for message in existing:
            self.add_message(message)

    def __len__(self) -> int:
        return len(self.messages)

    @property
    def last_message(self) -> ChatMessage | None:
        return self.messages[-1] if self.messages else None

    def has_emitted_tool_call(self, call_id: str) -> bool:
        return call_id in self._emitted_tool_call_ids

    def touch(self) -> None:
        """Advance the update timestamp without ever moving it backwards."""
        self.updated_at = max(datetime.now(UTC), self.updated_at)

    def add_message(self, message: ChatMessage) -> ChatMessage:
        """Append a message to the log.

        Raises:
            ValueError: If a tool message does not answer a previously emitted tool call
        """
        if message.role is Role.TOOL and message.tool_call_id not in self._emitted_tool_call_ids:
            raise ValueError(f"Tool message references unknown tool call id: {message.tool_call_id}")

        if message.tool_calls:
            self._emitted_tool_call_ids.update(call.id for call in message.tool_calls)

        self.messages.append(message)
        self.touch()
        return message

    def append(
        self,
        role: Role,
        source: Source,
        content: str,
        *,
        model: str | None = None,
        tool_call_id: str | None = None,
        tool_calls: list[ToolCall] | None = None,
        id_prefix: str = "msg",
    ) -> ChatMessage:
        """Create and append a message owned by this conversation."""
        message = ChatMessage(
            id=f"{id_prefix}_{short_id()}",
            conversation_id=self.id,
            index=len(self.messages),
            role=role,
            source=source,
            content=content,
            model=model or self.default_model,
            provider=self.provider,
            tool_call_id=tool_call_id,
            tool_calls=tool_calls,
        )
        return self.add_message(message)

    def replace_range(self, start: int, end: int, replacement: ChatMessage) -> None:
        """Replace the contiguous range ``[start, end)`` with a single message."""
        if not 0 <= start < end <= len(self.messages):
            raise ValueError(f"Invalid replacement range [{start}, {end}) for {len(self.messages)} messages")

        logger.debug(f"Conversation {self.id}: replacing messages [{start}, {end}) with {replacement.id}")
        self.messages[start:end] = [replacement]
        self.touch()

    def leading_system_count(self) -> int:
        """Number of system-role messages at the head of the log."""
        count = 0
        for message in self.messages:
            if message.role is not Role.SYSTEM:
                break
            count += 1
        return count

    def replace_tool_call(self, message: ChatMessage, updated: ToolCall) -> None:
        """Swap a tool call on one of this conversation's messages for its resolved copy."""
        if not message.tool_calls:
            raise ValueError(f"Message {message.id} has no tool calls")
        for i, call in enumerate(message.tool_calls):
            if call.id == updated.id:
                message.tool_calls[i] = updated
                return
        raise ValueError(f"Tool call {updated.id} not found on message {message.id}")
