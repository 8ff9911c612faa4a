"""LLM-related data models and types (provider-agnostic)."""

from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, Field


class LLMToolCall(BaseModel):
    """A tool invocation requested by the model.

    ``arguments`` is the JSON-encoded argument object exactly as the endpoint sent it.
    """

    id: str
    name: str
    arguments: str = "{}"


class LLMMessage(BaseModel):
    """A role-tagged message in the endpoint's wire format."""

    role: Literal["system", "user", "assistant", "tool"]
    content: str = ""
    tool_calls: list[LLMToolCall] = Field(default_factory=list)
    tool_call_id: str | None = None


class LLMToolDefinition(BaseModel):
    """Complete tool definition for the LLM."""

    name: str
    description: str
    input_schema: dict[str, Any]


@dataclass
class LLMUsage:
    """Token/resource usage information from the LLM provider."""

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0

    def add(self, other: "LLMUsage | None") -> None:
        """Accumulate another usage record into this one."""
        if other is None:
            return
        self.input_tokens += other.input_tokens
        self.output_tokens += other.output_tokens
        self.total_tokens += other.total_tokens


@dataclass
class LLMResponse:
    """Provider-agnostic response from a chat-completion call.

    ``message`` is None when the endpoint returned no message at all.
    """

    message: LLMMessage | None
    stop_reason: str | None = None
    usage: LLMUsage | None = None
    model: str = ""
    provider: str = "anthropic"
