"""Chat-completion client contract consumed by the engine."""

from typing import Protocol

from brief.models.llm import LLMMessage, LLMResponse, LLMToolDefinition


class ChatClient(Protocol):
    """A chat-completion endpoint.

    Accepts a model id, an ordered list of role-tagged messages and optional tool
    definitions; returns either text or a list of requested tool invocations.
    Implementations raise on transport or API failures.
    """

    async def complete(
        self,
        model: str,
        messages: list[LLMMessage],
        tools: list[LLMToolDefinition] | None = None,
    ) -> LLMResponse: ...

    async def complete_text(self, prompt: str, model: str) -> str:
        """Single-turn completion for summarization and similar one-shot tasks."""
        ...
