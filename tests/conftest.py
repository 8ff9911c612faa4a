"""Shared fixtures: stub chat clients, summarizers and conversation builders."""

import json
from collections.abc import Callable

import pytest

from brief.models.conversation import Conversation, Role, Source
from brief.models.llm import LLMMessage, LLMResponse, LLMToolCall, LLMToolDefinition, LLMUsage


def text_response(text: str) -> LLMResponse:
    """An endpoint response carrying a final answer."""
    return LLMResponse(
        message=LLMMessage(role="assistant", content=text),
        stop_reason="end_turn",
        usage=LLMUsage(input_tokens=10, output_tokens=5, total_tokens=15),
        model="stub-model",
    )


def tool_response(*calls: tuple[str, str, dict | str], content: str = "") -> LLMResponse:
    """An endpoint response requesting tool calls given as (id, name, arguments)."""
    tool_calls = [
        LLMToolCall(id=call_id, name=name, arguments=args if isinstance(args, str) else json.dumps(args))
        for call_id, name, args in calls
    ]
    return LLMResponse(
        message=LLMMessage(role="assistant", content=content, tool_calls=tool_calls),
        stop_reason="tool_use",
        usage=LLMUsage(input_tokens=10, output_tokens=5, total_tokens=15),
        model="stub-model",
    )


class StubChatClient:
    """Chat client returning scripted responses and recording every request."""

    def __init__(
        self,
        responder: Callable[[int], LLMResponse] | list[LLMResponse] | None = None,
        summary_text: str = "SUMMARY",
        summary_error: Exception | None = None,
    ):
        self.responder = responder if responder is not None else [text_response("Hello!")]
        self.summary_text = summary_text
        self.summary_error = summary_error
        self.calls: list[dict] = []
        self.prompts: list[tuple[str, str]] = []

    async def complete(
        self,
        model: str,
        messages: list[LLMMessage],
        tools: list[LLMToolDefinition] | None = None,
    ) -> LLMResponse:
        step = len(self.calls)
        self.calls.append({"model": model, "messages": [m.model_copy(deep=True) for m in messages], "tools": tools})
        if callable(self.responder):
            return self.responder(step)
        return self.responder[min(step, len(self.responder) - 1)]

    async def complete_text(self, prompt: str, model: str) -> str:
        self.prompts.append((prompt, model))
        if self.summary_error is not None:
            raise self.summary_error
        return self.summary_text


class StubSummarizer:
    """Summarizer returning fixed text or raising a fixed error."""

    def __init__(self, result: str = "SUMMARY", error: Exception | None = None):
        self.result = result
        self.error = error
        self.calls: list[tuple[str, int, str]] = []

    async def summarize(self, text: str, target_tokens: int, context: str) -> str:
        self.calls.append((text, target_tokens, context))
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def stub_client() -> type[StubChatClient]:
    return StubChatClient


@pytest.fixture
def stub_summarizer() -> type[StubSummarizer]:
    return StubSummarizer


@pytest.fixture
def responses():
    """Builders for scripted endpoint responses."""

    class Responses:
        text = staticmethod(text_response)
        tools = staticmethod(tool_response)

    return Responses


@pytest.fixture
def build_conversation() -> Callable[..., Conversation]:
    """Build a conversation with leading system messages and alternating turns."""

    def _build(
        turns: int,
        *,
        system_messages: int = 1,
        system_chars: int = 60,
        turn_chars: int = 40,
        model: str = "unknown-model",
    ) -> Conversation:
        conversation = Conversation(default_model=model)
        for i in range(system_messages):
            conversation.append(Role.SYSTEM, Source.SYSTEM, "s" * system_chars)
        for i in range(turns):
            if i % 2 == 0:
                conversation.append(Role.USER, Source.USER_INPUT, "u" * turn_chars)
            else:
                conversation.append(Role.ASSISTANT, Source.LLM_OUTPUT, "a" * turn_chars)
        return conversation

    return _build
