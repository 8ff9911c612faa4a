"""Context window tracking for the models the client can talk to."""

from dataclasses import dataclass

from brief.models.conversation import Conversation
from brief.services.tokens import estimate_conversation_tokens

MODEL_CONTEXT_SIZES: dict[str, int] = {
    # OpenAI models
    "gpt-4o": 128_000,
    "gpt-4o-mini": 128_000,
    "gpt-4-turbo": 128_000,
    "gpt-4": 8_192,
    "gpt-3.5-turbo": 16_385,
    "gpt-3.5": 16_385,
    # Anthropic models
    "claude-3-opus": 200_000,
    "claude-3-sonnet": 200_000,
    "claude-3-haiku": 200_000,
    "claude-3.5": 200_000,
    "claude-3-5": 200_000,
    "claude-3": 200_000,
    "claude-sonnet-4": 200_000,
    "claude-opus-4": 200_000,
    # Other common models
    "llama-3": 8_192,
    "mixtral": 32_768,
    "mistral": 32_768,
}

DEFAULT_CONTEXT_SIZE = 8_192

# Longest keys first so specific model names win over generic prefixes.
_SORTED_ENTRIES: list[tuple[str, int]] = sorted(
    MODEL_CONTEXT_SIZES.items(), key=lambda entry: len(entry[0]), reverse=True
)


@dataclass(frozen=True)
class ContextStatus:
    """Snapshot of a conversation's context usage for status display."""

    model: str
    context_size: int
    used_tokens: int
    remaining_tokens: int
    usage_percent: int
    near_limit: bool


def context_size(model: str | None) -> int:
    """Return the context window size for a model.

    Matching is case-insensitive and by substring, checking longer keys first.
    """
    if not model or not model.strip():
        return DEFAULT_CONTEXT_SIZE
    lower_model = model.lower()
    for key, size in _SORTED_ENTRIES:
        if key in lower_model:
            return size
    return DEFAULT_CONTEXT_SIZE


def remaining_tokens(conversation: Conversation, model: str | None) -> int:
    """Tokens left in the context window, never negative."""
    used = estimate_conversation_tokens(conversation)
    return max(0, context_size(model) - used)


def usage_percent(conversation: Conversation, model: str | None) -> int:
    """Context usage as an integer percentage in [0, 100]."""
    used = estimate_conversation_tokens(conversation)
    return int(min(100.0, max(0.0, used * 100.0 / context_size(model))))


def is_near_limit(conversation: Conversation, model: str | None, threshold: float = 0.9) -> bool:
    """Whether the used fraction of the context window has reached ``threshold``."""
    total = context_size(model)
    used_fraction = 1.0 - remaining_tokens(conversation, model) / total
    return used_fraction >= threshold


def context_status(conversation: Conversation, model: str | None, threshold: float = 0.9) -> ContextStatus:
    """Collect the budget figures the hosting UI displays."""
    size = context_size(model)
    used = estimate_conversation_tokens(conversation)
    return ContextStatus(
        model=model or "",
        context_size=size,
        used_tokens=used,
        remaining_tokens=max(0, size - used),
        usage_percent=usage_percent(conversation, model),
        near_limit=is_near_limit(conversation, model, threshold),
    )
