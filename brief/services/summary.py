"""Summarization for long pastes and for keeping conversations inside the context window.

Both uses share one primitive: ask the summarizer to compress text to a target
size, and fall back to deterministic truncation when that fails.
"""

from dataclasses import dataclass
from typing import Protocol

from brief.clients.base import ChatClient
from brief.config import AppConfig
from brief.models.conversation import ChatMessage, Conversation, Role, Source, short_id
from brief.services.context import remaining_tokens
from brief.services.tokens import count_lines, estimate_tokens, tokens_to_words
from brief.utils.logging import get_logger

logger = get_logger(__name__)

# Thresholds for placeholder usage
PLACEHOLDER_MIN_LINES = 3
PLACEHOLDER_MIN_CHARS = 150

# Summarization tuning
SUMMARY_WORD_RATIO = 0.85
MIN_SUMMARY_TOKENS = 500
MESSAGES_TO_PRESERVE = 4
CHARS_PER_TOKEN = 4
TRUNCATION_MARKER = "\n[... truncated]"
SUMMARY_PREFIX = "[Earlier conversation summarized]\n"

SUMMARY_PROMPT = """Summarize the following {context} concisely in approximately {words} words.
Preserve key information, code snippets, file paths, and important technical details.
Do not add commentary or preamble - provide only the summary.

---
{text}
"""


class Summarizer(Protocol):
    """Compresses text to roughly ``target_tokens`` tokens; raises on failure."""

    async def summarize(self, text: str, target_tokens: int, context: str) -> str: ...


class LLMSummarizer:
    """Summarizer that reuses the chat-completion endpoint."""

    def __init__(self, client: ChatClient, model: str):
        self.client = client
        self.model = model

    async def summarize(self, text: str, target_tokens: int, context: str) -> str:
        target_words = tokens_to_words(int(target_tokens * SUMMARY_WORD_RATIO))
        prompt = SUMMARY_PROMPT.format(context=context, words=target_words, text=text)
        summary = await self.client.complete_text(prompt, self.model)
        if not summary or not summary.strip():
            raise ValueError("Summarizer returned an empty response")
        return summary


@dataclass(frozen=True)
class SummarizeResult:
    """Outcome of a summarization attempt."""

    text: str
    was_truncated: bool


@dataclass(frozen=True)
class PasteSummary:
    """Result of processing a paste.

    Attributes:
        display_text: Text shown in the composer (placeholder or original)
        actual_text: Text sent on submit (summarized if needed, or original)
        was_summarized: Whether the content went through summarization
        was_truncated: Whether summarization failed and content was truncated
        line_count: Number of lines in the original content
    """

    display_text: str
    actual_text: str
    was_summarized: bool
    was_truncated: bool
    line_count: int


@dataclass(frozen=True)
class TrimResult:
    """Result of context trimming."""

    messages: list[ChatMessage]
    was_trimmed: bool
    was_truncated: bool


@dataclass(frozen=True)
class CompactionPlan:
    """The message range chosen for compaction and its token budget."""

    start: int
    end: int
    text: str
    source_tokens: int
    target_tokens: int


class SummaryService:
    """Summarizes pasted content and compacts conversation history."""

    def __init__(
        self,
        summarizer: Summarizer,
        summary_enabled: bool = True,
        summary_target_tokens: int = 8000,
        messages_to_preserve: int = MESSAGES_TO_PRESERVE,
    ):
        """Initialize the summary service.

        Args:
            summarizer: Compression capability, usually an LLMSummarizer
            summary_enabled: Whether pastes above the target get summarized
            summary_target_tokens: Target size for summarized pastes
            messages_to_preserve: Trailing messages compaction never touches
        """
        self.summarizer = summarizer
        self.summary_enabled = summary_enabled
        self.summary_target_tokens = summary_target_tokens
        self.messages_to_preserve = messages_to_preserve

    @classmethod
    def from_config(cls, summarizer: Summarizer, config: AppConfig) -> "SummaryService":
        return cls(
            summarizer,
            summary_enabled=config.summary_enabled,
            summary_target_tokens=config.summary_target_tokens,
        )

    async def process_paste(self, pasted_text: str, paste_index: int) -> PasteSummary:
        """Process pasted content, summarizing it if it exceeds the target size.

        Args:
            pasted_text: Raw pasted text
            paste_index: Sequence number used in the placeholder label

        Returns:
            Display placeholder plus the text to send on submit
        """
        if not pasted_text:
            return PasteSummary("", "", False, False, 0)

        line_count = count_lines(pasted_text)
        tokens = estimate_tokens(pasted_text)

        # Any line break forces a placeholder.
        use_placeholder = (
            "\n" in pasted_text
            or "\r" in pasted_text
            or line_count >= PLACEHOLDER_MIN_LINES
            or len(pasted_text) > PLACEHOLDER_MIN_CHARS
        )
        display_text = f"[Pasted text {paste_index}]" if use_placeholder else pasted_text

        if not self.summary_enabled or tokens <= self.summary_target_tokens:
            return PasteSummary(display_text, pasted_text, False, False, line_count)

        logger.info(f"Summarizing paste {paste_index}: {tokens} tokens > {self.summary_target_tokens} target")
        result = await self.summarize_with_fallback(pasted_text, self.summary_target_tokens, "pasted content")
        label = "truncated" if result.was_truncated else "summarized"
        display_text = f"[Pasted text {paste_index} ({label})]"
        return PasteSummary(display_text, result.text, True, result.was_truncated, line_count)

    async def trim_if_needed(
        self,
        conversation: Conversation,
        model: str,
        reserve_tokens: int,
        keep_from: ChatMessage | None = None,
    ) -> TrimResult:
        """Compact a conversation in place so ``reserve_tokens`` fit in the context window.

        Leading system messages and the last few messages are preserved; the range
        between them is replaced by a single summary message. An assistant message
        is never separated from the tool results that answer it.

        Args:
            conversation: Conversation to compact
            model: Model whose context window applies
            reserve_tokens: Tokens needed for the next request and its response
            keep_from: Message that starts the in-flight turn; it and everything after it are kept

        Returns:
            The resulting message list and whether trimming or truncation happened
        """
        remaining = remaining_tokens(conversation, model)
        if remaining >= reserve_tokens:
            return TrimResult(list(conversation.messages), False, False)

        plan = self.plan_compaction(conversation, remaining, reserve_tokens, keep_from)
        if plan is None:
            return TrimResult(list(conversation.messages), False, False)

        logger.info(
            f"Compacting conversation {conversation.id}: messages [{plan.start}, {plan.end}) "
            f"{plan.source_tokens} -> ~{plan.target_tokens} tokens (remaining {remaining}, reserve {reserve_tokens})"
        )
        result = await self.summarize_with_fallback(plan.text, plan.target_tokens, "conversation history")

        summary_message = ChatMessage(
            id=f"summary_{short_id()}",
            conversation_id=conversation.id,
            index=plan.start,
            role=Role.SYSTEM,
            source=Source.SYSTEM,
            content=SUMMARY_PREFIX + result.text,
            model=model,
            provider=conversation.provider,
        )
        conversation.replace_range(plan.start, plan.end, summary_message)
        return TrimResult(list(conversation.messages), True, result.was_truncated)

    def plan_compaction(
        self,
        conversation: Conversation,
        remaining: int,
        reserve_tokens: int,
        keep_from: ChatMessage | None = None,
    ) -> CompactionPlan | None:
        """Select the range to compact, or None when nothing is eligible."""
        messages = conversation.messages
        if len(messages) <= 2:
            return None

        start = conversation.leading_system_count()
        end = max(start, len(messages) - self.messages_to_preserve)
        if keep_from is not None:
            keep_index = next((i for i, message in enumerate(messages) if message is keep_from), None)
            if keep_index is not None:
                end = min(end, keep_index)
        # Tool results stay with the assistant message that requested them
        while start < end < len(messages) and messages[end].role is Role.TOOL:
            end -= 1
        if end <= start:
            return None

        text = render_for_summary(messages[start:end])
        source_tokens = estimate_tokens(text)
        tokens_to_free = reserve_tokens - remaining + MIN_SUMMARY_TOKENS
        desired_tokens = max(MIN_SUMMARY_TOKENS, source_tokens - tokens_to_free)
        target_tokens = min(source_tokens, desired_tokens)
        return CompactionPlan(start, end, text, source_tokens, target_tokens)

    async def summarize(self, text: str, target_tokens: int, context: str) -> str:
        """Summarize text to fit a target size; the fallback path is not reported."""
        return (await self.summarize_with_fallback(text, target_tokens, context)).text

    async def summarize_with_fallback(self, text: str, target_tokens: int, context: str) -> SummarizeResult:
        """Summarize text, falling back to truncation if the summarizer fails."""
        try:
            summary = await self.summarizer.summarize(text, target_tokens, context)
        except Exception as e:
            logger.warning(f"Summarization of {context} failed, truncating instead: {type(e).__name__}: {e}")
            return SummarizeResult(truncate_to_tokens(text, target_tokens), True)
        return SummarizeResult(summary, False)


def render_for_summary(messages: list[ChatMessage]) -> str:
    """Render messages as ``Role: content`` blocks separated by blank lines."""
    return "\n\n".join(
        f"{message.role.value.capitalize()}: {message.content}"
        for message in messages
        if message.source.counts_toward_budget
    )


def truncate_to_tokens(text: str, target_tokens: int) -> str:
    """Cut text to at most ``target_tokens * CHARS_PER_TOKEN`` characters and mark it.

    The marker is appended even when nothing is cut.
    """
    target_chars = max(0, target_tokens) * CHARS_PER_TOKEN
    return text[:target_chars] + TRUNCATION_MARKER
