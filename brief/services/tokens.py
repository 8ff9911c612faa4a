"""Token estimation for text and conversations.

Uses a character-based approximation (about four characters per token for
English). The goal is conservative budget pressure, not billing accuracy.
"""

import math

from brief.models.conversation import Conversation

CHARS_PER_TOKEN = 4.0
WORDS_PER_TOKEN = 0.75


def estimate_tokens(text: str | None) -> int:
    """Estimate the token count of a piece of text."""
    if not text:
        return 0
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def estimate_conversation_tokens(conversation: Conversation | None) -> int:
    """Estimate the tokens a conversation consumes.

    Internal routing hints and local display-only messages are not counted.
    """
    if conversation is None:
        return 0
    return sum(
        estimate_tokens(message.content)
        for message in conversation.messages
        if message.source.counts_toward_budget
    )


def words_to_tokens(words: int) -> int:
    """Convert a word count to an estimated token count."""
    return math.ceil(words / WORDS_PER_TOKEN)


def tokens_to_words(tokens: int) -> int:
    """Convert a token count to an estimated word count."""
    return int(tokens * WORDS_PER_TOKEN)


def count_words(text: str | None) -> int:
    if not text or text.isspace():
        return 0
    return len(text.split())


def count_lines(text: str | None) -> int:
    if not text:
        return 0
    return text.count("\n") + 1
