"""In-memory conversation storage."""

from datetime import UTC, datetime, timedelta

from brief.models.conversation import Conversation


class InMemoryConversationStore:
    """In-memory conversation store with idle expiry.

    State is lost on restart. One writer per conversation at a time; no locking.
    """

    def __init__(self, timeout_minutes: int = 60):
        """Initialize the store.

        Args:
            timeout_minutes: Minutes without an update before a conversation expires
        """
        self.conversations: dict[str, Conversation] = {}
        self.timeout = timedelta(minutes=timeout_minutes)

    def add(self, conversation: Conversation) -> Conversation:
        self._cleanup_expired()
        self.conversations[conversation.id] = conversation
        return conversation

    def get(self, conversation_id: str) -> Conversation | None:
        """Get a conversation by id.

        Returns:
            The conversation if found and not expired, None otherwise
        """
        self._cleanup_expired()
        return self.conversations.get(conversation_id)

    def delete(self, conversation_id: str) -> bool:
        """Delete a conversation.

        Returns:
            True if it was deleted, False if not found
        """
        return self.conversations.pop(conversation_id, None) is not None

    def count(self) -> int:
        self._cleanup_expired()
        return len(self.conversations)

    def _cleanup_expired(self) -> None:
        """Remove expired conversations from memory."""
        current_time = datetime.now(UTC)
        expired = [
            conversation_id
            for conversation_id, conversation in self.conversations.items()
            if current_time - conversation.updated_at > self.timeout
        ]
        for conversation_id in expired:
            del self.conversations[conversation_id]
