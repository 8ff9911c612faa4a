"""Conversation service for running one user turn end to end."""

from brief.config import AppConfig
from brief.models.conversation import ChatMessage, Conversation, Role, Source
from brief.services.tool_executor import ToolExecutor
from brief.utils.logging import get_logger

logger = get_logger(__name__)


class ConversationService:
    """Appends user turns, resolves them through the tool loop and records the reply."""

    def __init__(self, tool_executor: ToolExecutor, config: AppConfig):
        """Initialize conversation service.

        Args:
            tool_executor: Tool resolution loop used to answer turns
            config: Resolved application configuration
        """
        self.tool_executor = tool_executor
        self.config = config

    def new_conversation(self, model: str | None = None) -> Conversation:
        return Conversation(default_model=model or self.config.model)

    async def process_message(
        self,
        message: str,
        conversation: Conversation,
        model: str | None = None,
        routing_hint: str | None = None,
    ) -> str:
        """Process a user message and return the assistant's reply.

        Failures inside the turn never propagate: they become a visible error reply
        appended like any other assistant message.

        Args:
            message: User's message
            conversation: Conversation the turn belongs to
            model: Optional model override for this turn
            routing_hint: Optional instruction that steers only this call

        Returns:
            Assistant reply text

        Raises:
            ValueError: If the message is empty
        """
        if not message or not message.strip():
            raise ValueError("Message cannot be empty.")

        logger.info(f"Processing message for conversation {conversation.id} ({len(conversation)} messages)")
        conversation.append(Role.USER, Source.USER_INPUT, message, model=model)
        if routing_hint and routing_hint.strip():
            conversation.append(Role.SYSTEM, Source.INTERNAL, routing_hint, model=model, id_prefix="hint")

        try:
            reply = await self.tool_executor.respond(conversation, model)
        except Exception as e:
            logger.error(f"Turn failed for conversation {conversation.id}: {e}", exc_info=True)
            detail = str(e)
            reply = f"ERROR {type(e).__name__}" + (f": {detail}" if detail.strip() else "")

        conversation.append(Role.ASSISTANT, Source.LLM_OUTPUT, reply, model=model, id_prefix="asst")

        usage = self.tool_executor.last_usage
        if usage.total_tokens:
            logger.info(f"Token usage - Input: {usage.input_tokens}, Output: {usage.output_tokens}")

        return reply

    def add_local_note(self, conversation: Conversation, text: str) -> ChatMessage:
        """Record display-only text that is never sent to the endpoint."""
        return conversation.append(Role.SYSTEM, Source.LOCAL, text, id_prefix="local")

    def visible_messages(self, conversation: Conversation) -> list[ChatMessage]:
        """Messages the user should see, per their provenance."""
        visible = []
        for message in conversation.messages:
            if message.source is Source.INTERNAL:
                continue
            if message.role is Role.TOOL and not self.config.show_tool_messages:
                continue
            visible.append(message)
        return visible
