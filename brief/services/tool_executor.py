"""Tool resolution loop: turns one user turn into tool executions plus a final answer."""

import json
from typing import Any

from brief.clients.base import ChatClient
from brief.models.conversation import ChatMessage, Conversation, Role, Source, ToolCall, short_id
from brief.models.llm import LLMMessage, LLMToolCall, LLMUsage
from brief.services.summary import SummaryService
from brief.tools.base import ToolErr, ToolErrorKind, ToolOutcome
from brief.tools.registry import ToolsRegistry
from brief.utils.logging import get_logger

logger = get_logger(__name__)

MAX_ITERATIONS = 3
TOOL_LOOP_ERROR = "ERROR: tool loop did not resolve to a final assistant message."


class ToolExecutor:
    """Executes tool calls requested by the model, feeding results back until completion."""

    def __init__(
        self,
        client: ChatClient,
        tools: ToolsRegistry,
        compactor: SummaryService | None = None,
        reserve_tokens: int = 4000,
        max_iterations: int = MAX_ITERATIONS,
    ):
        """Initialize the tool executor.

        Args:
            client: Chat-completion endpoint
            tools: Tools offered to the model on every call
            compactor: Optional history compactor run before each outbound call
            reserve_tokens: Budget the compactor keeps free for request and response
            max_iterations: Maximum round trips before giving up
        """
        self.client = client
        self.tools = tools
        self.compactor = compactor
        self.reserve_tokens = reserve_tokens
        self.max_iterations = max_iterations
        self.last_usage = LLMUsage()

    async def respond(self, conversation: Conversation, model_override: str | None = None) -> str:
        """Resolve the conversation's latest turn into a final answer.

        Assistant tool-call messages and tool results are appended to the
        conversation as they happen.

        Args:
            conversation: Conversation whose last turn needs an answer
            model_override: Model to use instead of the conversation default

        Returns:
            The final assistant text, "" if the endpoint returned no message, or
            TOOL_LOOP_ERROR if the iteration ceiling was reached
        """
        model = model_override if model_override and model_override.strip() else conversation.default_model
        last = conversation.last_message
        routing_hint = last if last is not None and last.source is Source.INTERNAL else None
        turn_start = _turn_start(conversation, routing_hint)
        tool_definitions = self.tools.get_llm_tools()
        self.last_usage = LLMUsage()

        await self._compact(conversation, model, turn_start)
        outbound = render_messages(conversation, routing_hint)

        logger.info(
            f"Resolving turn for conversation {conversation.id} with {len(outbound)} messages, "
            f"{len(tool_definitions)} tools, max_iterations: {self.max_iterations}"
        )

        for step in range(self.max_iterations):
            if step > 0 and await self._compact(conversation, model, turn_start):
                outbound = render_messages(conversation, routing_hint)

            logger.debug(f"Tool loop iteration {step + 1}/{self.max_iterations}")
            response = await self.client.complete(model, outbound, tool_definitions or None)
            self.last_usage.add(response.usage)

            message = response.message
            if message is None:
                logger.info("Endpoint returned no message")
                return ""

            if not message.tool_calls:
                logger.info(f"Tool loop completed in {step + 1} iterations")
                return message.content

            logger.info(f"Model requested {len(message.tool_calls)} tool calls")
            assistant_message = self._save_assistant_message(conversation, message, model)
            outbound.append(
                LLMMessage(
                    role="assistant",
                    content=message.content,
                    tool_calls=[
                        LLMToolCall(id=pending.id, name=llm_call.name, arguments=llm_call.arguments)
                        for pending, llm_call in zip(assistant_message.tool_calls, message.tool_calls)
                    ],
                )
            )

            # Positional pairing; provider ids may repeat or be empty
            for pending, llm_call in zip(list(assistant_message.tool_calls), message.tool_calls):
                outbound.append(await self._execute_and_save(conversation, assistant_message, pending, llm_call, model))

        logger.warning(f"Tool loop reached max iterations ({self.max_iterations})")
        return TOOL_LOOP_ERROR

    async def _compact(self, conversation: Conversation, model: str, turn_start: ChatMessage | None) -> bool:
        if self.compactor is None:
            return False
        result = await self.compactor.trim_if_needed(conversation, model, self.reserve_tokens, keep_from=turn_start)
        return result.was_trimmed

    def _save_assistant_message(self, conversation: Conversation, message: LLMMessage, model: str) -> ChatMessage:
        tool_calls = []
        seen: set[str] = set()
        for call in message.tool_calls:
            local_id = call.id.strip()
            if not local_id or local_id in seen or conversation.has_emitted_tool_call(local_id):
                local_id = f"call_{short_id()}"
                logger.warning(f"Tool call {call.name} has unusable id {call.id!r}; using {local_id}")
            seen.add(local_id)
            tool_calls.append(
                ToolCall(id=local_id, provider_id=call.id, name=call.name, arguments=_arguments_or_empty(call))
            )
        return conversation.append(
            Role.ASSISTANT,
            Source.LLM_OUTPUT,
            message.content,
            model=model,
            tool_calls=tool_calls,
            id_prefix="asst",
        )

    async def _execute_and_save(
        self,
        conversation: Conversation,
        assistant_message: ChatMessage,
        pending: ToolCall,
        llm_call: LLMToolCall,
        model: str,
    ) -> LLMMessage:
        logger.debug(f"Executing tool: {llm_call.name} with arguments: {llm_call.arguments}")
        outcome = await self._execute(llm_call)
        payload = outcome.payload()
        result_text = _to_json(payload)

        if isinstance(outcome, ToolErr):
            resolved = pending.failed(payload)
        else:
            resolved = pending.completed(payload if isinstance(payload, dict) else {"result": payload})
        conversation.replace_tool_call(assistant_message, resolved)

        conversation.append(
            Role.TOOL,
            Source.TOOL_OUTPUT,
            result_text,
            model=model,
            tool_call_id=pending.id,
            id_prefix="tool",
        )
        return LLMMessage(role="tool", content=result_text, tool_call_id=pending.id)

    async def _execute(self, llm_call: LLMToolCall) -> ToolOutcome:
        try:
            arguments = parse_arguments(llm_call.arguments)
        except ValueError as e:
            logger.warning(f"Tool {llm_call.name} called with malformed arguments: {e}")
            return ToolErr(ToolErrorKind.INVALID_ARGUMENTS, str(e))
        return await self.tools.execute(llm_call.name, arguments)


def _turn_start(conversation: Conversation, routing_hint: ChatMessage | None) -> ChatMessage | None:
    """The message that opened the turn being resolved; the routing hint follows it."""
    messages = conversation.messages
    if routing_hint is not None and len(messages) > 1:
        return messages[-2]
    return conversation.last_message


def render_messages(conversation: Conversation, routing_hint: ChatMessage | None = None) -> list[LLMMessage]:
    """Render a conversation into the endpoint's message format.

    Only the given routing hint is sent out of all internal messages, local
    display-only messages are never sent, and tool results whose call is no
    longer present (for example after compaction) are dropped.
    """
    rendered: list[LLMMessage] = []
    open_call_ids: set[str] = set()

    for message in conversation.messages:
        if not _should_send(message, routing_hint):
            continue

        content = message.content or ""
        if message.role is Role.SYSTEM:
            if content.strip():
                rendered.append(LLMMessage(role="system", content=content))

        elif message.role is Role.USER:
            if content.strip() and message.source in (Source.USER_INPUT, Source.INTERNAL):
                rendered.append(LLMMessage(role="user", content=content))

        elif message.role is Role.ASSISTANT:
            if message.source is not Source.LLM_OUTPUT:
                continue
            tool_calls = [
                LLMToolCall(id=call.id, name=call.name, arguments=json.dumps(call.arguments))
                for call in message.tool_calls or []
            ]
            if tool_calls or content.strip():
                rendered.append(LLMMessage(role="assistant", content=content, tool_calls=tool_calls))
                open_call_ids.update(call.id for call in tool_calls)

        elif message.role is Role.TOOL:
            if message.tool_call_id not in open_call_ids or not content.strip():
                logger.debug(f"Skipping tool result without a matching call: {message.tool_call_id}")
                continue
            rendered.append(LLMMessage(role="tool", content=content, tool_call_id=message.tool_call_id))

    return rendered


def _should_send(message: ChatMessage, routing_hint: ChatMessage | None) -> bool:
    if not message.is_sendable:
        return False
    if message.source is Source.INTERNAL:
        return message is routing_hint
    has_content = bool(message.content and message.content.strip())
    is_tool_response = message.role is Role.TOOL and message.tool_call_id is not None
    return has_content or message.has_tool_calls or is_tool_response


def parse_arguments(arguments: str | None) -> dict[str, Any]:
    """Parse a JSON-encoded argument object.

    Raises:
        ValueError: If the string is not a JSON object
    """
    if arguments is None or not arguments.strip():
        return {}
    try:
        parsed = json.loads(arguments)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON: {arguments}") from e
    if not isinstance(parsed, dict):
        raise ValueError(f"Tool arguments must be a JSON object: {arguments}")
    return parsed


def _arguments_or_empty(call: LLMToolCall) -> dict[str, Any]:
    try:
        return parse_arguments(call.arguments)
    except ValueError:
        return {}


def _to_json(payload: Any) -> str:
    try:
        return json.dumps(payload, indent=2, default=str)
    except (TypeError, ValueError):
        return str(payload)
