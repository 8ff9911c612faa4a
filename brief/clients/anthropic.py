"""Anthropic API client with rate limiting and error handling."""

import asyncio
import json
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from anthropic import APIError, AsyncAnthropic
from anthropic.types import Message
from limits import parse
from limits.storage import MemoryStorage
from limits.strategies import MovingWindowRateLimiter

from brief.config import AppConfig
from brief.models.llm import LLMMessage, LLMResponse, LLMToolCall, LLMToolDefinition, LLMUsage
from brief.services.tokens import estimate_tokens
from brief.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class AnthropicConfig:
    """Configuration for the Anthropic API client."""

    model: str = "claude-3-5-sonnet-20241022"
    max_tokens: int = 1000
    temperature: float = 0.3
    max_retries: int = 3
    retry_delay: float = 1.0
    requests_per_minute: int = 50
    tokens_per_minute: int = 40_000

    @classmethod
    def from_app_config(cls, config: AppConfig) -> "AnthropicConfig":
        return cls(
            model=config.model,
            max_tokens=config.max_response_tokens,
            temperature=config.temperature,
            requests_per_minute=config.requests_per_minute,
            tokens_per_minute=config.tokens_per_minute,
        )


class AnthropicRateLimiter:
    """Request and token rate limiter using the limits library."""

    def __init__(self, requests_per_minute: int = 50, tokens_per_minute: int = 40_000):
        """Initialize rate limiter.

        Args:
            requests_per_minute: Maximum requests per minute
            tokens_per_minute: Maximum tokens per minute
        """
        self.storage = MemoryStorage()
        self.limiter = MovingWindowRateLimiter(self.storage)

        self.request_limit = parse(f"{requests_per_minute}/minute")
        self.token_limit = parse(f"{tokens_per_minute}/minute")

    async def check_rate_limit(self, estimated_tokens: int, identifier: str = "anthropic") -> None:
        """Wait until the request fits within the rate limits."""
        logger.debug(f"Checking rate limit for {estimated_tokens} tokens, identifier: {identifier}")

        if not self.limiter.hit(self.request_limit, identifier):
            await self._wait_for_reset(self.request_limit, identifier, "Request")

        token_identifier = f"{identifier}_tokens"
        if not self.limiter.hit(self.token_limit, token_identifier, cost=max(1, estimated_tokens)):
            await self._wait_for_reset(self.token_limit, token_identifier, "Token")

    async def _wait_for_reset(self, limit, identifier: str, label: str) -> None:
        window_stats = self.limiter.get_window_stats(limit, identifier)
        if window_stats:
            wait_time = max(0.0, window_stats.reset_time - time.time())
            if wait_time > 0:
                logger.warning(f"{label} rate limit exceeded, waiting {wait_time:.2f}s")
                await asyncio.sleep(wait_time)


class AnthropicClient:
    """Chat-completion client backed by the Anthropic Messages API."""

    def __init__(
        self,
        api_key: str | None,
        config: AnthropicConfig | None = None,
        client: AsyncAnthropic | None = None,
    ):
        """Initialize Anthropic client.

        Args:
            api_key: Anthropic API key, resolved by the caller's configuration
            config: Client configuration
            client: Pre-built SDK client (mainly for tests)

        Raises:
            ValueError: If no API key and no SDK client are provided
        """
        if client is None and not api_key:
            raise ValueError("An Anthropic API key is required (set ANTHROPIC_API_KEY)")

        self.config = config or AnthropicConfig()
        self.client = client or AsyncAnthropic(api_key=api_key)
        self.rate_limiter = AnthropicRateLimiter(self.config.requests_per_minute, self.config.tokens_per_minute)

    async def complete(
        self,
        model: str,
        messages: list[LLMMessage],
        tools: list[LLMToolDefinition] | None = None,
    ) -> LLMResponse:
        """Send a chat completion request.

        Args:
            model: Model identifier
            messages: Ordered, role-tagged messages
            tools: Tool definitions the model may call

        Returns:
            Provider-agnostic response
        """
        system_prompt, anthropic_messages = to_anthropic_messages(messages)

        estimated_tokens = estimate_tokens(system_prompt) + sum(estimate_tokens(m.content) for m in messages)
        logger.debug(f"Estimated tokens: {estimated_tokens}")
        await self.rate_limiter.check_rate_limit(estimated_tokens)

        request_params: dict[str, Any] = {
            "model": model or self.config.model,
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
            "messages": anthropic_messages,
        }
        if system_prompt:
            request_params["system"] = system_prompt
        if tools:
            request_params["tools"] = [tool.model_dump() for tool in tools]

        logger.debug(
            f"Making Anthropic API call with model: {request_params['model']}, "
            f"{len(anthropic_messages)} messages, {len(tools) if tools else 0} tools"
        )
        response: Message = await self._request_with_retries(
            lambda: self.client.messages.create(**request_params)
        )
        logger.debug(
            f"Response received - Stop reason: {response.stop_reason}, Content blocks: {len(response.content)}"
        )
        return from_anthropic_message(response)

    async def complete_text(self, prompt: str, model: str) -> str:
        """Single user-turn completion returning only the text."""
        response = await self.complete(model, [LLMMessage(role="user", content=prompt)])
        if response.message is None:
            return ""
        return response.message.content

    async def _request_with_retries(self, call: Callable[[], Awaitable[T]]) -> T:
        """Execute an Anthropic API request with retry logic."""
        for attempt in range(self.config.max_retries):
            try:
                return await call()

            except APIError as e:
                status_code = getattr(e, "status_code", None)
                last_attempt = attempt >= self.config.max_retries - 1

                if status_code == 429 and not last_attempt:
                    retry_after = 60
                    response = getattr(e, "response", None)
                    if response is not None and hasattr(response, "headers"):
                        retry_after = int(response.headers.get("retry-after", 60))
                    if retry_after < 120:
                        logger.warning(f"Rate limited by Anthropic, retrying in {retry_after}s")
                        await asyncio.sleep(retry_after)
                        continue

                elif status_code is not None and status_code >= 500 and not last_attempt:
                    await asyncio.sleep(self.config.retry_delay * (2**attempt))
                    continue

                raise

        raise RuntimeError(f"Failed to complete request after {self.config.max_retries} attempts")


def to_anthropic_messages(messages: list[LLMMessage]) -> tuple[str, list[dict[str, Any]]]:
    """Translate wire messages into the Anthropic request shape.

    System messages are folded into the system prompt, tool results become
    ``tool_result`` blocks on a user turn, and consecutive same-role turns are
    merged since the API requires alternation.
    """
    system_parts: list[str] = []
    converted: list[dict[str, Any]] = []

    for message in messages:
        if message.role == "system":
            if message.content.strip():
                system_parts.append(message.content)
            continue

        if message.role == "tool":
            role = "user"
            blocks: list[dict[str, Any]] = [
                {"type": "tool_result", "tool_use_id": message.tool_call_id, "content": message.content}
            ]
        else:
            role = message.role
            blocks = []
            if message.content.strip():
                blocks.append({"type": "text", "text": message.content})
            for call in message.tool_calls:
                blocks.append({"type": "tool_use", "id": call.id, "name": call.name, "input": _parse_input(call)})

        if not blocks:
            continue

        if converted and converted[-1]["role"] == role:
            converted[-1]["content"].extend(blocks)
        else:
            converted.append({"role": role, "content": blocks})

    return "\n\n".join(system_parts), converted


def from_anthropic_message(response: Message) -> LLMResponse:
    """Convert an Anthropic response to the provider-agnostic shape."""
    text_parts: list[str] = []
    tool_calls: list[LLMToolCall] = []

    for block in response.content:
        block_type = getattr(block, "type", None)
        if block_type == "text":
            text_parts.append(block.text)
        elif block_type == "tool_use":
            tool_calls.append(LLMToolCall(id=block.id, name=block.name, arguments=json.dumps(block.input)))
        else:
            logger.warning(f"Unknown content block type: {block_type}")

    usage = None
    if response.usage:
        usage = LLMUsage(
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            total_tokens=response.usage.input_tokens + response.usage.output_tokens,
        )

    message = None
    if text_parts or tool_calls:
        message = LLMMessage(role="assistant", content="".join(text_parts), tool_calls=tool_calls)

    return LLMResponse(
        message=message,
        stop_reason=response.stop_reason,
        usage=usage,
        model=response.model,
        provider="anthropic",
    )


def _parse_input(call: LLMToolCall) -> dict[str, Any]:
    try:
        parsed = json.loads(call.arguments or "{}")
    except json.JSONDecodeError:
        logger.warning(f"Tool call {call.id} has malformed arguments, sending empty input")
        return {}
    return parsed if isinstance(parsed, dict) else {}
