"""Application configuration.

The configuration is resolved once at process start and then handed to the
services that need it. Nothing below the entry point reads the environment.
"""

import os
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, Field

DEFAULT_MODEL = "claude-3-5-sonnet-20241022"
DEFAULT_SUMMARY_TARGET_TOKENS = 8000
DEFAULT_CONTEXT_RESERVE_TOKENS = 4000

ENV_API_KEY = "ANTHROPIC_API_KEY"
ENV_MODEL = "LLM_MODEL"
ENV_SUMMARY_DISABLED = "BRIEF_SUMMARY_DISABLED"
ENV_SUMMARY_TARGET = "BRIEF_SUMMARY_TARGET_TOKENS"
ENV_CONTEXT_RESERVE = "BRIEF_CONTEXT_RESERVE_TOKENS"
ENV_SHOW_TOOLS = "BRIEF_SHOW_TOOLS"
ENV_LOG_LEVEL = "LOG_LEVEL"


class AppConfig(BaseModel):
    """Resolved configuration for the engine and its host."""

    anthropic_api_key: str | None = None
    model: str = DEFAULT_MODEL
    max_response_tokens: int = Field(default=1000, gt=0)
    temperature: float = Field(default=0.3, ge=0.0, le=1.0)

    # Summarization / context budget
    summary_enabled: bool = True
    summary_target_tokens: int = Field(default=DEFAULT_SUMMARY_TARGET_TOKENS, gt=0)
    context_reserve_tokens: int = Field(default=DEFAULT_CONTEXT_RESERVE_TOKENS, ge=0)

    # Tool loop
    max_tool_iterations: int = Field(default=3, gt=0)
    show_tool_messages: bool = False

    # Client rate limits
    requests_per_minute: int = Field(default=50, gt=0)
    tokens_per_minute: int = Field(default=40_000, gt=0)

    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides: Any) -> "AppConfig":
        """Build a configuration from the environment.

        Precedence is explicit overrides, then environment variables, then defaults.

        Args:
            environ: Environment mapping (defaults to ``os.environ``)
            **overrides: Explicit field values that win over the environment

        Returns:
            Resolved configuration
        """
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}

        api_key = _clean(env.get(ENV_API_KEY))
        if api_key:
            values["anthropic_api_key"] = api_key

        model = _clean(env.get(ENV_MODEL))
        if model:
            values["model"] = model

        if _is_truthy(env.get(ENV_SUMMARY_DISABLED)):
            values["summary_enabled"] = False

        target = _positive_int(env.get(ENV_SUMMARY_TARGET))
        if target is not None:
            values["summary_target_tokens"] = target

        reserve = _positive_int(env.get(ENV_CONTEXT_RESERVE))
        if reserve is not None:
            values["context_reserve_tokens"] = reserve

        if _clean(env.get(ENV_SHOW_TOOLS)) == "1":
            values["show_tool_messages"] = True

        log_level = _clean(env.get(ENV_LOG_LEVEL))
        if log_level:
            values["log_level"] = log_level.upper()

        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls.model_validate(values)


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _is_truthy(value: str | None) -> bool:
    value = _clean(value)
    return value is not None and (value == "1" or value.lower() == "true")


def _positive_int(value: str | None) -> int | None:
    """Parse a positive integer, ignoring invalid values so the next source applies."""
    value = _clean(value)
    if value is None:
        return None
    try:
        parsed = int(value)
    except ValueError:
        return None
    return parsed if parsed > 0 else None
