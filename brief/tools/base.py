"""Base types and definitions for tools."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ValidationError

from brief.models.llm import LLMToolDefinition
from brief.utils.logging import get_logger

logger = get_logger(__name__)

ToolHandler = Callable[[BaseModel], Awaitable[Any]]


class ToolErrorKind(StrEnum):
    """Why a tool call could not produce a result."""

    UNKNOWN_TOOL = "unknown_tool"
    INVALID_ARGUMENTS = "invalid_arguments"
    EXECUTION_FAILED = "execution_failed"


@dataclass(frozen=True)
class ToolOk:
    """Successful tool execution."""

    value: Any

    @property
    def is_error(self) -> bool:
        return False

    def payload(self) -> Any:
        """JSON-serializable result fed back to the model."""
        if isinstance(self.value, BaseModel):
            return self.value.model_dump(mode="json")
        return self.value


@dataclass(frozen=True)
class ToolErr:
    """Failed tool execution, surfaced to the model instead of raised."""

    kind: ToolErrorKind
    message: str

    @property
    def is_error(self) -> bool:
        return True

    def payload(self) -> dict[str, Any]:
        return {"error": self.message}


ToolOutcome = ToolOk | ToolErr


@dataclass
class ToolDefinition:
    """Definition of a tool the model can call."""

    name: str
    description: str
    input_schema_class: type[BaseModel]
    handler: ToolHandler

    def get_json_schema(self) -> dict[str, Any]:
        """Get JSON schema for this tool's input."""
        return self.input_schema_class.model_json_schema()

    def parse_input(self, raw_input: dict[str, Any]) -> BaseModel:
        """Parse and validate tool input."""
        return self.input_schema_class.model_validate(raw_input)

    def to_llm_tool(self) -> LLMToolDefinition:
        return LLMToolDefinition(name=self.name, description=self.description, input_schema=self.get_json_schema())

    async def execute(self, arguments: dict[str, Any]) -> ToolOutcome:
        """Validate the arguments and run the handler.

        Returns:
            ToolOk with the handler's result, or ToolErr describing the failure
        """
        try:
            parsed = self.parse_input(arguments)
        except ValidationError as e:
            logger.warning(f"Tool {self.name} received invalid arguments: {e}")
            return ToolErr(ToolErrorKind.INVALID_ARGUMENTS, f"Invalid arguments for {self.name}: {e}")

        try:
            result = await self.handler(parsed)
        except Exception as e:
            logger.error(f"Tool {self.name} failed: {e}")
            return ToolErr(ToolErrorKind.EXECUTION_FAILED, str(e) or type(e).__name__)

        logger.debug(f"Tool {self.name} succeeded: {str(result)[:100]}...")
        return ToolOk(result)
