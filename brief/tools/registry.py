"""Tools registry for managing the tools offered to the model."""

from collections.abc import Iterable
from typing import Any

from brief.models.llm import LLMToolDefinition
from brief.tools.base import ToolDefinition, ToolErr, ToolErrorKind, ToolOutcome
from brief.utils.logging import get_logger

logger = get_logger(__name__)


class ToolsRegistry:
    """Registry of tools available to the tool resolution loop."""

    def __init__(self, tools: Iterable[ToolDefinition] = ()):
        """Initialize the registry with an optional initial tool set."""
        self._tools: dict[str, ToolDefinition] = {}
        for tool in tools:
            self.register_tool(tool)

    def __len__(self) -> int:
        return len(self._tools)

    def register_tool(self, tool: ToolDefinition) -> None:
        """Register a tool, replacing any tool with the same name."""
        if tool.name in self._tools:
            logger.warning(f"Replacing already registered tool: {tool.name}")
        self._tools[tool.name] = tool

    def get_tool(self, name: str) -> ToolDefinition | None:
        return self._tools.get(name)

    def get_llm_tools(self) -> list[LLMToolDefinition]:
        """Get the definitions of all registered tools in registration order."""
        return [tool.to_llm_tool() for tool in self._tools.values()]

    def get_tool_names(self) -> list[str]:
        """Get list of all registered tool names."""
        return list(self._tools.keys())

    def has_tool(self, name: str) -> bool:
        """Check if a tool is registered."""
        return name in self._tools

    async def execute(self, name: str, arguments: dict[str, Any]) -> ToolOutcome:
        """Execute a tool by name; unknown names produce an error outcome."""
        tool = self._tools.get(name)
        if tool is None:
            logger.error(f"Unknown tool requested: {name}")
            return ToolErr(ToolErrorKind.UNKNOWN_TOOL, f"Unknown tool: {name}")
        return await tool.execute(arguments)
