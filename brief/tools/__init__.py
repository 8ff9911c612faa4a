"""Tools the model can call during a turn."""

from brief.tools.base import ToolDefinition, ToolErr, ToolErrorKind, ToolOk, ToolOutcome
from brief.tools.registry import ToolsRegistry

__all__ = ["ToolDefinition", "ToolErr", "ToolErrorKind", "ToolOk", "ToolOutcome", "ToolsRegistry"]
