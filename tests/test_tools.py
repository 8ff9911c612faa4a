"""Tests for tool definitions and the registry."""

import pytest
from pydantic import BaseModel, Field

from brief.tools import ToolDefinition, ToolErr, ToolErrorKind, ToolOk, ToolsRegistry


class LookupInput(BaseModel):
    """Input for the lookup tool."""

    key: str = Field(description="Key to look up")
    limit: int = 10


class LookupResult(BaseModel):
    key: str
    values: list[str]


async def lookup(params: LookupInput) -> LookupResult:
    return LookupResult(key=params.key, values=["a", "b"][: params.limit])


async def explode(params: LookupInput) -> dict:
    raise KeyError(params.key)


@pytest.fixture
def lookup_tool():
    return ToolDefinition(name="lookup", description="Look up a key", input_schema_class=LookupInput, handler=lookup)


class TestToolDefinition:
    """Tests for a single tool definition."""

    def test_json_schema(self, lookup_tool):
        """Test schema generation from the input model."""
        schema = lookup_tool.get_json_schema()
        assert schema["type"] == "object"
        assert set(schema["properties"]) == {"key", "limit"}
        assert schema["required"] == ["key"]

    def test_to_llm_tool(self, lookup_tool):
        """Test the definition offered to the model."""
        definition = lookup_tool.to_llm_tool()
        assert definition.name == "lookup"
        assert definition.description == "Look up a key"
        assert definition.input_schema == lookup_tool.get_json_schema()

    @pytest.mark.asyncio
    async def test_execute_ok(self, lookup_tool):
        """Test that model results are dumped to JSON-ready payloads."""
        outcome = await lookup_tool.execute({"key": "k", "limit": 1})

        assert isinstance(outcome, ToolOk)
        assert not outcome.is_error
        assert outcome.payload() == {"key": "k", "values": ["a"]}

    @pytest.mark.asyncio
    async def test_execute_invalid_arguments(self, lookup_tool):
        """Test validation failures."""
        outcome = await lookup_tool.execute({"limit": 1})

        assert isinstance(outcome, ToolErr)
        assert outcome.kind is ToolErrorKind.INVALID_ARGUMENTS
        assert outcome.is_error

    @pytest.mark.asyncio
    async def test_execute_handler_failure(self):
        """Test that handler exceptions become error outcomes."""
        tool = ToolDefinition(name="explode", description="Fails", input_schema_class=LookupInput, handler=explode)

        outcome = await tool.execute({"key": "missing"})

        assert outcome.kind is ToolErrorKind.EXECUTION_FAILED
        assert outcome.payload() == {"error": "'missing'"}


class TestToolsRegistry:
    """Tests for the registry."""

    def test_register_and_lookup(self, lookup_tool):
        """Test basic registration."""
        registry = ToolsRegistry([lookup_tool])

        assert len(registry) == 1
        assert registry.has_tool("lookup")
        assert registry.get_tool("lookup") is lookup_tool
        assert registry.get_tool("other") is None
        assert registry.get_tool_names() == ["lookup"]
        assert [t.name for t in registry.get_llm_tools()] == ["lookup"]

    def test_register_replaces_same_name(self, lookup_tool):
        """Test that a later tool with the same name wins."""
        replacement = ToolDefinition(name="lookup", description="v2", input_schema_class=LookupInput, handler=lookup)
        registry = ToolsRegistry([lookup_tool, replacement])

        assert len(registry) == 1
        assert registry.get_tool("lookup").description == "v2"

    @pytest.mark.asyncio
    async def test_execute_unknown_tool(self):
        """Test that unknown tools produce an error outcome."""
        outcome = await ToolsRegistry().execute("nope", {})

        assert outcome.kind is ToolErrorKind.UNKNOWN_TOOL
        assert outcome.payload() == {"error": "Unknown tool: nope"}

    @pytest.mark.asyncio
    async def test_execute_dispatches(self, lookup_tool):
        """Test dispatch by name."""
        outcome = await ToolsRegistry([lookup_tool]).execute("lookup", {"key": "k"})
        assert outcome.payload()["values"] == ["a", "b"]
