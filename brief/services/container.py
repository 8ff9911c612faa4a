"""Services container wiring the engine together from one configuration."""

from dataclasses import dataclass

from brief.clients.anthropic import AnthropicClient, AnthropicConfig
from brief.clients.base import ChatClient
from brief.config import AppConfig
from brief.services.conversation import ConversationService
from brief.services.conversation_store import InMemoryConversationStore
from brief.services.summary import LLMSummarizer, Summarizer, SummaryService
from brief.services.tool_executor import ToolExecutor
from brief.tools.registry import ToolsRegistry


@dataclass(slots=True)
class Services:
    """All service instances the host needs, built once at startup."""

    config: AppConfig
    client: ChatClient
    tools: ToolsRegistry
    summary: SummaryService
    tool_executor: ToolExecutor
    conversations: ConversationService
    store: InMemoryConversationStore


def create_services(
    config: AppConfig,
    client: ChatClient | None = None,
    tools: ToolsRegistry | None = None,
    summarizer: Summarizer | None = None,
) -> Services:
    """Build the service graph.

    Args:
        config: Resolved configuration
        client: Chat-completion client (defaults to an AnthropicClient)
        tools: Tool registry (defaults to an empty registry)
        summarizer: Summarizer (defaults to reusing the chat client)

    Returns:
        Wired services
    """
    if client is None:
        client = AnthropicClient(config.anthropic_api_key, AnthropicConfig.from_app_config(config))
    tools = tools if tools is not None else ToolsRegistry()
    summarizer = summarizer or LLMSummarizer(client, config.model)

    summary = SummaryService.from_config(summarizer, config)
    tool_executor = ToolExecutor(
        client,
        tools,
        compactor=summary,
        reserve_tokens=config.context_reserve_tokens,
        max_iterations=config.max_tool_iterations,
    )
    return Services(
        config=config,
        client=client,
        tools=tools,
        summary=summary,
        tool_executor=tool_executor,
        conversations=ConversationService(tool_executor, config),
        store=InMemoryConversationStore(),
    )
