"""Main FastAPI application."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from brief import __version__
from brief.api.endpoints import router
from brief.clients.base import ChatClient
from brief.config import AppConfig
from brief.services.container import create_services
from brief.tools.registry import ToolsRegistry
from brief.utils.logging import LogConfig, setup_logging


def create_app(
    config: AppConfig | None = None,
    client: ChatClient | None = None,
    tools: ToolsRegistry | None = None,
) -> FastAPI:
    """Create the FastAPI application.

    The configuration is resolved here, once, and passed down to every service.

    Args:
        config: Resolved configuration (defaults to ``AppConfig.from_env()``)
        client: Chat-completion client override
        tools: Tool registry override

    Returns:
        Configured application
    """
    config = config or AppConfig.from_env()
    setup_logging(LogConfig(level=config.log_level))

    app = FastAPI(
        title="brief",
        description=(
            "Conversational-state engine: tool-call resolution and context-window "
            "management for a chat-completion endpoint."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        tags_metadata=[
            {"name": "Conversation", "description": "Send user turns and read conversation history."},
            {"name": "Context", "description": "Context window usage and history compaction."},
            {"name": "Composer", "description": "Processing of pasted input before submission."},
            {"name": "Health", "description": "Service health monitoring and status checks."},
        ],
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.services = create_services(config, client=client, tools=tools)
    app.include_router(router)
    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("brief.main:create_app", factory=True, host="0.0.0.0", port=9001, log_level="info")
