"""MCP server setup and tool registration."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from fastmcp import FastMCP
from fastmcp.utilities.logging import get_logger

from agentboard.discovery import DiscoveryIndex
from agentboard.embeddings import EmbeddingProvider, build_embedding_provider
from agentboard.logging import configure_logging, format_component
from agentboard.models.discovery import IndexReport
from agentboard.registry import ToolMetadataRegistry
from agentboard.router import ToolRouter
from agentboard.search import QueryEngine
from agentboard.settings import Settings, settings as default_settings
from agentboard.storage import DocumentStore, VectorStore
from agentboard.tasks import TaskStore
from agentboard.tools import register_coordinator_tools, register_discovery_tools, register_knowledge_tools

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Long-lived clients and components shared by every call."""

    documents: DocumentStore
    vectors: VectorStore
    embedder: EmbeddingProvider
    registry: ToolMetadataRegistry
    router: ToolRouter
    tasks: TaskStore
    index: DiscoveryIndex
    queries: QueryEngine

    async def index_tools(self) -> IndexReport:
        """Index the current registry snapshot for discovery."""
        return await self.index.index_tools(self.registry.snapshot())


def build_services(
    settings: Settings | None = None,
    *,
    documents: DocumentStore | None = None,
    vectors: VectorStore | None = None,
    embedder: EmbeddingProvider | None = None,
) -> Services:
    """Wire stores, registry, router and capabilities together.

    Backends not passed in are built from ``settings``.
    """
    settings = settings or default_settings
    documents = documents or DocumentStore.from_settings(settings)
    vectors = vectors or VectorStore.from_settings(settings)
    embedder = embedder or build_embedding_provider(settings)

    registry = ToolMetadataRegistry()
    router = ToolRouter(registry)
    tasks = TaskStore(documents)
    index = DiscoveryIndex(documents, vectors, embedder)
    queries = QueryEngine(documents, vectors, embedder, settings)

    register_coordinator_tools(router, tasks, queries)
    register_knowledge_tools(router, index, queries)
    register_discovery_tools(router, index, queries)
    logger.info(f"{format_component('MCP')} Registered {len(registry)} tools")

    return Services(
        documents=documents,
        vectors=vectors,
        embedder=embedder,
        registry=registry,
        router=router,
        tasks=tasks,
        index=index,
        queries=queries,
    )


def create_server(services: Services, settings: Settings | None = None) -> FastMCP:
    """Create the FastMCP server. Tools are indexed for discovery on startup."""
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(server: FastMCP) -> AsyncIterator[None]:
        if settings.index_tools_on_startup:
            report = await services.index_tools()
            logger.info(f"{format_component('INDEX')} Startup indexing done: {report.indexed} tools")
        yield

    mcp = FastMCP(settings.server_name, lifespan=lifespan)
    services.router.mount(mcp)

    # Configure FastMCP client logging
    to_client_logger = get_logger(name="fastmcp.server.context.to_client")
    to_client_logger.setLevel(level=logging.INFO)
    return mcp


def main() -> None:
    """Run the FastMCP server (stdio mode)."""
    settings = default_settings
    configure_logging(settings.log_level)
    logger.info(f"Starting {settings.server_name} server...")
    mcp = create_server(build_services(settings), settings)
    mcp.run()


if __name__ == "__main__":
    main()
