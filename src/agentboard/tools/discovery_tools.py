"""Tool discovery: find capabilities by what they do."""

from typing import Annotated, Any

from pydantic import Field

from agentboard.discovery import DiscoveryIndex
from agentboard.router import ToolRouter
from agentboard.search import QueryEngine


def register_discovery_tools(router: ToolRouter, index: DiscoveryIndex, queries: QueryEngine) -> None:
    async def discover_tools(
        query: Annotated[
            str,
            Field(description="Natural language description of the tools you need (e.g. 'database operations')"),
        ],
        limit: Annotated[int | None, Field(description="Maximum number of results (default: 5, max: 20)")] = None,
    ) -> dict[str, Any]:
        matches = await queries.discover_tools(query, limit)
        return {
            "count": len(matches),
            "tools": [{"name": m.name, "description": m.description, "score": m.score} for m in matches],
        }

    async def get_tool_schema(
        tool_name: Annotated[
            str, Field(alias="toolName", description="Exact tool name (use discover_tools first to find it)")
        ],
    ) -> dict[str, Any]:
        definition = await index.get_tool(tool_name)
        return definition.to_wire()

    router.add(
        "discover_tools",
        "Discover tools using natural language semantic search. Returns matching tool names "
        "with descriptions and similarity scores.",
        discover_tools,
    )
    router.add(
        "get_tool_schema",
        "Get the complete input schema for a tool. Use after discover_tools to learn how to call it.",
        get_tool_schema,
    )
