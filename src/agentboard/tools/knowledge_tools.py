"""Knowledge tools: store and retrieve entries by semantic similarity."""

from typing import Annotated, Any

from pydantic import Field

from agentboard.discovery import DiscoveryIndex
from agentboard.router import ToolRouter
from agentboard.search import QueryEngine


def register_knowledge_tools(router: ToolRouter, index: DiscoveryIndex, queries: QueryEngine) -> None:
    async def knowledge_store(
        collection: Annotated[str, Field(description="Collection name (e.g. 'technical-knowledge', 'code-patterns')")],
        content: Annotated[str, Field(description="Knowledge text to store")],
        metadata: Annotated[dict[str, Any] | None, Field(description="Optional metadata stored with the entry")] = None,
    ) -> dict[str, Any]:
        entry = await index.store_knowledge(collection, content, metadata)
        return {"id": entry.id, "collection": entry.collection, "createdAt": entry.created_at.isoformat()}

    async def knowledge_find(
        query: Annotated[str, Field(description="What you are looking for, in natural language")],
        collection: Annotated[
            str | None, Field(description="Collection to search. Omit or leave empty to search all collections.")
        ] = None,
        limit: Annotated[int | None, Field(description="Maximum results (default: 5, max: 50)")] = None,
    ) -> dict[str, Any]:
        matches = await queries.query_knowledge(query, collection, limit)
        return {
            "count": len(matches),
            "results": [{**m.entry.to_wire(), "score": m.score} for m in matches],
        }

    async def knowledge_list_collections() -> dict[str, Any]:
        return {"collections": await queries.list_collections()}

    async def knowledge_reindex(
        collection: Annotated[str | None, Field(description="Only rebuild this collection")] = None,
    ) -> dict[str, Any]:
        report = await index.reindex_knowledge(collection)
        return report.to_wire()

    router.add(
        "knowledge_store",
        "Store knowledge with automatic embedding generation. Returns the entry ID and collection.",
        knowledge_store,
    )
    router.add(
        "knowledge_find",
        "Search for knowledge by semantic similarity. Returns the top results with scores and metadata.",
        knowledge_find,
    )
    router.add(
        "knowledge_list_collections",
        "List every knowledge collection that holds at least one entry.",
        knowledge_list_collections,
    )
    router.add(
        "knowledge_reindex",
        "Rebuild similarity vectors for stored knowledge from the document store. "
        "Use after a partially stored entry.",
        knowledge_reindex,
    )
