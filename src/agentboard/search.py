"""Query and ranking over the discovery index."""

from __future__ import annotations

import logging

from agentboard.embeddings import EmbeddingProvider
from agentboard.exceptions import NotFoundError
from agentboard.logging import format_component
from agentboard.models.discovery import CollectionUsage, KnowledgeEntry, KnowledgeMatch, ToolDefinition, ToolMatch
from agentboard.settings import Settings, settings as default_settings
from agentboard.storage.documents import (
    KNOWLEDGE_COLLECTIONS,
    KNOWLEDGE_ENTRIES,
    KNOWLEDGE_USAGE,
    POPULAR_COLLECTIONS,
    TOOL_DEFINITIONS,
    DocumentStore,
)
from agentboard.storage.vectors import VectorStore
from agentboard.validation import new_id, normalize_limit, optional_text, require_text, utcnow

logger = logging.getLogger(__name__)

# Extra candidates fetched so ties at the cut-off can be ordered before truncating
TIE_HEADROOM = 10


class QueryEngine:
    """Similarity search for tools and knowledge, plus collection popularity."""

    def __init__(
        self,
        documents: DocumentStore,
        vectors: VectorStore,
        embedder: EmbeddingProvider,
        settings: Settings | None = None,
    ) -> None:
        self.documents = documents
        self.vectors = vectors
        self.embedder = embedder
        self.settings = settings or default_settings

    async def _embed_query(self, query: str) -> list[float]:
        [embedding] = await self.embedder.embed([query])
        return embedding

    async def discover_tools(self, query: str, limit: int | None = None) -> list[ToolMatch]:
        """Rank indexed tools by similarity to ``query``.

        Ties on score go to the most recently (re)registered tool.
        """
        query = require_text(query, "query")
        limit = normalize_limit(limit, self.settings.discover_default_limit, self.settings.discover_max_limit)

        hits = await self.vectors.search_tools(await self._embed_query(query), limit + TIE_HEADROOM)
        if not hits:
            return []

        rows = await self.documents.select(
            TOOL_DEFINITIONS, order=None, in_=("name", [hit.id for hit in hits])
        )
        definitions = {row["name"]: ToolDefinition.model_validate(row) for row in rows}
        matches = [
            ToolMatch(
                name=definition.name,
                description=definition.description,
                score=hit.score,
                registered_at=definition.registered_at,
            )
            for hit in hits
            if (definition := definitions.get(hit.id)) is not None
        ]
        matches.sort(key=lambda m: (m.score, m.registered_at), reverse=True)
        logger.debug(f"{format_component('SEARCH')} discover_tools({query!r}) -> {[m.name for m in matches[:limit]]}")
        return matches[:limit]

    async def query_knowledge(
        self,
        query: str,
        collection: str | None = None,
        limit: int | None = None,
    ) -> list[KnowledgeMatch]:
        """Rank stored knowledge by similarity, scoped to ``collection`` when given.

        A blank collection searches every collection. Each successful query
        records one usage row per collection it touched.
        """
        query = require_text(query, "query")
        collection = optional_text(collection)
        limit = normalize_limit(limit, self.settings.knowledge_default_limit, self.settings.knowledge_max_limit)

        if collection and await self.documents.get(KNOWLEDGE_ENTRIES, collection=collection) is None:
            raise NotFoundError(f"collection {collection} not found", collection=collection)

        hits = await self.vectors.search_knowledge(await self._embed_query(query), limit, collection)
        entries: dict[str, KnowledgeEntry] = {}
        if hits:
            rows = await self.documents.select(KNOWLEDGE_ENTRIES, in_=("id", [hit.id for hit in hits]))
            entries = {row["id"]: KnowledgeEntry.model_validate(row) for row in rows}

        # Vectors without a document are stale; the document store decides
        matches = [
            KnowledgeMatch(entry=entry, score=hit.score)
            for hit in hits
            if (entry := entries.get(hit.id)) is not None
        ]
        matches.sort(key=lambda m: (m.score, m.entry.created_at), reverse=True)

        touched = [collection] if collection else sorted({m.entry.collection for m in matches})
        await self._record_usage(touched)
        logger.debug(f"{format_component('SEARCH')} knowledge({collection or '*'}, {query!r}) -> {len(matches)} hits")
        return matches

    async def _record_usage(self, collections: list[str]) -> None:
        if not collections:
            return
        now = utcnow().isoformat()
        await self.documents.insert(
            KNOWLEDGE_USAGE, [{"id": new_id(), "collection": c, "created_at": now} for c in collections]
        )

    async def get_popular_collections(self, limit: int | None = None) -> list[CollectionUsage]:
        """Collections by number of queries served, most used first.

        Counting, ordering and the limit all happen in the database.
        """
        limit = normalize_limit(limit, self.settings.knowledge_default_limit, self.settings.knowledge_max_limit)
        rows = await self.documents.rpc(POPULAR_COLLECTIONS, {"max_count": limit})
        return [CollectionUsage(collection=row["collection"], count=row["count"]) for row in rows]

    async def list_collections(self) -> list[str]:
        rows = await self.documents.select(KNOWLEDGE_COLLECTIONS, columns="collection", order="collection")
        return [row["collection"] for row in rows]

