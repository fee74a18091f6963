"""Discovery index: turns tool definitions and knowledge entries into vectors.

The document store is the source of truth. The vector store is a derived
index that ``index_tools`` and ``reindex_knowledge`` can rebuild from it at
any time. A write that lands in documents but not in vectors is reported as a
``PartialWriteError``, never rolled back.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Any

from agentboard.embeddings import EmbeddingProvider
from agentboard.exceptions import BackendUnavailableError, NotFoundError, PartialWriteError
from agentboard.logging import format_component
from agentboard.models.discovery import IndexReport, KnowledgeEntry, ToolDefinition
from agentboard.storage.documents import KNOWLEDGE_ENTRIES, TOOL_DEFINITIONS, DocumentStore
from agentboard.storage.vectors import VectorStore
from agentboard.validation import new_id, require_text, utcnow

logger = logging.getLogger(__name__)


def tool_text(definition: ToolDefinition) -> str:
    """Canonical text blob embedded for a tool."""
    text = f"{definition.name}: {definition.description}"
    properties = definition.input_schema.get("properties") or {}
    if properties:
        text += " Parameters: " + ", ".join(properties)
    return text


def _knowledge_metadata(entry: KnowledgeEntry) -> dict[str, Any]:
    return {"collection": entry.collection, "created_at": entry.created_at.timestamp()}


class DiscoveryIndex:
    """Writes tools and knowledge to both backends."""

    def __init__(self, documents: DocumentStore, vectors: VectorStore, embedder: EmbeddingProvider) -> None:
        self.documents = documents
        self.vectors = vectors
        self.embedder = embedder

    async def _embed(self, texts: list[str]) -> list[list[float]]:
        vectors = await self.embedder.embed(texts)
        if len(vectors) != len(texts):
            raise BackendUnavailableError("embeddings", f"expected {len(texts)} vectors, got {len(vectors)}")
        return vectors

    async def index_tools(self, definitions: Sequence[ToolDefinition]) -> IndexReport:
        """Embed and store a batch of tool definitions. Safe to re-run."""
        if not definitions:
            return IndexReport(indexed=0)

        names = [d.name for d in definitions]
        logger.info(f"{format_component('INDEX')} Indexing {len(names)} tools")
        embeddings = await self._embed([tool_text(d) for d in definitions])

        await self.documents.upsert(TOOL_DEFINITIONS, [d.to_row() for d in definitions], on_conflict="name")
        try:
            await self.vectors.upsert_tools(
                names,
                embeddings,
                [{"name": d.name, "registered_at": d.registered_at.timestamp()} for d in definitions],
            )
        except (BackendUnavailableError, asyncio.CancelledError) as e:
            logger.error(f"{format_component('INDEX')} Tool vectors not written: {e!r}")
            raise PartialWriteError(
                "tool definitions stored but not indexed for similarity search",
                succeeded="documents",
                failed="vectors",
                entity_ids=names,
            ) from e

        logger.info(f"{format_component('INDEX')} Indexed {len(names)} tools")
        return IndexReport(indexed=len(names), names=names)

    async def get_tool(self, name: str) -> ToolDefinition:
        name = require_text(name, "name")
        row = await self.documents.get(TOOL_DEFINITIONS, name=name)
        if row is None:
            raise NotFoundError(f"tool {name} not found", name=name)
        return ToolDefinition.model_validate(row)

    async def store_knowledge(
        self,
        collection: str,
        content: str,
        metadata: dict[str, Any] | None = None,
    ) -> KnowledgeEntry:
        """Store one knowledge entry in both backends.

        Raises ``PartialWriteError`` when the document landed but the vector
        did not, including when the caller cancels between the two writes.
        """
        entry = KnowledgeEntry(
            id=new_id(),
            collection=require_text(collection, "collection"),
            content=require_text(content, "content"),
            metadata=dict(metadata or {}),
            created_at=utcnow(),
        )
        [embedding] = await self._embed([entry.content])

        await self.documents.insert(KNOWLEDGE_ENTRIES, entry.to_row())
        try:
            await self.vectors.upsert_knowledge([entry.id], [embedding], [_knowledge_metadata(entry)])
        except (BackendUnavailableError, asyncio.CancelledError) as e:
            logger.error(f"{format_component('STORE')} [{entry.id}] Knowledge vector not written: {e!r}")
            raise PartialWriteError(
                f"knowledge entry {entry.id} stored but not retrievable by similarity",
                succeeded="documents",
                failed="vectors",
                entity_ids=[entry.id],
            ) from e

        logger.info(f"{format_component('STORE')} [{entry.id}] Stored knowledge in '{entry.collection}'")
        return entry

    async def reindex_knowledge(self, collection: str | None = None) -> IndexReport:
        """Rebuild knowledge vectors from the document store."""
        filters = {"collection": collection} if collection else {}
        indexed: list[str] = []
        async for rows in self.documents.pages(KNOWLEDGE_ENTRIES, **filters):
            entries = [KnowledgeEntry.model_validate(row) for row in rows]
            embeddings = await self._embed([e.content for e in entries])
            await self.vectors.upsert_knowledge(
                [e.id for e in entries], embeddings, [_knowledge_metadata(e) for e in entries]
            )
            indexed.extend(e.id for e in entries)
        if not indexed:
            return IndexReport(indexed=0)

        logger.info(f"{format_component('INDEX')} Reindexed {len(indexed)} knowledge entries")
        return IndexReport(indexed=len(indexed), names=indexed)
