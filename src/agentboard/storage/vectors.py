"""Chroma-backed vector store.

Two collections: one for tool descriptions keyed by tool name, one for
knowledge entries keyed by entry id with the knowledge collection carried in
metadata. Embeddings are computed by the caller, so collections are created
without an embedding function.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

import chromadb
from chromadb.api import ClientAPI

from agentboard.exceptions import BackendUnavailableError
from agentboard.settings import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VectorHit:
    id: str
    score: float
    metadata: dict[str, Any]


class VectorStore:
    """Nearest-neighbour index over caller-supplied embeddings (cosine space)."""

    def __init__(
        self,
        client: ClientAPI,
        tools_collection: str = "tools",
        knowledge_collection: str = "knowledge",
    ) -> None:
        self.client = client
        self.tools_collection = tools_collection
        self.knowledge_collection = knowledge_collection

    @classmethod
    def from_settings(cls, settings: Settings) -> VectorStore:
        if settings.chroma_path:
            client = chromadb.PersistentClient(path=settings.chroma_path)
        else:
            client = chromadb.EphemeralClient()
        return cls(client, settings.chroma_tools_collection, settings.chroma_knowledge_collection)

    def _collection(self, name: str):
        return self.client.get_or_create_collection(
            name=name,
            metadata={"hnsw:space": "cosine"},
            embedding_function=None,
        )

    async def _call(self, name: str, fn, *args: Any, **kwargs: Any) -> Any:
        try:
            return await asyncio.to_thread(fn, *args, **kwargs)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            # chromadb raises a mix of ValueError, httpx and its own errors
            logger.error(f"[{name}] vector store call failed: {e}")
            raise BackendUnavailableError("vectors", str(e)) from e

    def _upsert(self, name: str, ids: list[str], embeddings: list[list[float]], metadatas: list[dict[str, Any]]) -> None:
        self._collection(name).upsert(ids=ids, embeddings=embeddings, metadatas=metadatas)

    def _query(self, name: str, embedding: list[float], limit: int, where: dict[str, Any] | None) -> list[VectorHit]:
        collection = self._collection(name)
        count = collection.count()
        if count == 0:
            return []
        result = collection.query(
            query_embeddings=[embedding],
            n_results=min(limit, count),
            where=where or None,
            include=["metadatas", "distances"],
        )
        ids = result["ids"][0]
        distances = result["distances"][0]
        metadatas = result["metadatas"][0]
        return [
            VectorHit(id=i, score=1.0 - float(d), metadata=dict(m or {}))
            for i, d, m in zip(ids, distances, metadatas)
        ]

    async def upsert_tools(self, names: list[str], embeddings: list[list[float]], metadatas: list[dict[str, Any]]) -> None:
        await self._call(self.tools_collection, self._upsert, self.tools_collection, names, embeddings, metadatas)

    async def upsert_knowledge(self, ids: list[str], embeddings: list[list[float]], metadatas: list[dict[str, Any]]) -> None:
        await self._call(self.knowledge_collection, self._upsert, self.knowledge_collection, ids, embeddings, metadatas)

    async def search_tools(self, embedding: list[float], limit: int) -> list[VectorHit]:
        return await self._call(self.tools_collection, self._query, self.tools_collection, embedding, limit, None)

    async def search_knowledge(self, embedding: list[float], limit: int, collection: str | None = None) -> list[VectorHit]:
        where = {"collection": collection} if collection else None
        return await self._call(
            self.knowledge_collection, self._query, self.knowledge_collection, embedding, limit, where
        )
