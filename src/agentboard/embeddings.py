"""Embedding providers.

The engine never computes vectors itself: it asks a provider. Two are
shipped, OpenAI's embeddings endpoint and a Text-Embeddings-Inference server.
"""

from __future__ import annotations

import logging
from typing import Protocol

import httpx
from openai import AsyncOpenAI, OpenAIError

from agentboard.exceptions import BackendUnavailableError
from agentboard.settings import Settings

logger = logging.getLogger(__name__)


class EmbeddingProvider(Protocol):
    async def embed(self, texts: list[str]) -> list[list[float]]: ...


class OpenAIEmbeddingProvider:
    """Embeddings from the OpenAI API."""

    def __init__(self, client: AsyncOpenAI, model: str = "text-embedding-3-small") -> None:
        self.client = client
        self.model = model

    async def embed(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        try:
            response = await self.client.embeddings.create(model=self.model, input=texts)
        except OpenAIError as e:
            logger.error(f"OpenAI embedding request failed: {e}")
            raise BackendUnavailableError("embeddings", str(e)) from e
        ordered = sorted(response.data, key=lambda item: item.index)
        return [list(item.embedding) for item in ordered]


class TEIEmbeddingProvider:
    """Embeddings from a HuggingFace Text-Embeddings-Inference server (``POST /embed``)."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self.client = client

    async def embed(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        try:
            response = await self.client.post("/embed", json={"inputs": texts, "normalize": True})
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"TEI embedding request failed: {e}")
            raise BackendUnavailableError("embeddings", str(e)) from e
        vectors = response.json()
        if len(vectors) != len(texts):
            raise BackendUnavailableError(
                "embeddings", f"expected {len(texts)} vectors, got {len(vectors)}"
            )
        return vectors


def build_embedding_provider(settings: Settings) -> EmbeddingProvider:
    """Select the provider named by ``settings.embedding_backend``."""
    match settings.embedding_backend:
        case "tei":
            client = httpx.AsyncClient(base_url=settings.tei_url, timeout=settings.embedding_timeout_seconds)
            return TEIEmbeddingProvider(client)
        case "openai":
            if not settings.openai_api_key:
                raise BackendUnavailableError("embeddings", "OPENAI_API_KEY not configured")
            client = AsyncOpenAI(api_key=settings.openai_api_key, timeout=settings.embedding_timeout_seconds)
            return OpenAIEmbeddingProvider(client, settings.embedding_model)
        case other:
            raise BackendUnavailableError("embeddings", f"unknown embedding backend {other!r}")
