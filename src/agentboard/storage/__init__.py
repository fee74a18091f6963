"""Backends: Supabase documents and Chroma vectors."""

from agentboard.storage.documents import DocumentStore
from agentboard.storage.vectors import VectorHit, VectorStore

__all__ = ["DocumentStore", "VectorHit", "VectorStore"]
