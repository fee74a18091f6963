"""
Shared pytest fixtures for agentboard tests.

This module provides:
- An in-memory stand-in for the Supabase table API
- Isolated Chroma collections on an ephemeral client
- A deterministic bag-of-words embedding provider
- Wired stores, index, query engine and full service graph
"""

from __future__ import annotations

import copy
import hashlib
import math
import re
import threading
import uuid
from collections import Counter, defaultdict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import chromadb
import httpx
import pytest

from agentboard.discovery import DiscoveryIndex
from agentboard.search import QueryEngine
from agentboard.server import Services, build_services
from agentboard.settings import Settings
from agentboard.storage import DocumentStore, VectorStore
from agentboard.tasks import TaskStore


# =============================================================================
# Document store fake
# =============================================================================


@dataclass
class FakeResponse:
    data: list[dict[str, Any]]


class FakeQuery:
    """Records a PostgREST-style query and runs it against ``FakeSupabase`` rows."""

    def __init__(self, db: FakeSupabase, table: str) -> None:
        self.db = db
        self.table = table
        self.operation = "select"
        self.columns = "*"
        self.payload: Any = None
        self.on_conflict = ""
        self.filters: list[tuple[str, str, Any]] = []
        self.order_by: tuple[str, bool] | None = None
        self.max_rows: int | None = None
        self.offset = 0

    def select(self, columns: str = "*") -> FakeQuery:
        self.operation, self.columns = "select", columns
        return self

    def insert(self, rows: Any) -> FakeQuery:
        self.operation, self.payload = "insert", rows
        return self

    def upsert(self, rows: Any, on_conflict: str = "") -> FakeQuery:
        self.operation, self.payload, self.on_conflict = "upsert", rows, on_conflict
        return self

    def update(self, values: dict[str, Any]) -> FakeQuery:
        self.operation, self.payload = "update", values
        return self

    def delete(self) -> FakeQuery:
        self.operation = "delete"
        return self

    def eq(self, column: str, value: Any) -> FakeQuery:
        self.filters.append(("eq", column, value))
        return self

    def neq(self, column: str, value: Any) -> FakeQuery:
        self.filters.append(("neq", column, value))
        return self

    def in_(self, column: str, values: list[Any]) -> FakeQuery:
        self.filters.append(("in", column, list(values)))
        return self

    def is_(self, column: str, value: Any) -> FakeQuery:
        self.filters.append(("is", column, None if value == "null" else value))
        return self

    def order(self, column: str, desc: bool = False) -> FakeQuery:
        self.order_by = (column, desc)
        return self

    def limit(self, count: int) -> FakeQuery:
        self.max_rows = count
        return self

    def range(self, start: int, end: int) -> FakeQuery:
        self.offset, self.max_rows = start, end - start + 1
        return self

    def _matches(self, row: dict[str, Any]) -> bool:
        for op, column, value in self.filters:
            current = row.get(column)
            if op == "eq" and current != value:
                return False
            if op == "neq" and current == value:
                return False
            if op == "in" and current not in value:
                return False
            if op == "is" and current is not value:
                return False
        return True

    def _project(self, row: dict[str, Any]) -> dict[str, Any]:
        if self.columns.strip() == "*":
            return copy.deepcopy(row)
        return {c.strip(): copy.deepcopy(row.get(c.strip())) for c in self.columns.split(",")}

    def execute(self) -> FakeResponse:
        self.db.calls.append((self.table, self.operation))
        if self.table in self.db.failing_tables:
            raise httpx.ConnectError(f"connection refused ({self.table})")
        with self.db.lock:
            rows = self.db.tables[self.table]
            match self.operation:
                case "insert":
                    new = self.payload if isinstance(self.payload, list) else [self.payload]
                    rows.extend(copy.deepcopy(new))
                    return FakeResponse(copy.deepcopy(new))
                case "upsert":
                    key = self.on_conflict or "id"
                    for item in copy.deepcopy(self.payload):
                        index = next((i for i, r in enumerate(rows) if r.get(key) == item[key]), None)
                        if index is None:
                            rows.append(item)
                        else:
                            rows[index] = {**rows[index], **item}
                    return FakeResponse(copy.deepcopy(self.payload))
                case "update":
                    updated = []
                    for row in rows:
                        if self._matches(row):
                            row.update(copy.deepcopy(self.payload))
                            updated.append(copy.deepcopy(row))
                    return FakeResponse(updated)
                case "delete":
                    kept = [r for r in rows if not self._matches(r)]
                    deleted = [r for r in rows if self._matches(r)]
                    self.db.tables[self.table] = kept
                    return FakeResponse(deleted)
                case _:
                    view = self.db.views.get(self.table)
                    source = view(self.db) if view else rows
                    selected = [r for r in source if self._matches(r)]
                    if self.order_by:
                        column, desc = self.order_by
                        selected.sort(key=lambda r: r.get(column), reverse=desc)
                    if self.max_rows is not None:
                        selected = selected[self.offset : self.offset + self.max_rows]
                    selected = selected[: self.db.max_rows]
                    return FakeResponse([self._project(r) for r in selected])


def _knowledge_collections(db: FakeSupabase) -> list[dict[str, Any]]:
    return [{"collection": c} for c in sorted({r["collection"] for r in db.tables["knowledge_entries"]})]


def _popular_collections(db: FakeSupabase, params: dict[str, Any]) -> list[dict[str, Any]]:
    counts = Counter(r["collection"] for r in db.tables["knowledge_usage"])
    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return [{"collection": c, "count": n} for c, n in ranked[: params.get("max_count", 5)]]


class FakeRpc:
    """A PostgREST function call against ``FakeSupabase`` rows."""

    def __init__(self, db: FakeSupabase, name: str, params: dict[str, Any]) -> None:
        self.db = db
        self.name = name
        self.params = params

    def execute(self) -> FakeResponse:
        self.db.calls.append((self.name, "rpc"))
        if self.name in self.db.failing_tables:
            raise httpx.ConnectError(f"connection refused ({self.name})")
        with self.db.lock:
            return FakeResponse(self.db.functions[self.name](self.db, self.params))


class FakeSupabase:
    """Thread-safe in-memory tables behind the ``client.table(name)`` builder API.

    Views and functions mirror the ones in schema.sql. Selects are capped at
    ``max_rows`` like a default PostgREST deployment.
    """

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.tables: dict[str, list[dict[str, Any]]] = defaultdict(list)
        self.failing_tables: set[str] = set()
        self.calls: list[tuple[str, str]] = []
        self.max_rows = 1000
        self.views: dict[str, Callable[[FakeSupabase], list[dict[str, Any]]]] = {
            "knowledge_collections": _knowledge_collections,
        }
        self.functions: dict[str, Callable[[FakeSupabase, dict[str, Any]], list[dict[str, Any]]]] = {
            "popular_collections": _popular_collections,
        }

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rpc(self, name: str, params: dict[str, Any] | None = None) -> FakeRpc:
        return FakeRpc(self, name, params or {})

    def rows(self, name: str) -> list[dict[str, Any]]:
        with self.lock:
            return copy.deepcopy(self.tables[name])


# =============================================================================
# Embedding fake
# =============================================================================


class HashingEmbedder:
    """Deterministic bag-of-words embeddings: shared words mean similar vectors."""

    def __init__(self, dimensions: int = 512) -> None:
        self.dimensions = dimensions
        self.calls: list[list[str]] = []

    @staticmethod
    def tokens(text: str) -> list[str]:
        words = re.findall(r"[a-z0-9]+", text.lower())
        return [w[:-1] if len(w) > 3 and w.endswith("s") else w for w in words]

    def vector(self, text: str) -> list[float]:
        values = [0.0] * self.dimensions
        for token in self.tokens(text):
            digest = hashlib.md5(token.encode()).hexdigest()
            values[int(digest, 16) % self.dimensions] += 1.0
        norm = math.sqrt(sum(v * v for v in values))
        if norm == 0:
            values[0] = 1.0
            return values
        return [v / norm for v in values]

    async def embed(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        return [self.vector(text) for text in texts]


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def settings() -> Settings:
    return Settings(supabase_url=None, supabase_service_role_key=None, openai_api_key=None)


@pytest.fixture
def supabase() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def documents(supabase: FakeSupabase) -> DocumentStore:
    return DocumentStore(supabase)


@pytest.fixture
def vectors() -> VectorStore:
    """Fresh collections per test on a shared in-memory Chroma client."""
    suffix = uuid.uuid4().hex[:12]
    return VectorStore(chromadb.EphemeralClient(), f"tools-{suffix}", f"knowledge-{suffix}")


@pytest.fixture
def embedder() -> HashingEmbedder:
    return HashingEmbedder()


@pytest.fixture
def task_store(documents: DocumentStore) -> TaskStore:
    return TaskStore(documents)


@pytest.fixture
def discovery_index(documents: DocumentStore, vectors: VectorStore, embedder: HashingEmbedder) -> DiscoveryIndex:
    return DiscoveryIndex(documents, vectors, embedder)


@pytest.fixture
def query_engine(
    documents: DocumentStore, vectors: VectorStore, embedder: HashingEmbedder, settings: Settings
) -> QueryEngine:
    return QueryEngine(documents, vectors, embedder, settings)


@pytest.fixture
def services(
    documents: DocumentStore, vectors: VectorStore, embedder: HashingEmbedder, settings: Settings
) -> Services:
    return build_services(settings, documents=documents, vectors=vectors, embedder=embedder)
