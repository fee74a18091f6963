"""Supabase-backed document store.

One table per entity kind. Every call goes through ``_execute`` so PostgREST
and transport failures surface as ``BackendUnavailableError``. The Supabase
client is synchronous; calls run in a worker thread so the event loop stays
free and callers can cancel their await.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from typing import Any

import httpx
from postgrest.exceptions import APIError

from supabase import Client, create_client

from agentboard.exceptions import BackendUnavailableError
from agentboard.settings import Settings

logger = logging.getLogger(__name__)

HUMAN_TASKS = "human_tasks"
AGENT_TASKS = "agent_tasks"
TODOS = "agent_task_todos"
TOOL_DEFINITIONS = "tool_definitions"
KNOWLEDGE_ENTRIES = "knowledge_entries"
KNOWLEDGE_USAGE = "knowledge_usage"
KNOWLEDGE_COLLECTIONS = "knowledge_collections"
POPULAR_COLLECTIONS = "popular_collections"

# Below the PostgREST max_rows default of 1000, so a short page means the last page
PAGE_SIZE = 500


class DocumentStore:
    """Thin async facade over the Supabase table API."""

    def __init__(self, client: Client) -> None:
        self.client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> DocumentStore:
        """Create a store from SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY."""
        if not settings.supabase_url or not settings.supabase_service_role_key:
            raise BackendUnavailableError(
                "documents", "Missing SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY"
            )
        return cls(create_client(settings.supabase_url, settings.supabase_service_role_key))

    async def _execute(self, table: str, query: Any) -> list[dict[str, Any]]:
        try:
            response = await asyncio.to_thread(query.execute)
        except (APIError, httpx.HTTPError) as e:
            logger.error(f"[{table}] document store call failed: {e}")
            raise BackendUnavailableError("documents", str(e)) from e
        return response.data or []

    @staticmethod
    def _filtered(query: Any, filters: dict[str, Any]) -> Any:
        for column, value in filters.items():
            query = query.eq(column, value)
        return query

    async def insert(self, table: str, rows: dict[str, Any] | list[dict[str, Any]]) -> list[dict[str, Any]]:
        return await self._execute(table, self.client.table(table).insert(rows))

    async def upsert(self, table: str, rows: list[dict[str, Any]], on_conflict: str) -> list[dict[str, Any]]:
        return await self._execute(table, self.client.table(table).upsert(rows, on_conflict=on_conflict))

    async def select(
        self,
        table: str,
        *,
        columns: str = "*",
        order: str | None = "created_at",
        limit: int | None = None,
        in_: tuple[str, list[Any]] | None = None,
        **filters: Any,
    ) -> list[dict[str, Any]]:
        """Select rows matching equality ``filters``, oldest first by default."""
        query = self._filtered(self.client.table(table).select(columns), filters)
        if in_ is not None:
            query = query.in_(in_[0], in_[1])
        if order:
            query = query.order(order)
        if limit is not None:
            query = query.limit(limit)
        return await self._execute(table, query)

    async def get(self, table: str, **filters: Any) -> dict[str, Any] | None:
        rows = await self.select(table, order=None, limit=1, **filters)
        return rows[0] if rows else None

    async def pages(
        self, table: str, *, page_size: int = PAGE_SIZE, **filters: Any
    ) -> AsyncIterator[list[dict[str, Any]]]:
        """Yield every row matching ``filters``, one id-ordered page at a time."""
        start = 0
        while True:
            query = self._filtered(self.client.table(table).select("*"), filters)
            rows = await self._execute(table, query.order("id").range(start, start + page_size - 1))
            if rows:
                yield rows
            if len(rows) < page_size:
                return
            start += page_size

    async def rpc(self, function: str, params: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        """Call a Postgres function exposed through PostgREST."""
        return await self._execute(function, self.client.rpc(function, params or {}))

    async def update(
        self, table: str, values: dict[str, Any], *, is_null: str | None = None, **filters: Any
    ) -> list[dict[str, Any]]:
        """Set ``values`` on the rows matching ``filters`` and return them.

        Only the named columns are written, so concurrent updates to other
        columns or other rows are never overwritten. With ``is_null`` the
        update only applies while that column is still null, which makes a
        set-once column safe against concurrent writers.
        """
        if not filters:
            raise ValueError("update requires at least one filter")
        query = self._filtered(self.client.table(table).update(values), filters)
        if is_null is not None:
            query = query.is_(is_null, "null")
        return await self._execute(table, query)

    async def delete_all(self, table: str) -> int:
        """Delete every row of ``table``. PostgREST refuses unfiltered deletes."""
        rows = await self._execute(table, self.client.table(table).delete().neq("id", ""))
        return len(rows)
