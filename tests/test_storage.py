"""Unit tests for the document and vector store wrappers."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
from postgrest.exceptions import APIError

from agentboard.exceptions import BackendUnavailableError
from agentboard.settings import Settings
from agentboard.storage import DocumentStore, VectorStore
from agentboard.storage.documents import AGENT_TASKS, HUMAN_TASKS


class TestDocumentStore:
    def test_missing_credentials_fail_loudly(self) -> None:
        with pytest.raises(BackendUnavailableError, match="SUPABASE_URL"):
            DocumentStore.from_settings(Settings(supabase_url=None, supabase_service_role_key=None))

    def test_client_created_from_settings(self) -> None:
        with patch("agentboard.storage.documents.create_client") as create_client:
            store = DocumentStore.from_settings(
                Settings(supabase_url="https://example.supabase.co", supabase_service_role_key="service-key")
            )

        create_client.assert_called_once_with("https://example.supabase.co", "service-key")
        assert store.client is create_client.return_value

    @pytest.mark.asyncio
    async def test_postgrest_errors_wrapped(self) -> None:
        client = MagicMock()
        client.table.return_value.insert.return_value.execute.side_effect = APIError(
            {"message": "relation does not exist", "code": "42P01"}
        )

        with pytest.raises(BackendUnavailableError) as exc_info:
            await DocumentStore(client).insert(HUMAN_TASKS, {"id": "h1"})

        assert exc_info.value.backend == "documents"

    @pytest.mark.asyncio
    async def test_unfiltered_update_refused(self, documents: DocumentStore) -> None:
        with pytest.raises(ValueError):
            await documents.update(HUMAN_TASKS, {"status": "completed"})

    @pytest.mark.asyncio
    async def test_select_filters_and_orders(self, documents: DocumentStore) -> None:
        await documents.insert(
            HUMAN_TASKS,
            [
                {"id": "b", "prompt": "second", "status": "pending", "created_at": "2026-03-01T00:00:02+00:00"},
                {"id": "a", "prompt": "first", "status": "pending", "created_at": "2026-03-01T00:00:01+00:00"},
                {"id": "c", "prompt": "done", "status": "completed", "created_at": "2026-03-01T00:00:03+00:00"},
            ],
        )

        pending = await documents.select(HUMAN_TASKS, status="pending")
        subset = await documents.select(HUMAN_TASKS, in_=("id", ["a", "c"]))

        assert [r["id"] for r in pending] == ["a", "b"]
        assert [r["id"] for r in subset] == ["a", "c"]
        assert await documents.get(HUMAN_TASKS, id="missing") is None

    @pytest.mark.asyncio
    async def test_update_guarded_by_null_column(self, documents: DocumentStore) -> None:
        await documents.insert(AGENT_TASKS, {"id": "a1", "human_prompt_notes_added_at": None})

        first = await documents.update(
            AGENT_TASKS, {"human_prompt_notes_added_at": "t1"}, is_null="human_prompt_notes_added_at", id="a1"
        )
        second = await documents.update(
            AGENT_TASKS, {"human_prompt_notes_added_at": "t2"}, is_null="human_prompt_notes_added_at", id="a1"
        )

        assert [r["human_prompt_notes_added_at"] for r in first] == ["t1"]
        assert second == []
        assert (await documents.get(AGENT_TASKS, id="a1"))["human_prompt_notes_added_at"] == "t1"

    @pytest.mark.asyncio
    async def test_pages_walk_past_the_row_cap(self, documents: DocumentStore, supabase) -> None:
        supabase.tables[HUMAN_TASKS] = [{"id": f"{i:05d}", "prompt": "p"} for i in range(2300)]

        pages = [page async for page in documents.pages(HUMAN_TASKS)]

        assert [len(page) for page in pages] == [500, 500, 500, 500, 300]
        assert [r["id"] for page in pages for r in page] == [f"{i:05d}" for i in range(2300)]

    @pytest.mark.asyncio
    async def test_pages_exact_multiple(self, documents: DocumentStore, supabase) -> None:
        supabase.tables[HUMAN_TASKS] = [{"id": str(i), "prompt": "p"} for i in range(4)]

        pages = [page async for page in documents.pages(HUMAN_TASKS, page_size=2)]

        assert [len(page) for page in pages] == [2, 2]

    @pytest.mark.asyncio
    async def test_rpc(self, documents: DocumentStore, supabase) -> None:
        supabase.tables["knowledge_usage"] = [{"id": "1", "collection": "adr"}]

        assert await documents.rpc("popular_collections", {"max_count": 5}) == [{"collection": "adr", "count": 1}]
        assert supabase.calls[-1] == ("popular_collections", "rpc")


class TestVectorStore:
    def test_in_memory_without_path(self) -> None:
        with patch("agentboard.storage.vectors.chromadb") as chromadb:
            VectorStore.from_settings(Settings(chroma_path=None))

        chromadb.EphemeralClient.assert_called_once_with()
        chromadb.PersistentClient.assert_not_called()

    def test_persistent_with_path(self, tmp_path) -> None:
        with patch("agentboard.storage.vectors.chromadb") as chromadb:
            store = VectorStore.from_settings(Settings(chroma_path=str(tmp_path), chroma_tools_collection="t"))

        chromadb.PersistentClient.assert_called_once_with(path=str(tmp_path))
        assert store.tools_collection == "t"

    @pytest.mark.asyncio
    async def test_empty_collection_returns_nothing(self, vectors: VectorStore) -> None:
        assert await vectors.search_tools([1.0, 0.0, 0.0], limit=5) == []

    @pytest.mark.asyncio
    async def test_cosine_scores(self, vectors: VectorStore) -> None:
        await vectors.upsert_tools(
            ["x", "y"], [[1.0, 0.0, 0.0], [0.0, 1.0, 0.0]], [{"name": "x"}, {"name": "y"}]
        )

        hits = await vectors.search_tools([1.0, 0.0, 0.0], limit=5)

        assert [h.id for h in hits] == ["x", "y"]
        assert hits[0].score == pytest.approx(1.0, abs=1e-4)
        assert hits[1].score == pytest.approx(0.0, abs=1e-4)

    @pytest.mark.asyncio
    async def test_knowledge_filtered_by_collection(self, vectors: VectorStore) -> None:
        await vectors.upsert_knowledge(
            ["k1", "k2"],
            [[1.0, 0.0, 0.0], [0.9, 0.1, 0.0]],
            [{"collection": "adr"}, {"collection": "runbooks"}],
        )

        hits = await vectors.search_knowledge([1.0, 0.0, 0.0], limit=5, collection="runbooks")

        assert [h.id for h in hits] == ["k2"]
        assert hits[0].metadata["collection"] == "runbooks"

    @pytest.mark.asyncio
    async def test_client_errors_wrapped(self, vectors: VectorStore) -> None:
        with pytest.raises(BackendUnavailableError) as exc_info:
            await vectors.upsert_tools(["x"], [[1.0, 0.0]], [])

        assert exc_info.value.backend == "vectors"
