"""Tests for the semantic document index."""

import asyncio
import json
import math

import pytest

from shared.clients.embed.EmbeddingAdapter import EmbeddingAdapter, EmbeddingProvider
from shared.errors.errors import IngestError, RetrievalError
from shared.index.DocumentIndex import DocumentIndex
from shared.index.similarity import cosine_similarity, extract_title
from tests.conftest import TEST_DIMENSIONS, FakeEmbedClient


class GatedEmbedClient(FakeEmbedClient):
    """Holds every embedding request until release is set."""

    def __init__(self) -> None:
        super().__init__()
        self.release = asyncio.Event()

    async def do_embed(self, texts):
        await self.release.wait()
        return await super().do_embed(texts)


async def _add_corpus(index: DocumentIndex) -> None:
    await index.add("returns.md", "returns.md", None, "# Returns\nFull refund within 30 days.")
    await index.add("shipping.md", "shipping.md", None, "# Shipping\nOrders ship within two business days.")
    await index.add("vacation.md", "vacation.md", None, "# Vacation\nEmployees get 30 vacation days per year.")


class TestSimilarity:
    def test_identical_vectors(self) -> None:
        assert math.isclose(cosine_similarity([1.0, 2.0, 3.0], [1.0, 2.0, 3.0]), 1.0)

    def test_zero_vector_scores_zero(self) -> None:
        assert cosine_similarity([0.0, 0.0], [1.0, 1.0]) == 0.0

    def test_length_mismatch_raises(self) -> None:
        with pytest.raises(ValueError):
            cosine_similarity([1.0], [1.0, 2.0])

    def test_extract_title(self) -> None:
        assert extract_title("intro\n# Returns Policy\n## Details") == "Returns Policy"
        assert extract_title("no heading here") is None


class TestSearch:
    @pytest.mark.asyncio
    async def test_refund_policy_example(self, index) -> None:
        """A query sharing a word with the only document finds it with a positive score."""
        await index.add("a", "a.md", None, "# Returns\nFull refund within 30 days.")
        results = await index.search("refund policy")
        assert [result.document.id for result in results] == ["a"]
        assert results[0].score > 0.0

    @pytest.mark.asyncio
    async def test_self_similarity(self, index) -> None:
        await _add_corpus(index)
        document = index.get("shipping.md")
        results = await index.search(document.content, top_k=1)
        assert results[0].document.id == "shipping.md"
        assert math.isclose(results[0].score, 1.0, rel_tol=1e-6)

    @pytest.mark.asyncio
    async def test_results_bounded_and_descending(self, index) -> None:
        await _add_corpus(index)
        for i in range(4):
            await index.add(f"extra-{i}.md", f"extra-{i}.md", None, f"Extra document number {i} about days")
        results = await index.search("days", top_k=10)
        assert len(results) == 5
        scores = [result.score for result in results]
        assert scores == sorted(scores, reverse=True)

    @pytest.mark.asyncio
    async def test_top_k_clamped_to_at_least_one(self, index) -> None:
        await _add_corpus(index)
        assert len(await index.search("refund", top_k=0)) == 1

    @pytest.mark.asyncio
    async def test_search_is_deterministic(self, index) -> None:
        await _add_corpus(index)
        first = await index.search("30 days", top_k=3)
        second = await index.search("30 days", top_k=3)
        assert [(r.document.id, r.score) for r in first] == [(r.document.id, r.score) for r in second]

    @pytest.mark.asyncio
    async def test_empty_index_returns_nothing(self, index, embed_client) -> None:
        assert await index.search("anything") == []
        assert embed_client.calls == 0

    @pytest.mark.asyncio
    async def test_missing_embedding_scores_zero_and_is_listed(self, helper_config, embedder, tmp_path) -> None:
        path = tmp_path / "index.json"
        path.write_text(json.dumps([
            {"id": "raw.md", "filename": "raw.md", "title": "Raw", "content": "refund refund", "embedding": None},
        ]))
        index = DocumentIndex(helper_config, embedder, store_path=str(path))
        await index.load()

        results = await index.search("refund")
        assert results[0].document.id == "raw.md"
        assert results[0].score == 0.0
        assert [summary.id for summary in index.list()] == ["raw.md"]


class TestWrites:
    @pytest.mark.asyncio
    async def test_title_from_heading_or_untitled(self, index) -> None:
        with_heading = await index.add("a.md", "a.md", None, "# Returns\nbody")
        without_heading = await index.add("b.md", "b.md", None, "just text")
        explicit = await index.add("c.md", "c.md", "Given Title", "# Heading\nbody")
        assert with_heading.title == "Returns"
        assert without_heading.title == "Untitled"
        assert explicit.title == "Given Title"

    @pytest.mark.asyncio
    async def test_empty_content_rejected(self, index) -> None:
        with pytest.raises(IngestError):
            await index.add("a.md", "a.md", None, "   ")

    @pytest.mark.asyncio
    async def test_unchanged_content_reuses_embedding(self, index, embed_client) -> None:
        await index.add("a.md", "a.md", None, "Full refund within 30 days.")
        calls = embed_client.calls
        await index.add("a.md", "a.md", None, "Full refund within 30 days.")
        assert embed_client.calls == calls
        await index.add("a.md", "a.md", None, "Partial refund within 14 days.")
        assert embed_client.calls == calls + 1

    @pytest.mark.asyncio
    async def test_delete_absent_is_not_an_error(self, index) -> None:
        assert await index.delete("missing.md") is False

    @pytest.mark.asyncio
    async def test_delete_removes_document(self, index) -> None:
        await _add_corpus(index)
        assert await index.delete("returns.md") is True
        assert index.get("returns.md") is None
        assert "returns.md" not in index.ids()

    @pytest.mark.asyncio
    async def test_returned_documents_are_copies(self, index) -> None:
        await index.add("a.md", "a.md", None, "Full refund within 30 days.")
        copy = index.get("a.md")
        copy.content = "changed"
        assert index.get("a.md").content == "Full refund within 30 days."

    @pytest.mark.asyncio
    async def test_clear_embeddings(self, index) -> None:
        await _add_corpus(index)
        assert await index.clear_embeddings() == 3
        assert all(index.get(doc_id).embedding is None for doc_id in index.ids())

    @pytest.mark.asyncio
    async def test_add_racing_delete_creates_fresh_document(self, helper_config, tmp_path) -> None:
        client = GatedEmbedClient()
        client.release.set()
        embedder = EmbeddingAdapter(helper_config, EmbeddingProvider(helper_config, client), dimensions=TEST_DIMENSIONS)
        index = DocumentIndex(helper_config, embedder, store_path=str(tmp_path / "race.json"))
        await index.add("a.md", "a.md", None, "Old refund policy.")

        client.release.clear()
        pending = asyncio.create_task(index.add("a.md", "a.md", None, "New refund policy."))
        await asyncio.sleep(0)
        assert await index.delete("a.md") is True
        client.release.set()
        document = await pending

        assert document.created_at == document.updated_at
        assert index.get("a.md").content == "New refund policy."


class TestPersistence:
    @pytest.mark.asyncio
    async def test_reload_from_file(self, helper_config, embedder, index, tmp_path) -> None:
        await _add_corpus(index)
        reloaded = DocumentIndex(helper_config, embedder, store_path=str(tmp_path / "index.json"))
        assert await reloaded.load() == 3
        assert reloaded.ids() == {"returns.md", "shipping.md", "vacation.md"}
        assert reloaded.get("returns.md").embedding == index.get("returns.md").embedding

    @pytest.mark.asyncio
    async def test_missing_file_is_empty_index(self, index) -> None:
        assert await index.load() == 0
        assert index.list() == []

    @pytest.mark.asyncio
    async def test_legacy_metadata_layout(self, helper_config, embedder, tmp_path) -> None:
        path = tmp_path / "legacy.json"
        path.write_text(json.dumps([{
            "id": "guide.md",
            "filename": "guide.md",
            "content": "# Guide\nHow to order.",
            "embedding": None,
            "metadata": {"title": "Product Guide", "size": 21, "lastModified": "2024-05-01T10:00:00Z"},
        }]))
        index = DocumentIndex(helper_config, embedder, store_path=str(path))
        await index.load()
        document = index.get("guide.md")
        assert document.title == "Product Guide"
        assert document.size == 21

    @pytest.mark.asyncio
    async def test_corrupt_file(self, helper_config, embedder, tmp_path) -> None:
        path = tmp_path / "index.json"
        path.write_text("{not json")
        index = DocumentIndex(helper_config, embedder, store_path=str(path))
        with pytest.raises(RetrievalError):
            await index.load()
        with pytest.raises(RetrievalError):
            await index.search("refund")
        with pytest.raises(IngestError):
            await index.add("a.md", "a.md", None, "content")

    @pytest.mark.asyncio
    async def test_unreadable_file_is_never_overwritten(self, helper_config, embedder, tmp_path) -> None:
        path = tmp_path / "index.json"
        path.write_text("{not json")
        index = DocumentIndex(helper_config, embedder, store_path=str(path))
        with pytest.raises(RetrievalError):
            await index.load()

        assert index.is_readable() is False
        with pytest.raises(IngestError):
            await index.clear_embeddings()
        assert await index.delete("a.md") is False
        assert path.read_text() == "{not json"

    def test_default_path_under_root_dir(self, helper_config, embedder, tmp_path) -> None:
        index = DocumentIndex(helper_config, embedder)
        assert index._store_path == str(tmp_path / "data" / ".vector-store.json")
