"""
Similarity math and retrieval engine tests.
"""

from unittest.mock import AsyncMock

import pytest

from conftest import FakeEmbeddingProvider
from paper_insight.core.errors import DimensionMismatch
from paper_insight.db.store import DocumentStore
from paper_insight.embeddings.models import ChunkRecord
from paper_insight.retrieval.engine import RetrievalEngine
from paper_insight.retrieval.similarity import confidence_bucket, cosine_similarity

DIMS = 768


def unit(position: int, dims: int = DIMS, weight: float = 1.0):
    vector = [0.0] * dims
    vector[position] = weight
    return vector


def chunk(document_id: str, index: int, embedding, text: str = "chunk text") -> ChunkRecord:
    return ChunkRecord(
        document_id=document_id,
        project_id="p1",
        section="Introduction",
        text=text,
        chunk_index=index,
        embedding=embedding,
        dimensions=len(embedding),
    )


@pytest.fixture
def mock_store():
    return AsyncMock(spec=DocumentStore)


class TestCosineSimilarity:

    def test_self_similarity_is_one(self):
        a = [0.3, -1.2, 4.0, 0.5]
        assert cosine_similarity(a, a) == pytest.approx(1.0)

    def test_symmetric(self):
        a = [1.0, 2.0, 3.0]
        b = [-2.0, 0.5, 1.0]
        assert cosine_similarity(a, b) == pytest.approx(cosine_similarity(b, a))

    def test_orthogonal_and_opposite(self):
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)
        assert cosine_similarity([1.0, 0.0], [-1.0, 0.0]) == pytest.approx(-1.0)

    def test_zero_vector_scores_zero(self):
        assert cosine_similarity([0.0, 0.0], [1.0, 2.0]) == 0.0

    def test_length_mismatch_raises(self):
        with pytest.raises(DimensionMismatch):
            cosine_similarity([1.0, 2.0], [1.0, 2.0, 3.0])


class TestConfidenceBucket:

    @pytest.mark.parametrize(
        "score, bucket",
        [(0.95, "high"), (0.81, "high"), (0.8, "medium"), (0.7, "medium"), (0.6, "low"), (-0.2, "low")],
    )
    def test_buckets(self, score, bucket):
        assert confidence_bucket(score) == bucket


class TestRetrievalEngine:

    @pytest.mark.asyncio
    async def test_top_k_ranking(self, mock_store):
        query = [1.0, 1.0] + [0.0] * (DIMS - 2)
        mock_store.find_chunks_by_project.return_value = [
            chunk("d1", 0, unit(2)),                     # orthogonal
            chunk("d1", 1, unit(0)),                     # ~0.707
            chunk("d2", 0, [1.0, 0.9] + [0.0] * (DIMS - 2)),  # ~0.998
        ]
        provider = FakeEmbeddingProvider(dims=DIMS, vectors={"what is it?": query})
        engine = RetrievalEngine(provider, mock_store)

        hits = await engine.search("what is it?", "p1", top_k=2)

        assert [(h.document_id, h.chunk_index) for h in hits] == [("d2", 0), ("d1", 1)]
        assert hits[0].score > hits[1].score
        assert hits[1].score == pytest.approx(0.7071, abs=1e-3)
        mock_store.find_chunks_by_project.assert_awaited_once_with("p1")

    @pytest.mark.asyncio
    async def test_empty_project_skips_provider(self, mock_store):
        mock_store.find_chunks_by_project.return_value = []
        provider = FakeEmbeddingProvider(dims=DIMS)
        engine = RetrievalEngine(provider, mock_store)

        assert await engine.search("anything", "empty") == []
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_zero_top_k(self, mock_store):
        engine = RetrievalEngine(FakeEmbeddingProvider(dims=DIMS), mock_store)

        assert await engine.search("q", "p1", top_k=0) == []
        mock_store.find_chunks_by_project.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_ties_break_by_chunk_index_then_document(self, mock_store):
        same = unit(0)
        mock_store.find_chunks_by_project.return_value = [
            chunk("b", 1, same),
            chunk("b", 0, same),
            chunk("a", 1, same),
            chunk("a", 0, same),
        ]
        provider = FakeEmbeddingProvider(dims=DIMS, vectors={"q": same})
        engine = RetrievalEngine(provider, mock_store)

        hits = await engine.search("q", "p1", top_k=10)

        assert [(h.document_id, h.chunk_index) for h in hits] == [
            ("a", 0),
            ("b", 0),
            ("a", 1),
            ("b", 1),
        ]

    @pytest.mark.asyncio
    async def test_default_top_k(self, mock_store):
        mock_store.find_chunks_by_project.return_value = [
            chunk("d", i, unit(i % 3)) for i in range(8)
        ]
        engine = RetrievalEngine(FakeEmbeddingProvider(dims=DIMS, vectors={"q": unit(0)}), mock_store, default_top_k=5)

        assert len(await engine.search("q", "p1")) == 5

    @pytest.mark.asyncio
    async def test_dimension_mismatch_is_not_skipped(self, mock_store):
        mock_store.find_chunks_by_project.return_value = [
            chunk("d1", 0, unit(0)),
            chunk("d2", 3, unit(0, dims=1536)),
        ]
        provider = FakeEmbeddingProvider(dims=DIMS, vectors={"q": unit(0)})
        engine = RetrievalEngine(provider, mock_store)

        with pytest.raises(DimensionMismatch) as exc_info:
            await engine.search("q", "p1")

        assert exc_info.value.expected == DIMS
        assert exc_info.value.actual == 1536
        assert exc_info.value.document_id == "d2"
        assert exc_info.value.chunk_index == 3

    @pytest.mark.asyncio
    async def test_find_redundant_uses_strict_threshold(self, mock_store):
        mock_store.find_chunks_by_project.return_value = [
            chunk("d1", 0, unit(0)),                         # 1.0
            chunk("d1", 1, [1.0, 1.0] + [0.0] * (DIMS - 2)),  # ~0.707
            chunk("d2", 0, [1.0, 0.2] + [0.0] * (DIMS - 2)),  # ~0.98
        ]
        provider = FakeEmbeddingProvider(dims=DIMS, vectors={"draft": unit(0)})
        engine = RetrievalEngine(provider, mock_store)

        hits = await engine.find_redundant("draft", "p1", threshold=0.85)

        assert [(h.document_id, h.chunk_index) for h in hits] == [("d1", 0), ("d2", 0)]
        assert all(h.score > 0.85 for h in hits)
