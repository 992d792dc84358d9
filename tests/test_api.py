"""
HTTP surface tests.

Collaborators are replaced through ``app.dependency_overrides``; the
project/document flow runs against the in-memory SQLite store.
"""

from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from paper_insight.analysis.models import AnalysisResult, QAAnswer
from paper_insight.analysis.service import AnalysisService
from paper_insight.api.dependencies import (
    get_analysis_service,
    get_embedding_provider,
    get_retrieval_engine,
    get_store,
)
from paper_insight.core.errors import (
    DimensionMismatch,
    EmbeddingProviderFailure,
    GenerationUnavailable,
    NotFoundError,
)
from paper_insight.db.store import DocumentStore
from paper_insight.ingestion.models import DocumentRecord
from paper_insight.main import create_app
from paper_insight.retrieval.engine import RetrievalEngine, SearchHit

PAPER = (
    "Retrieval Augmented Reading\n\n"
    "Introduction\n"
    "Researchers read many papers and need fast answers. "
    "We embed sentence-aligned chunks of every paper.\n"
)


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def mock_engine():
    return AsyncMock(spec=RetrievalEngine)


@pytest.fixture
def mock_service():
    return AsyncMock(spec=AnalysisService)


@pytest.fixture
def mock_store():
    store = AsyncMock(spec=DocumentStore)
    store.require_document.return_value = DocumentRecord(
        id="doc-1",
        project_id="p1",
        title="A Paper",
        full_text="text",
        limited_text="text",
    )
    return store


@pytest.fixture
def overrides(app, mock_engine, mock_service, mock_store):
    app.dependency_overrides[get_retrieval_engine] = lambda: mock_engine
    app.dependency_overrides[get_analysis_service] = lambda: mock_service
    app.dependency_overrides[get_store] = lambda: mock_store
    yield
    app.dependency_overrides = {}


@pytest.fixture
async def async_client(app, overrides):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.mark.asyncio
async def test_health(async_client):
    resp = await async_client.get("/health")

    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "embedding_provider": "openai"}


class TestSearchRoutes:

    @pytest.mark.asyncio
    async def test_search(self, async_client, mock_engine):
        mock_engine.search.return_value = [
            SearchHit(document_id="doc-1", section="Methods", text="chunk", chunk_index=0, score=0.93),
            SearchHit(document_id="doc-2", section="Results", text="chunk", chunk_index=4, score=0.42),
        ]

        resp = await async_client.post(
            "/search", json={"query": "what is rag", "project_id": "p1", "top_k": 2}
        )

        assert resp.status_code == 200
        body = resp.json()
        assert [r["document_id"] for r in body] == ["doc-1", "doc-2"]
        assert [r["confidence"] for r in body] == ["high", "low"]
        mock_engine.search.assert_awaited_once_with("what is rag", "p1", 2)

    @pytest.mark.asyncio
    async def test_search_requires_query(self, async_client):
        resp = await async_client.post("/search", json={"query": "", "project_id": "p1"})
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_dimension_mismatch(self, async_client, mock_engine):
        mock_engine.search.side_effect = DimensionMismatch(768, 1536, "doc-9", 2)

        resp = await async_client.post("/search", json={"query": "q", "project_id": "p1"})

        assert resp.status_code == 409
        assert resp.json()["error"] == "dimension_mismatch"
        assert "768" in resp.json()["detail"]

    @pytest.mark.asyncio
    async def test_provider_failure(self, async_client, mock_engine):
        mock_engine.search.side_effect = EmbeddingProviderFailure("gemini", "quota", "Rate limited")

        resp = await async_client.post("/search", json={"query": "q", "project_id": "p1"})

        assert resp.status_code == 502
        body = resp.json()
        assert body["error"] == "embedding_provider_failure"
        assert body["provider"] == "gemini"
        assert body["cause"] == "quota"

    @pytest.mark.asyncio
    async def test_redundancy_uses_configured_threshold(self, async_client, mock_engine):
        mock_engine.find_redundant.return_value = []

        resp = await async_client.post(
            "/search/redundancy", json={"text": "my draft paragraph", "project_id": "p1"}
        )

        assert resp.status_code == 200
        assert resp.json() == []
        mock_engine.find_redundant.assert_awaited_once_with("my draft paragraph", "p1", 0.85, 10)


class TestAnalysisRoutes:

    @pytest.mark.asyncio
    async def test_summary(self, async_client, mock_service):
        mock_service.summarize.return_value = AnalysisResult(
            document_id="doc-1", kind="tldrSummary", value="Short.", cached=True
        )

        resp = await async_client.get("/documents/doc-1/summaries", params={"mode": "tldr"})

        assert resp.status_code == 200
        assert resp.json() == {
            "document_id": "doc-1",
            "kind": "tldrSummary",
            "cached": True,
            "result": "Short.",
        }

    @pytest.mark.asyncio
    async def test_unknown_summary_mode(self, async_client, mock_service):
        resp = await async_client.get("/documents/doc-1/summaries", params={"mode": "haiku"})

        assert resp.status_code == 422
        mock_service.summarize.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_document(self, async_client, mock_store):
        mock_store.require_document.side_effect = NotFoundError("Document not found: nope")

        resp = await async_client.post("/documents/nope/review")

        assert resp.status_code == 404
        assert resp.json() == {"error": "not_found", "detail": "Document not found: nope"}

    @pytest.mark.asyncio
    async def test_generation_unavailable(self, async_client, mock_service):
        mock_service.concept_graph.side_effect = GenerationUnavailable("quota_exceeded", "Generation quota exceeded")

        resp = await async_client.get("/documents/doc-1/concept-graph")

        assert resp.status_code == 503
        assert resp.json()["error"] == "generation_unavailable"
        assert resp.json()["reason"] == "quota_exceeded"

    @pytest.mark.asyncio
    async def test_ask(self, async_client, mock_service):
        mock_service.answer_question.return_value = QAAnswer(answer="Yes.", confidence="medium")

        resp = await async_client.post("/ask", json={"question": "Is it?", "project_id": "p1"})

        assert resp.status_code == 200
        assert resp.json()["answer"] == "Yes."
        assert resp.json()["confidence"] == "medium"
        mock_service.answer_question.assert_awaited_once_with("Is it?", "p1", None)


class TestErrorHandling:

    @pytest.mark.asyncio
    async def test_missing_api_key_is_configuration_error(self, settings, mock_store):
        app = create_app(settings.model_copy(update={"openai_api_key": None}))
        app.dependency_overrides[get_store] = lambda: mock_store

        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            resp = await client.post("/search", json={"query": "q", "project_id": "p1"})

        assert resp.status_code == 500
        assert resp.json()["error"] == "configuration_error"

    @pytest.mark.asyncio
    async def test_unexpected_error_is_generic_500(self, app, overrides, mock_engine):
        mock_engine.search.side_effect = RuntimeError("secret internals")

        transport = ASGITransport(app=app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            resp = await client.post("/search", json={"query": "q", "project_id": "p1"})

        assert resp.status_code == 500
        assert resp.json() == {"error": "internal_server_error", "detail": "Internal server error"}


class TestProjectRoutes:

    @pytest.fixture
    def real_store_client(self, app, store, fake_provider):
        app.dependency_overrides[get_store] = lambda: store
        app.dependency_overrides[get_embedding_provider] = lambda: fake_provider
        yield AsyncClient(transport=ASGITransport(app=app), base_url="http://test")
        app.dependency_overrides = {}

    @pytest.mark.asyncio
    async def test_create_project_and_ingest(self, real_store_client, store):
        async with real_store_client as client:
            resp = await client.post("/projects", json={"name": "thesis"})
            assert resp.status_code == 201
            project_id = resp.json()["id"]

            resp = await client.post(f"/projects/{project_id}/documents", json={"text": PAPER})
            assert resp.status_code == 201
            document = resp.json()

            resp = await client.get(f"/documents/{document['id']}")
            assert resp.status_code == 200

            resp = await client.delete(f"/documents/{document['id']}")
            assert resp.status_code == 200
            assert resp.json()["chunks_deleted"] >= 1

            resp = await client.get(f"/documents/{document['id']}")
            assert resp.status_code == 404

        assert document["title"] == "Retrieval Augmented Reading"
        assert [s["name"] for s in document["sections"]] == ["Introduction"]

    @pytest.mark.asyncio
    async def test_ingest_into_unknown_project(self, real_store_client):
        async with real_store_client as client:
            resp = await client.post("/projects/missing/documents", json={"text": PAPER})

        assert resp.status_code == 404
