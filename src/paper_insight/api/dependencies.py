"""
Dependency providers for the HTTP layer.

Long-lived collaborators (settings, session factory, embedding provider,
generation client) live on ``app.state``; stores and services are built per
request around a fresh session. Tests replace any of these through
``app.dependency_overrides``.
"""

from __future__ import annotations

from typing import Annotated, AsyncGenerator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ..analysis.cache import AnalysisCacheManager
from ..analysis.service import AnalysisService
from ..config import Settings
from ..db.store import DocumentStore
from ..embeddings.providers import EmbeddingProvider, create_embedding_provider
from ..ingestion.extractor import PdfTextExtractor
from ..ingestion.pipeline import IngestionPipeline
from ..llm.client import GenerationClient, create_generation_client
from ..retrieval.engine import RetrievalEngine


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    async with request.app.state.session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_store(session: Annotated[AsyncSession, Depends(get_session)]) -> DocumentStore:
    return DocumentStore(session)


def get_embedding_provider(request: Request) -> EmbeddingProvider:
    """
    The configured provider, built on first use so a missing key surfaces
    as a ``ConfigurationError`` response rather than a startup crash.
    """
    state = request.app.state
    if getattr(state, "embedding_provider", None) is None:
        state.embedding_provider = create_embedding_provider(state.settings)
    return state.embedding_provider


def get_generation_client(request: Request) -> GenerationClient:
    state = request.app.state
    if getattr(state, "generation_client", None) is None:
        state.generation_client = create_generation_client(state.settings)
    return state.generation_client


def get_retrieval_engine(
    provider: Annotated[EmbeddingProvider, Depends(get_embedding_provider)],
    store: Annotated[DocumentStore, Depends(get_store)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> RetrievalEngine:
    return RetrievalEngine(provider, store, default_top_k=settings.default_top_k)


def get_analysis_service(
    generator: Annotated[GenerationClient, Depends(get_generation_client)],
    retrieval: Annotated[RetrievalEngine, Depends(get_retrieval_engine)],
    store: Annotated[DocumentStore, Depends(get_store)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> AnalysisService:
    return AnalysisService(
        generator=generator,
        cache=AnalysisCacheManager(store),
        retrieval=retrieval,
        store=store,
        settings=settings,
    )


def get_ingestion_pipeline(
    provider: Annotated[EmbeddingProvider, Depends(get_embedding_provider)],
    store: Annotated[DocumentStore, Depends(get_store)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> IngestionPipeline:
    return IngestionPipeline(settings, PdfTextExtractor(), provider, store)
