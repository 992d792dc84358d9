from typing import Dict, List, Optional

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from paper_insight.config import Settings
from paper_insight.db import DocumentStore, init_models
from paper_insight.embeddings.providers import EmbeddingProvider, Vector


class FakeEmbeddingProvider(EmbeddingProvider):
    """
    Deterministic in-process provider.

    Texts listed in ``vectors`` get that vector; anything else gets one
    derived from its characters.
    """

    name = "fake"

    def __init__(self, dims: int = 4, vectors: Optional[Dict[str, Vector]] = None) -> None:
        self.dims = dims
        self.vectors = vectors or {}
        self.calls: List[List[str]] = []

    def dimensions(self) -> int:
        return self.dims

    async def _embed_many(self, inputs: List[str]) -> List[Vector]:
        self.calls.append(list(inputs))
        return [self.vectors.get(text) or self._derive(text) for text in inputs]

    def _derive(self, text: str) -> Vector:
        padded = (text * self.dims)[: self.dims]
        return [float(ord(c) % 13 + 1) for c in padded]


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        database_url="sqlite+aiosqlite://",
        openai_api_key="sk-test",
        gemini_api_key="gm-test",
        embedding_dimensions=4,
    )


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
async def session(engine):
    factory = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session


@pytest.fixture
def store(session):
    return DocumentStore(session)


@pytest.fixture
def fake_provider():
    return FakeEmbeddingProvider()


@pytest.fixture
async def project(store):
    return await store.create_project("test-project")
