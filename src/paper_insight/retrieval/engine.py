"""
Retrieval Engine

Similarity-ranked search over one project's chunks.

Responsibilities
----------------
- Load every chunk of the project (full linear scan, no ANN index)
- Embed the query with the active provider
- Score with cosine similarity and rank deterministically
- Treat any query/stored vector length disagreement as a hard error

Ordering is score descending, then chunk_index ascending, then document_id
ascending. Replacing the scan with an indexed structure only has to keep
``search`` and ``find_redundant`` intact.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from ..core.errors import DimensionMismatch
from ..db.store import DocumentStore
from ..embeddings.models import ChunkRecord
from ..embeddings.providers import EmbeddingProvider, Vector
from .similarity import cosine_similarity

logger = logging.getLogger("paper_insight.retrieval")


class SearchHit(BaseModel):
    """One ranked chunk."""

    document_id: str
    section: str
    text: str
    chunk_index: int
    score: float

    model_config = ConfigDict(frozen=True)


class RetrievalEngine:
    """
    Project-scoped semantic search.

    Parameters
    ----------
    provider : EmbeddingProvider
        Provider used to embed queries; must match the provider that
        produced the stored vectors.
    store : DocumentStore
        Source of project chunks.
    default_top_k : int
        Result count when the caller does not pass one.
    """

    def __init__(
        self,
        provider: EmbeddingProvider,
        store: DocumentStore,
        default_top_k: int = 5,
    ) -> None:
        self._provider = provider
        self._store = store
        self._default_top_k = default_top_k

    async def search(
        self,
        query: str,
        project_id: str,
        top_k: Optional[int] = None,
    ) -> List[SearchHit]:
        """
        Return the ``top_k`` chunks most similar to ``query``.

        An empty project returns ``[]`` without calling the provider.

        Raises
        ------
        DimensionMismatch
            If a stored vector's length differs from the query vector's.
        EmbeddingProviderFailure
            If the query cannot be embedded.
        """
        k = self._default_top_k if top_k is None else top_k
        if k <= 0:
            return []

        chunks = await self._store.find_chunks_by_project(project_id)
        if not chunks:
            logger.info("Search skipped: project %s has no chunks", project_id)
            return []

        query_vector = await self._provider.embed(query)
        ranked = self._rank(query_vector, chunks)

        logger.info(
            "Search over %d chunks in project %s returned %d hits",
            len(chunks),
            project_id,
            min(k, len(ranked)),
        )
        return ranked[:k]

    async def find_redundant(
        self,
        text: str,
        project_id: str,
        threshold: float = 0.85,
        limit: int = 10,
    ) -> List[SearchHit]:
        """
        Chunks in the project whose similarity to ``text`` exceeds
        ``threshold``, best first.
        """
        chunks = await self._store.find_chunks_by_project(project_id)
        if not chunks:
            return []

        vector = await self._provider.embed(text)
        ranked = self._rank(vector, chunks)
        return [hit for hit in ranked if hit.score > threshold][:limit]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _rank(self, query_vector: Vector, chunks: List[ChunkRecord]) -> List[SearchHit]:
        hits: List[SearchHit] = []

        for chunk in chunks:
            if len(chunk.embedding) != len(query_vector):
                logger.error(
                    "Dimension mismatch in project %s: query=%d stored=%d (document=%s)",
                    chunk.project_id,
                    len(query_vector),
                    len(chunk.embedding),
                    chunk.document_id,
                )
                raise DimensionMismatch(
                    expected=len(query_vector),
                    actual=len(chunk.embedding),
                    document_id=chunk.document_id,
                    chunk_index=chunk.chunk_index,
                )

            hits.append(
                SearchHit(
                    document_id=chunk.document_id,
                    section=chunk.section,
                    text=chunk.text,
                    chunk_index=chunk.chunk_index,
                    score=cosine_similarity(query_vector, chunk.embedding),
                )
            )

        hits.sort(key=lambda h: (-h.score, h.chunk_index, h.document_id))
        return hits
