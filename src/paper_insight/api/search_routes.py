"""
Search Routes

Similarity search and redundancy detection over one project's chunks.
"""

from __future__ import annotations

from typing import Annotated, List

from fastapi import APIRouter, Depends, status

from ..config import Settings
from ..retrieval.engine import RetrievalEngine, SearchHit
from ..retrieval.similarity import confidence_bucket
from .dependencies import get_retrieval_engine, get_settings
from .models import RedundancyRequest, SearchRequest, SearchResult

router = APIRouter(prefix="/search", tags=["search"])


def _to_result(hit: SearchHit) -> SearchResult:
    return SearchResult(
        document_id=hit.document_id,
        section=hit.section,
        text=hit.text,
        chunk_index=hit.chunk_index,
        score=hit.score,
        confidence=confidence_bucket(hit.score),
    )


@router.post(
    "",
    response_model=List[SearchResult],
    summary="Semantic search within a project",
    status_code=status.HTTP_200_OK,
)
async def search(
    req: SearchRequest,
    engine: Annotated[RetrievalEngine, Depends(get_retrieval_engine)],
) -> List[SearchResult]:
    """
    Rank the project's chunks against ``req.query``.

    Typed failures (provider errors, dimension mismatches) are rendered by
    the global error handler.
    """
    hits = await engine.search(req.query, req.project_id, req.top_k)
    return [_to_result(hit) for hit in hits]


@router.post(
    "/redundancy",
    response_model=List[SearchResult],
    summary="Find chunks that closely repeat the given text",
)
async def find_redundant(
    req: RedundancyRequest,
    engine: Annotated[RetrievalEngine, Depends(get_retrieval_engine)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> List[SearchResult]:
    threshold = settings.redundancy_threshold if req.threshold is None else req.threshold
    hits = await engine.find_redundant(req.text, req.project_id, threshold, req.limit)
    return [_to_result(hit) for hit in hits]
