"""
Analysis Routes

Cached per-document analyses (summaries, review, concept graph) and
retrieval-augmented question answering.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from ..analysis.models import AnalysisResult, QAAnswer, SummaryMode
from ..analysis.service import AnalysisService
from ..db.store import DocumentStore
from .dependencies import get_analysis_service, get_store
from .models import AnalysisResponse, AskRequest

router = APIRouter(tags=["analysis"])


def _to_response(result: AnalysisResult) -> AnalysisResponse:
    return AnalysisResponse(
        document_id=result.document_id,
        kind=result.kind,
        cached=result.cached,
        result=result.value,
    )


@router.get("/documents/{document_id}/summaries", response_model=AnalysisResponse)
async def get_summary(
    document_id: str,
    store: Annotated[DocumentStore, Depends(get_store)],
    service: Annotated[AnalysisService, Depends(get_analysis_service)],
    mode: SummaryMode = Query(default="tldr"),
) -> AnalysisResponse:
    document = await store.require_document(document_id)
    return _to_response(await service.summarize(document, mode))


@router.post("/documents/{document_id}/review", response_model=AnalysisResponse)
async def generate_review(
    document_id: str,
    store: Annotated[DocumentStore, Depends(get_store)],
    service: Annotated[AnalysisService, Depends(get_analysis_service)],
) -> AnalysisResponse:
    document = await store.require_document(document_id)
    return _to_response(await service.review(document))


@router.get("/documents/{document_id}/concept-graph", response_model=AnalysisResponse)
async def get_concept_graph(
    document_id: str,
    store: Annotated[DocumentStore, Depends(get_store)],
    service: Annotated[AnalysisService, Depends(get_analysis_service)],
) -> AnalysisResponse:
    document = await store.require_document(document_id)
    return _to_response(await service.concept_graph(document))


@router.post("/ask", response_model=QAAnswer)
async def ask(
    req: AskRequest,
    service: Annotated[AnalysisService, Depends(get_analysis_service)],
) -> QAAnswer:
    return await service.answer_question(req.question, req.project_id, req.document_id)
