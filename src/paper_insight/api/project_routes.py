"""
Project and Document Routes

Create projects, ingest extracted text into them, inspect and delete
documents. Raw file upload is handled outside the HTTP layer
(see ``scripts/ingest_paper.py``).
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, status

from ..core.errors import NotFoundError
from ..db.store import DocumentStore
from ..ingestion.models import DocumentRecord
from ..ingestion.pipeline import IngestionPipeline
from .dependencies import get_ingestion_pipeline, get_store
from .models import (
    DeleteResponse,
    DocumentResponse,
    DocumentTextRequest,
    ProjectCreateRequest,
    ProjectResponse,
    SectionSummary,
)

router = APIRouter(tags=["projects"])


def _document_response(document: DocumentRecord) -> DocumentResponse:
    return DocumentResponse(
        id=document.id,
        project_id=document.project_id,
        title=document.title,
        sections=[
            SectionSummary(name=s.name, characters=len(s.content))
            for s in document.sections
        ],
        metadata=document.metadata,
        cached_kinds=sorted(document.cached_artifacts),
    )


@router.post(
    "/projects",
    response_model=ProjectResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_project(
    req: ProjectCreateRequest,
    store: Annotated[DocumentStore, Depends(get_store)],
) -> ProjectResponse:
    project = await store.create_project(req.name)
    return ProjectResponse(id=project.id, name=project.name)


@router.post(
    "/projects/{project_id}/documents",
    response_model=DocumentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Ingest extracted text as a document",
)
async def ingest_document_text(
    project_id: str,
    req: DocumentTextRequest,
    pipeline: Annotated[IngestionPipeline, Depends(get_ingestion_pipeline)],
) -> DocumentResponse:
    document = await pipeline.ingest_text(req.text, project_id, title=req.title)
    return _document_response(document)


@router.get("/documents/{document_id}", response_model=DocumentResponse)
async def get_document(
    document_id: str,
    store: Annotated[DocumentStore, Depends(get_store)],
) -> DocumentResponse:
    document = await store.require_document(document_id)
    return _document_response(document)


@router.delete("/documents/{document_id}", response_model=DeleteResponse)
async def delete_document(
    document_id: str,
    store: Annotated[DocumentStore, Depends(get_store)],
) -> DeleteResponse:
    if await store.get_document(document_id) is None:
        raise NotFoundError(f"Document not found: {document_id}")

    deleted = await store.delete_document(document_id)
    return DeleteResponse(chunks_deleted=deleted)
