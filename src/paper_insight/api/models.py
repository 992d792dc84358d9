"""
API Models

Request and response schemas for the project, search and analysis routes.
Analysis payloads (summaries, reviews, concept graphs) are passed through
as generated, so their response models stay loose.
"""

from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, Field, ConfigDict

from ..ingestion.models import DocumentMetadata


# ---------------------------------------------------------------------
# Projects and Documents
# ---------------------------------------------------------------------

class ProjectCreateRequest(BaseModel):
    name: str = Field(..., min_length=1)

    model_config = ConfigDict(extra="forbid")


class ProjectResponse(BaseModel):
    id: str
    name: str


class DocumentTextRequest(BaseModel):
    """Ingest already extracted text into a project."""

    text: str = Field(..., min_length=1)
    title: Optional[str] = None

    model_config = ConfigDict(extra="forbid")


class SectionSummary(BaseModel):
    name: str
    characters: int = Field(..., ge=0)


class DocumentResponse(BaseModel):
    id: str
    project_id: str
    title: str
    sections: List[SectionSummary]
    metadata: DocumentMetadata
    cached_kinds: List[str] = Field(default_factory=list)


class DeleteResponse(BaseModel):
    status: str = "deleted"
    chunks_deleted: int = Field(..., ge=0)


# ---------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------

class SearchRequest(BaseModel):
    """
    Semantic search within one project.

    ``top_k`` falls back to the configured default when omitted.
    """

    query: str = Field(..., min_length=1)
    project_id: str = Field(..., min_length=1)
    top_k: Optional[int] = Field(default=None, ge=0)

    model_config = ConfigDict(extra="forbid")


class RedundancyRequest(BaseModel):
    text: str = Field(..., min_length=1)
    project_id: str = Field(..., min_length=1)
    threshold: Optional[float] = Field(default=None, ge=-1.0, le=1.0)
    limit: int = Field(default=10, ge=1, le=100)

    model_config = ConfigDict(extra="forbid")


class SearchResult(BaseModel):
    document_id: str
    section: str
    text: str
    chunk_index: int = Field(..., ge=0)
    score: float
    confidence: str


# ---------------------------------------------------------------------
# Analysis
# ---------------------------------------------------------------------

class AskRequest(BaseModel):
    question: str = Field(..., min_length=1)
    project_id: str = Field(..., min_length=1)
    document_id: Optional[str] = None

    model_config = ConfigDict(extra="forbid")


class AnalysisResponse(BaseModel):
    document_id: str
    kind: str
    cached: bool
    result: Any
