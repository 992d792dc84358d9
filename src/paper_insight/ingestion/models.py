"""
Document Data Models

Records exchanged between the ingestion pipeline, the document store and the
analysis layer. The store converts its ORM rows into these models so callers
never hold a live database session.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ConfigDict

from ..embeddings.models import Section


class ExtractedText(BaseModel):
    """Output of the text extraction collaborator."""

    raw_text: str
    page_count: int = Field(..., ge=0)

    model_config = ConfigDict(frozen=True)


class DocumentMetadata(BaseModel):
    """Descriptive fields recovered from a document's text."""

    title: Optional[str] = None
    abstract: Optional[str] = None
    keywords: List[str] = Field(default_factory=list)
    page_count: Optional[int] = Field(default=None, ge=0)
    word_count: int = Field(default=0, ge=0)
    token_count: int = Field(default=0, ge=0)


class ProjectRecord(BaseModel):
    """A group of documents; the isolation boundary for retrieval."""

    id: str
    name: str

    model_config = ConfigDict(frozen=True)


class DocumentRecord(BaseModel):
    """
    A processed document.

    ``limited_text`` is ``full_text`` truncated to the generation token
    budget. ``cached_artifacts`` maps an analysis kind to its last
    successful result.
    """

    id: str
    project_id: str
    title: str
    full_text: str
    limited_text: str
    sections: List[Section] = Field(default_factory=list)
    metadata: DocumentMetadata = Field(default_factory=DocumentMetadata)
    cached_artifacts: Dict[str, Any] = Field(default_factory=dict)
