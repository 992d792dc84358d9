"""
SQLAlchemy Models

Defines the database schema for:
- Projects (retrieval isolation boundary)
- Documents (text, sections and cached analyses)
- Embedding chunks (section text plus its vector)
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    JSON,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _new_id() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


# ---------------------------------------------------------------------
# Project Model
# ---------------------------------------------------------------------

class Project(Base):
    """
    A group of documents. Retrieval never crosses project boundaries.
    """
    __tablename__ = "project"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        server_default=func.now(),
    )


# ---------------------------------------------------------------------
# Document Model
# ---------------------------------------------------------------------

class Document(Base):
    """
    An ingested paper.

    ``cached_artifacts`` is replaced wholesale on every write; in-place
    mutation of the JSON value is not tracked.
    """
    __tablename__ = "document"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    project_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("project.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    full_text: Mapped[str] = mapped_column(Text, nullable=False)
    limited_text: Mapped[str] = mapped_column(Text, nullable=False)
    sections: Mapped[List[Dict[str, str]]] = mapped_column(JSON, nullable=False, default=list)
    metadata_: Mapped[Optional[Dict[str, Any]]] = mapped_column(
        "metadata",
        JSON,
        nullable=True,
    )
    cached_artifacts: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        server_default=func.now(),
    )


# ---------------------------------------------------------------------
# Embedding Chunk Model
# ---------------------------------------------------------------------

class EmbeddingChunk(Base):
    """
    One chunk of section text and its embedding.

    Vectors are stored as plain JSON with an explicit ``dimensions`` column
    so a project holding vectors of different lengths can be detected.
    """
    __tablename__ = "embedding_chunk"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    document_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("document.id", ondelete="CASCADE"),
        nullable=False,
    )
    project_id: Mapped[str] = mapped_column(String(36), nullable=False)
    section: Mapped[str] = mapped_column(Text, nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    chunk_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    embedding: Mapped[List[float]] = mapped_column(JSON, nullable=False)
    dimensions: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        Index("idx_chunk_project", "project_id"),
        Index("idx_chunk_document", "document_id", "chunk_index"),
    )
