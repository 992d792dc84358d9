"""
Chunk and Section Data Models

This module defines the canonical in-memory records passed between the
section detector, the chunker, the embedding providers, the document store
and the retrieval engine.

A ``ChunkRecord`` corresponds to ONE embedding vector and ONE span of
section text.
"""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field, ConfigDict, model_validator


class Section(BaseModel):
    """
    A named span of a document, e.g. "Introduction".
    """

    name: str = Field(
        ...,
        min_length=1,
        description="Header text stripped of leading numbering.",
    )

    content: str = Field(
        ...,
        min_length=1,
        description="Section body with the header removed.",
    )

    model_config = ConfigDict(extra="forbid", frozen=True)


class ChunkDraft(BaseModel):
    """
    Chunker output: a sentence-aligned span that has not been embedded yet.
    """

    section: str
    text: str = Field(..., min_length=1)
    chunk_index: int = Field(..., ge=0)

    model_config = ConfigDict(extra="forbid", frozen=True)


class ChunkRecord(BaseModel):
    """
    A retrievable unit: one chunk of section text plus its embedding.

    ``dimensions`` is the dimensionality declared by the provider that
    produced ``embedding``; the two must agree.
    """

    document_id: str = Field(..., min_length=1)
    project_id: str = Field(..., min_length=1)
    section: str
    text: str = Field(..., min_length=1)
    chunk_index: int = Field(..., ge=0)
    embedding: List[float] = Field(..., min_length=1)
    dimensions: int = Field(..., gt=0)

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        arbitrary_types_allowed=False,
    )

    @model_validator(mode="after")
    def _check_dimensions(self) -> "ChunkRecord":
        if len(self.embedding) != self.dimensions:
            raise ValueError(
                f"embedding has {len(self.embedding)} values, "
                f"declared dimensions is {self.dimensions}"
            )
        return self
