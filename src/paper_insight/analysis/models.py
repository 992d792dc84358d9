from __future__ import annotations

from typing import Any, List, Literal

from pydantic import BaseModel, Field

SummaryMode = Literal["tldr", "paragraph", "detailed"]
Confidence = Literal["high", "medium", "low"]


class Citation(BaseModel):
    index: int = Field(..., ge=1)
    document_id: str
    document_title: str
    section: str
    text: str


class QAAnswer(BaseModel):
    """Answer to a question grounded in a project's chunks."""

    answer: str
    supporting_evidence: str = ""
    citations: List[Citation] = Field(default_factory=list)
    confidence: Confidence = "low"


class AnalysisResult(BaseModel):
    """A cached-or-fresh analysis artifact."""

    document_id: str
    kind: str
    value: Any
    cached: bool
