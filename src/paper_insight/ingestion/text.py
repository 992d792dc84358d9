"""
Text Normalization and Metadata Extraction

Helpers applied to raw extracted text before section detection:
whitespace normalization, page-number removal, unicode folding, and a
best-effort pass for title, abstract and keywords.
"""

from __future__ import annotations

import re
import unicodedata

from .models import DocumentMetadata


_EXCESS_NEWLINES = re.compile(r"\n{3,}")
_EXCESS_SPACES = re.compile(r" {2,}")
_PAGE_NUMBER_LINE = re.compile(r"^\d+\s*$", re.MULTILINE)

_ABSTRACT = re.compile(
    r"(?:ABSTRACT|Abstract)\s*\n([\s\S]{100,2000}?)(?:\n\n|\n(?:1\.|INTRODUCTION|Introduction))",
    re.IGNORECASE,
)
_KEYWORDS = re.compile(
    r"(?:KEYWORDS?|Keywords?)[:\s]+(.*?)(?:\n\n|\n(?:1\.|INTRODUCTION))",
    re.IGNORECASE | re.DOTALL,
)


def clean_text(text: str) -> str:
    """
    Normalize raw extracted text.

    Collapses runs of blank lines and spaces, drops lines that hold only a
    page number, applies NFKC folding and trims the result.
    """
    cleaned = _EXCESS_NEWLINES.sub("\n\n", text)
    cleaned = _EXCESS_SPACES.sub(" ", cleaned)
    cleaned = _PAGE_NUMBER_LINE.sub("", cleaned)
    cleaned = unicodedata.normalize("NFKC", cleaned)
    return cleaned.strip()


def extract_metadata(text: str) -> DocumentMetadata:
    """
    Best-effort recovery of title, abstract and keywords.

    The title is the first non-blank line, extended by the second line when
    the first is shorter than 20 characters.
    """
    metadata = DocumentMetadata()

    lines = [line.strip() for line in text.split("\n") if line.strip()]
    if lines:
        title = lines[0]
        if len(title) < 20 and len(lines) > 1:
            title = f"{title} {lines[1]}"
        metadata.title = title

    abstract_match = _ABSTRACT.search(text)
    if abstract_match:
        metadata.abstract = abstract_match.group(1).strip()

    keywords_match = _KEYWORDS.search(text)
    if keywords_match:
        metadata.keywords = [
            k.strip()
            for k in re.split(r"[,;]", keywords_match.group(1))
            if k.strip()
        ]

    metadata.word_count = len(text.split())
    return metadata
