"""
Token-Budgeted Chunking

Architecture contract:
sections -> chunker -> embedding provider -> document store

Guarantees:
- deterministic output for identical input
- chunks never split a sentence
- every chunk fits the token budget, except a single sentence that is
  itself larger than the budget
- chunk_index restarts at 0 for every section

Tokens are approximated as ``ceil(len(text) / 4)``.
"""

from __future__ import annotations

import logging
import math
import re
from typing import Iterable, List

from ..embeddings.models import ChunkDraft, Section

logger = logging.getLogger("paper_insight.chunker")

CHARS_PER_TOKEN = 4
ELLIPSIS = "..."

# A sentence ends at ., ! or ? followed by whitespace or end of text.
_SENTENCE_END = re.compile(r"[.!?]+(?=\s|$)")
_BOUNDARY = re.compile(r"[.!?](?=\s|$)")


def count_tokens(text: str) -> int:
    """Approximate token count for English text."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def split_sentences(text: str) -> List[str]:
    """
    Split text into sentence spans.

    Text after the last terminator is kept as a trailing span so the
    sentences cover the whole input.
    """
    sentences: List[str] = []
    start = 0

    for match in _SENTENCE_END.finditer(text):
        sentence = text[start:match.end()].strip()
        if sentence:
            sentences.append(sentence)
        start = match.end()

    tail = text[start:].strip()
    if tail:
        sentences.append(tail)

    return sentences


def chunk_by_sentences(text: str, max_tokens: int = 500) -> List[str]:
    """
    Greedily pack sentences into chunks of at most ``max_tokens``.
    """
    if max_tokens <= 0:
        raise ValueError(f"Invalid token budget: {max_tokens}")

    chunks: List[str] = []
    current = ""

    for sentence in split_sentences(text):
        candidate = f"{current} {sentence}" if current else sentence

        if current and count_tokens(candidate) > max_tokens:
            chunks.append(current)
            current = sentence
        else:
            current = candidate

    if current:
        chunks.append(current)

    return chunks


def chunk_sections(
    sections: Iterable[Section],
    max_tokens: int = 500,
) -> List[ChunkDraft]:
    """
    Chunk every section independently, numbering chunks per section.
    """
    drafts: List[ChunkDraft] = []

    for section in sections:
        for index, text in enumerate(chunk_by_sentences(section.content, max_tokens)):
            drafts.append(
                ChunkDraft(section=section.name, text=text, chunk_index=index)
            )

    logger.info(
        "Chunking completed: %d chunks (budget=%d tokens)",
        len(drafts),
        max_tokens,
    )
    return drafts


def truncate_to_budget(text: str, max_tokens: int) -> str:
    """
    Return the longest prefix of ``text`` that fits ``max_tokens``.

    When the cut falls mid-sentence, the text ends at the last sentence
    boundary if that boundary lies in the final 20% of the allowed length.
    Otherwise the text is hard-cut and the ellipsis marker appended, still
    within the budget.
    """
    if max_tokens <= 0:
        raise ValueError(f"Invalid token budget: {max_tokens}")

    max_chars = max_tokens * CHARS_PER_TOKEN

    if len(text) <= max_chars:
        return text

    window = text[: max_chars + 1]
    last_boundary = -1
    for match in _BOUNDARY.finditer(window):
        if match.end() <= max_chars:
            last_boundary = match.end()

    if last_boundary > max_chars * 0.8:
        return text[:last_boundary]

    return text[: max(max_chars - len(ELLIPSIS), 0)] + ELLIPSIS
