"""
Section Detection

Splits normalized paper text on canonical academic section headers.
The detector never raises: when no header survives, the whole text is
returned as a single "Full Text" section. Blank text has no sections.
"""

from __future__ import annotations

import logging
import re
from typing import List, NamedTuple, Pattern, Tuple

from ..embeddings.models import Section

logger = logging.getLogger("paper_insight.sections")

FALLBACK_SECTION_NAME = "Full Text"

# Ordered canonical headers. A header must stand alone on its line and may
# carry a leading numeral ("2", "2.", "3.1").
_HEADER_WORDS: Tuple[str, ...] = (
    r"abstract",
    r"introduction",
    r"related\s+work|background",
    r"methodology|methods?|approach",
    r"experiments?|results?|evaluation",
    r"discussion|analysis",
    r"conclusions?",
    r"references?|bibliography",
)

_NUMBERING = re.compile(r"^\d+(?:\.\d+)*\.?\s*")


def _compile(words: str) -> Pattern[str]:
    return re.compile(
        rf"^[ \t]*(?:\d+(?:\.\d+)*\.?[ \t]+)?(?:{words})[ \t]*$",
        re.IGNORECASE | re.MULTILINE,
    )


HEADER_PATTERNS: Tuple[Pattern[str], ...] = tuple(_compile(w) for w in _HEADER_WORDS)


class _HeaderMatch(NamedTuple):
    name: str
    start: int
    body_start: int


class SectionDetector:
    """
    Find section boundaries in normalized text.

    Parameters
    ----------
    min_chars : int
        Sections whose body is not longer than this are treated as false
        positive header matches and dropped.
    """

    def __init__(self, min_chars: int = 50) -> None:
        self.min_chars = min_chars

    def detect(self, text: str) -> List[Section]:
        matches: List[_HeaderMatch] = []

        for pattern in HEADER_PATTERNS:
            match = pattern.search(text)
            if match is None:
                continue
            name = _NUMBERING.sub("", match.group(0).strip())
            matches.append(_HeaderMatch(name=name, start=match.start(), body_start=match.end()))

        matches.sort(key=lambda m: m.start)

        sections: List[Section] = []
        for i, header in enumerate(matches):
            end = matches[i + 1].start if i + 1 < len(matches) else len(text)
            body = text[header.body_start:end].strip()

            if len(body) > self.min_chars:
                sections.append(Section(name=header.name, content=body))
            else:
                logger.debug("Dropping short section %r (%d chars)", header.name, len(body))

        if not sections and text.strip():
            sections.append(Section(name=FALLBACK_SECTION_NAME, content=text))

        logger.info("Detected %d sections", len(sections))
        return sections
