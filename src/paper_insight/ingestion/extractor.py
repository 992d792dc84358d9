"""
Text extraction collaborator.

Pulls the raw text layer out of an uploaded file. Cleaning, section
detection and the "enough text" check happen later in the pipeline.
"""

from __future__ import annotations

import io
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Union

from pypdf import PdfReader
from pypdf.errors import PyPdfError

from ..core.errors import ExtractionFailure
from .models import ExtractedText

logger = logging.getLogger("paper_insight.extractor")

Source = Union[str, Path, bytes]


class TextExtractor(ABC):
    @abstractmethod
    def extract(self, source: Source) -> ExtractedText:
        """
        Return the raw text of ``source`` (a path or the file bytes).

        Raises
        ------
        ExtractionFailure
            If the file cannot be read.
        """


class PdfTextExtractor(TextExtractor):
    """Text layer extraction for PDF files via pypdf."""

    def extract(self, source: Source) -> ExtractedText:
        stream = io.BytesIO(source) if isinstance(source, bytes) else source

        try:
            reader = PdfReader(stream)
            parts: List[str] = []
            for page in reader.pages:
                text = page.extract_text()
                if text:
                    parts.append(text)
            page_count = len(reader.pages)
        except (PyPdfError, OSError, ValueError) as exc:
            logger.error("PDF extraction failed: %s", exc)
            raise ExtractionFailure(f"Failed to extract text from PDF: {exc}") from exc

        logger.info("Extracted %d pages", page_count)
        return ExtractedText(raw_text="\n".join(parts), page_count=page_count)
