"""
Ingestion Pipeline

Architecture contract:
extractor -> clean_text -> section detector -> chunker -> embedding provider
-> document store

Nothing is written until every chunk has been embedded, so a failed
provider call leaves no partial document behind.
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

from ..config import Settings
from ..core.errors import ExtractionFailure, NotFoundError
from ..db.store import DocumentStore
from ..embeddings.models import ChunkRecord
from ..embeddings.providers import EmbeddingProvider
from .chunker import chunk_sections, count_tokens, truncate_to_budget
from .extractor import Source, TextExtractor
from .models import DocumentRecord
from .sections import SectionDetector
from .text import clean_text, extract_metadata

logger = logging.getLogger("paper_insight.ingestion")

UNTITLED = "Untitled"


class IngestionPipeline:
    """
    Turns an uploaded file into a stored document with embedded chunks.

    Parameters
    ----------
    settings : Settings
        Supplies the chunk and generation token budgets and the minimum
        usable text length.
    extractor : TextExtractor
        Raw text collaborator.
    provider : EmbeddingProvider
        Active embedding provider.
    store : DocumentStore
        Persistence for the document and its chunks.
    detector : SectionDetector, optional
        Defaults to one configured with ``settings.min_section_chars``.
    """

    def __init__(
        self,
        settings: Settings,
        extractor: TextExtractor,
        provider: EmbeddingProvider,
        store: DocumentStore,
        detector: Optional[SectionDetector] = None,
    ) -> None:
        self._settings = settings
        self._extractor = extractor
        self._provider = provider
        self._store = store
        self._detector = detector or SectionDetector(min_chars=settings.min_section_chars)

    async def ingest(
        self,
        source: Source,
        project_id: str,
        title: Optional[str] = None,
    ) -> DocumentRecord:
        """
        Extract, process and store one file.

        Raises
        ------
        ExtractionFailure
            If the file cannot be read or has no usable text layer.
        EmbeddingProviderFailure
            If chunk embedding fails; nothing is stored.
        DimensionMismatch
            If the project already holds vectors of another length.
        """
        extracted = await asyncio.to_thread(self._extractor.extract, source)
        return await self.ingest_text(
            extracted.raw_text,
            project_id,
            title=title,
            page_count=extracted.page_count,
        )

    async def ingest_text(
        self,
        raw_text: str,
        project_id: str,
        title: Optional[str] = None,
        page_count: Optional[int] = None,
    ) -> DocumentRecord:
        """Process and store already extracted text."""
        if await self._store.get_project(project_id) is None:
            raise NotFoundError(f"Project not found: {project_id}")

        full_text = clean_text(raw_text)
        if len(full_text) < self._settings.min_section_chars:
            raise ExtractionFailure(
                "Extracted text is too short; the file may be scanned or have no text layer"
            )

        metadata = extract_metadata(full_text)
        metadata.page_count = page_count
        metadata.token_count = count_tokens(full_text)

        sections = self._detector.detect(full_text)
        limited_text = truncate_to_budget(full_text, self._settings.generation_token_budget)
        drafts = chunk_sections(sections, self._settings.chunk_max_tokens)

        vectors = await self._provider.embed([d.text for d in drafts])

        document = await self._store.add_document(
            project_id=project_id,
            title=title or metadata.title or UNTITLED,
            full_text=full_text,
            limited_text=limited_text,
            sections=sections,
            metadata=metadata,
        )

        dimensions = self._provider.dimensions()
        records: List[ChunkRecord] = [
            ChunkRecord(
                document_id=document.id,
                project_id=project_id,
                section=draft.section,
                text=draft.text,
                chunk_index=draft.chunk_index,
                embedding=vector,
                dimensions=dimensions,
            )
            for draft, vector in zip(drafts, vectors)
        ]

        await self._store.add_chunks(records)
        await self._store.commit()

        logger.info(
            "Ingested document %s into project %s: %d sections, %d chunks",
            document.id,
            project_id,
            len(sections),
            len(records),
        )
        return document
