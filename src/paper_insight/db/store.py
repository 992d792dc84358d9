"""
Document Store

SQLAlchemy-backed persistence for projects, documents, cached analyses and
embedding chunks. Rows are returned as pydantic records so callers never
hold ORM instances.

The only access patterns the retrieval core needs are "all chunks of a
project" and "document by id"; the rest serves ingestion and caching.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.errors import DimensionMismatch, NotFoundError
from ..embeddings.models import ChunkRecord, Section
from ..ingestion.models import DocumentMetadata, DocumentRecord, ProjectRecord
from .models import Document, EmbeddingChunk, Project

logger = logging.getLogger("paper_insight.store")


class DocumentStore:
    """
    Async document and chunk repository bound to one session.

    Chunk writes are validated eagerly: every vector must match its declared
    dimensions and the dimensions already stored for the project.
    """

    def __init__(self, session: AsyncSession) -> None:
        """
        Parameters
        ----------
        session : AsyncSession
            SQLAlchemy async session for database operations.
        """
        self._session = session

    async def commit(self) -> None:
        """
        Commit the current transaction.
        """
        await self._session.commit()

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    async def create_project(self, name: str) -> ProjectRecord:
        project = Project(name=name)
        self._session.add(project)
        await self._session.flush()
        return ProjectRecord(id=project.id, name=project.name)

    async def get_project(self, project_id: str) -> Optional[ProjectRecord]:
        project = await self._session.get(Project, project_id)
        if project is None:
            return None
        return ProjectRecord(id=project.id, name=project.name)

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    async def add_document(
        self,
        project_id: str,
        title: str,
        full_text: str,
        limited_text: str,
        sections: Sequence[Section],
        metadata: Optional[DocumentMetadata] = None,
    ) -> DocumentRecord:
        """
        Persist a processed document and return its record.

        Raises
        ------
        NotFoundError
            If the project does not exist.
        """
        if await self._session.get(Project, project_id) is None:
            raise NotFoundError(f"Project not found: {project_id}")

        document = Document(
            project_id=project_id,
            title=title,
            full_text=full_text,
            limited_text=limited_text,
            sections=[s.model_dump() for s in sections],
            metadata_=(metadata or DocumentMetadata()).model_dump(),
            cached_artifacts={},
        )
        self._session.add(document)
        await self._session.flush()
        return self._to_record(document)

    async def get_document(self, document_id: str) -> Optional[DocumentRecord]:
        document = await self._session.get(Document, document_id)
        if document is None:
            return None
        return self._to_record(document)

    async def require_document(self, document_id: str) -> DocumentRecord:
        record = await self.get_document(document_id)
        if record is None:
            raise NotFoundError(f"Document not found: {document_id}")
        return record

    async def save_cached_artifact(self, document_id: str, kind: str, value: Any) -> None:
        """
        Write one analysis result into the document's artifact map.
        """
        document = await self._session.get(Document, document_id)
        if document is None:
            raise NotFoundError(f"Document not found: {document_id}")

        artifacts: Dict[str, Any] = dict(document.cached_artifacts or {})
        artifacts[kind] = value
        document.cached_artifacts = artifacts
        await self._session.flush()

    async def delete_document(self, document_id: str) -> int:
        """
        Remove a document and all of its chunks.

        Returns the number of deleted chunks.
        """
        result = await self._session.execute(
            delete(EmbeddingChunk).where(EmbeddingChunk.document_id == document_id)
        )
        await self._session.execute(delete(Document).where(Document.id == document_id))
        return result.rowcount or 0

    # ------------------------------------------------------------------
    # Chunks
    # ------------------------------------------------------------------

    async def project_dimensions(self, project_id: str) -> List[int]:
        """
        Distinct vector dimensions stored for a project.
        """
        result = await self._session.execute(
            select(EmbeddingChunk.dimensions)
            .where(EmbeddingChunk.project_id == project_id)
            .distinct()
        )
        return sorted(row[0] for row in result.all())

    async def add_chunks(self, chunks: Sequence[ChunkRecord]) -> int:
        """
        Add embedded chunks to the store.

        Raises
        ------
        DimensionMismatch
            If the batch mixes dimensionalities within a project or
            disagrees with vectors already stored for that project.
        """
        if not chunks:
            return 0

        expected: Dict[str, int] = {}
        for chunk in chunks:
            if chunk.project_id not in expected:
                stored = await self.project_dimensions(chunk.project_id)
                expected[chunk.project_id] = stored[0] if stored else chunk.dimensions

            if chunk.dimensions != expected[chunk.project_id]:
                logger.error(
                    "Rejected chunk write: project=%s expected=%d actual=%d",
                    chunk.project_id,
                    expected[chunk.project_id],
                    chunk.dimensions,
                )
                raise DimensionMismatch(
                    expected=expected[chunk.project_id],
                    actual=chunk.dimensions,
                    document_id=chunk.document_id,
                    chunk_index=chunk.chunk_index,
                )

        for chunk in chunks:
            self._session.add(
                EmbeddingChunk(
                    document_id=chunk.document_id,
                    project_id=chunk.project_id,
                    section=chunk.section,
                    text=chunk.text,
                    chunk_index=chunk.chunk_index,
                    embedding=list(chunk.embedding),
                    dimensions=chunk.dimensions,
                )
            )

        await self._session.flush()
        return len(chunks)

    async def find_chunks_by_project(self, project_id: str) -> List[ChunkRecord]:
        """
        Return every chunk of a project in insertion order.
        """
        result = await self._session.execute(
            select(EmbeddingChunk)
            .where(EmbeddingChunk.project_id == project_id)
            .order_by(EmbeddingChunk.id)
        )

        # model_construct skips the dimension validator so rows written
        # before a provider change still reach the query-time check.
        return [
            ChunkRecord.model_construct(
                document_id=row.document_id,
                project_id=row.project_id,
                section=row.section,
                text=row.text,
                chunk_index=row.chunk_index,
                embedding=list(row.embedding),
                dimensions=row.dimensions,
            )
            for row in result.scalars().all()
        ]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _to_record(document: Document) -> DocumentRecord:
        return DocumentRecord(
            id=document.id,
            project_id=document.project_id,
            title=document.title,
            full_text=document.full_text,
            limited_text=document.limited_text,
            sections=[Section(**s) for s in document.sections or []],
            metadata=DocumentMetadata(**(document.metadata_ or {})),
            cached_artifacts=dict(document.cached_artifacts or {}),
        )
