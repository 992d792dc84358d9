"""
Database Package

Provides SQLAlchemy async session management, model definitions and the
document store used by ingestion, retrieval and caching.
"""

from .session import create_session_factory, init_models
from .models import Base, Project, Document, EmbeddingChunk
from .store import DocumentStore

__all__ = [
    "create_session_factory",
    "init_models",
    "Base",
    "Project",
    "Document",
    "EmbeddingChunk",
    "DocumentStore",
]
