"""
Analysis Cache

Memoizes expensive derived artifacts (summaries, reviews, concept graphs)
per document, without ever persisting a failure placeholder.

Two concerns stay separate:
- "expensive to recompute": a present artifact is returned as cached
- "must not poison the cache": only results accepted by ``is_cacheable``
  are written

The lookup and the write are not atomic. Two concurrent misses on the same
(document, kind) both compute and both write; the last write wins. Compute
is idempotent, so this race is accepted and no lock is taken.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from ..db.store import DocumentStore
from ..ingestion.models import DocumentRecord
from ..llm.results import GenerationResult, is_cacheable

logger = logging.getLogger("paper_insight.cache")

ComputeFn = Callable[[], Awaitable[GenerationResult]]


@dataclass(frozen=True)
class CacheOutcome:
    """
    Result of ``get_or_compute``.

    ``write_skipped`` is set when a freshly computed result was a failure
    placeholder and therefore not persisted; ``value`` is then the
    placeholder itself.
    """
    value: Any
    cached: bool
    write_skipped: bool = False


class AnalysisCacheManager:
    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def get_or_compute(
        self,
        document: DocumentRecord,
        kind: str,
        compute: ComputeFn,
    ) -> CacheOutcome:
        """
        Return the cached artifact for ``kind`` or compute, cache and return
        a fresh one.

        Exceptions raised by ``compute`` propagate and nothing is written.
        """
        # Placeholders are never written, so presence means a real artifact.
        if kind in document.cached_artifacts:
            logger.info("Returning cached %s for document %s", kind, document.id)
            return CacheOutcome(value=document.cached_artifacts[kind], cached=True)

        result = await compute()

        if not is_cacheable(result):
            logger.warning(
                "Cache write skipped for %s on document %s: %s",
                kind,
                document.id,
                getattr(result, "reason", "not cacheable"),
            )
            return CacheOutcome(value=result, cached=False, write_skipped=True)

        await self._store.save_cached_artifact(document.id, kind, result.value)
        document.cached_artifacts[kind] = result.value
        logger.info("Cached %s for document %s", kind, document.id)

        return CacheOutcome(value=result.value, cached=False)
