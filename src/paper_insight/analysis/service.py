"""
Analysis Service

Runs the generation-backed analyses of a document through the analysis
cache, and answers questions over a project's chunks.

Every cached analysis follows the same shape: build a prompt from the
document text, call the generation client, validate the structured output,
and hand the tagged result to ``AnalysisCacheManager``. A
``ProviderUnavailable`` placeholder is surfaced as ``GenerationUnavailable``
and never cached.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..config import Settings
from ..core.errors import GenerationUnavailable, StructuredOutputParseFailure
from ..db.store import DocumentStore
from ..ingestion.chunker import truncate_to_budget
from ..ingestion.models import DocumentRecord
from ..llm.client import GenerationClient
from ..llm.results import GenerationRequest, GenerationResult, ProviderUnavailable, Success
from ..retrieval.engine import RetrievalEngine
from ..retrieval.similarity import confidence_bucket
from . import prompts
from .cache import AnalysisCacheManager, CacheOutcome
from .models import AnalysisResult, Citation, QAAnswer

logger = logging.getLogger("paper_insight.analysis")

SUMMARY_MODES = ("tldr", "paragraph", "detailed")
REVIEW_KIND = "review"
CONCEPT_GRAPH_KIND = "conceptGraph"

SUMMARY_TOKEN_BUDGET = 4000
STRUCTURED_TOKEN_BUDGET = 12000
CITATION_PREVIEW_CHARS = 200

NO_ANSWER = (
    "I could not find relevant information in the uploaded papers to answer "
    "this question."
)

_ANSWER = re.compile(
    r"\*\*Answer\*\*:?\s*(.*?)(?=\*\*Supporting Evidence\*\*|$)",
    re.IGNORECASE | re.DOTALL,
)
_EVIDENCE = re.compile(r"\*\*Supporting Evidence\*\*:?\s*(.*)$", re.IGNORECASE | re.DOTALL)


def summary_kind(mode: str) -> str:
    return f"{mode}Summary"


class AnalysisService:
    """
    Parameters
    ----------
    generator : GenerationClient
        Text/JSON generation backend.
    cache : AnalysisCacheManager
        Write-through cache for per-document artifacts.
    retrieval : RetrievalEngine
        Project-scoped search used by question answering.
    store : DocumentStore
        Used to resolve document titles for citations.
    settings : Settings
        Supplies ``default_top_k``.
    """

    def __init__(
        self,
        generator: GenerationClient,
        cache: AnalysisCacheManager,
        retrieval: RetrievalEngine,
        store: DocumentStore,
        settings: Settings,
    ) -> None:
        self._generator = generator
        self._cache = cache
        self._retrieval = retrieval
        self._store = store
        self._settings = settings

    # ------------------------------------------------------------------
    # Cached analyses
    # ------------------------------------------------------------------

    async def summarize(self, document: DocumentRecord, mode: str) -> AnalysisResult:
        """
        Summary in ``tldr``, ``paragraph`` or ``detailed`` mode.

        Raises
        ------
        ValueError
            If ``mode`` is not a known summary mode.
        """
        if mode not in SUMMARY_MODES:
            raise ValueError(f"Unknown summary mode: {mode}")

        async def compute() -> GenerationResult:
            if mode == "detailed":
                prompt = prompts.detailed_summary(document.limited_text)
                max_tokens = 2000
            else:
                text = truncate_to_budget(document.full_text, SUMMARY_TOKEN_BUDGET)
                builder = prompts.tldr_summary if mode == "tldr" else prompts.paragraph_summary
                prompt = builder(text)
                max_tokens = 1000

            return await self._generator.generate(
                GenerationRequest(prompt=prompt, temperature=0.5, max_tokens=max_tokens)
            )

        kind = summary_kind(mode)
        outcome = await self._cache.get_or_compute(document, kind, compute)
        return self._to_result(document, kind, outcome)

    async def review(self, document: DocumentRecord) -> AnalysisResult:
        """Conference-style structured peer review."""

        async def compute() -> GenerationResult:
            text = truncate_to_budget(document.full_text, STRUCTURED_TOKEN_BUDGET)
            result = await self._generator.generate(
                GenerationRequest(
                    prompt=prompts.conference_review(text),
                    temperature=0.7,
                    max_tokens=4000,
                    wants_json=True,
                    system_message="You are an expert peer reviewer.",
                )
            )
            if isinstance(result, Success) and not isinstance(result.value, dict):
                raise StructuredOutputParseFailure("Review output is not a JSON object")
            return result

        outcome = await self._cache.get_or_compute(document, REVIEW_KIND, compute)
        return self._to_result(document, REVIEW_KIND, outcome)

    async def concept_graph(self, document: DocumentRecord) -> AnalysisResult:
        """
        Concept graph of ``nodes`` and ``edges``, stamped with the source
        document and generation time.
        """

        async def compute() -> GenerationResult:
            text = truncate_to_budget(document.full_text, STRUCTURED_TOKEN_BUDGET)
            result = await self._generator.generate(
                GenerationRequest(
                    prompt=prompts.extract_concepts(text),
                    temperature=0.5,
                    max_tokens=8000,
                    wants_json=True,
                )
            )
            if not isinstance(result, Success):
                return result

            graph = result.value
            if (
                not isinstance(graph, dict)
                or not isinstance(graph.get("nodes"), list)
                or not isinstance(graph.get("edges"), list)
            ):
                raise StructuredOutputParseFailure("Invalid graph structure from generation output")

            graph = dict(graph)
            graph["paperId"] = document.id
            graph["paperTitle"] = document.title
            graph["generatedAt"] = datetime.now(timezone.utc).isoformat()

            logger.info(
                "Extracted %d nodes and %d edges for document %s",
                len(graph["nodes"]),
                len(graph["edges"]),
                document.id,
            )
            return Success(graph)

        outcome = await self._cache.get_or_compute(document, CONCEPT_GRAPH_KIND, compute)
        return self._to_result(document, CONCEPT_GRAPH_KIND, outcome)

    # ------------------------------------------------------------------
    # Question answering
    # ------------------------------------------------------------------

    async def answer_question(
        self,
        question: str,
        project_id: str,
        document_id: Optional[str] = None,
    ) -> QAAnswer:
        """
        Retrieval-augmented answer with citations and a confidence bucket.

        When ``document_id`` is given, only hits from that document are used.

        Raises
        ------
        GenerationUnavailable
            If the generation service could not produce an answer.
        """
        logger.info("Answering question in project %s", project_id)

        hits = await self._retrieval.search(question, project_id, self._settings.default_top_k)
        if document_id is not None:
            hits = [hit for hit in hits if hit.document_id == document_id]

        if not hits:
            return QAAnswer(answer=NO_ANSWER, confidence="low")

        titles = await self._titles({hit.document_id for hit in hits})

        result = await self._generator.generate(
            GenerationRequest(
                prompt=prompts.answer_question(question, hits, titles),
                temperature=0.5,
                max_tokens=1000,
            )
        )
        if isinstance(result, ProviderUnavailable):
            raise GenerationUnavailable(result.reason, result.message or "Generation unavailable")

        response = str(result.value)
        answer = _ANSWER.search(response)
        evidence = _EVIDENCE.search(response)

        citations: List[Citation] = [
            Citation(
                index=i,
                document_id=hit.document_id,
                document_title=titles.get(hit.document_id, ""),
                section=hit.section,
                text=hit.text[:CITATION_PREVIEW_CHARS] + "...",
            )
            for i, hit in enumerate(hits, start=1)
        ]

        return QAAnswer(
            answer=answer.group(1).strip() if answer else response,
            supporting_evidence=evidence.group(1).strip() if evidence else "",
            citations=citations,
            confidence=confidence_bucket(hits[0].score),
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _titles(self, document_ids: set) -> Dict[str, str]:
        titles: Dict[str, str] = {}
        for document_id in sorted(document_ids):
            record = await self._store.get_document(document_id)
            if record is not None:
                titles[document_id] = record.title
        return titles

    @staticmethod
    def _to_result(document: DocumentRecord, kind: str, outcome: CacheOutcome) -> AnalysisResult:
        if outcome.write_skipped:
            placeholder: Any = outcome.value
            raise GenerationUnavailable(
                getattr(placeholder, "reason", "model_unavailable"),
                getattr(placeholder, "message", "") or f"Could not generate {kind}",
            )

        return AnalysisResult(
            document_id=document.id,
            kind=kind,
            value=outcome.value,
            cached=outcome.cached,
        )
