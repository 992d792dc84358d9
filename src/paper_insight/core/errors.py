"""
Error Taxonomy and Global Error Handling

This module defines the typed failures raised by the ingestion, embedding,
retrieval and analysis layers, plus the FastAPI exception handlers that turn
them into machine-readable responses.

Design Goals
------------
- Every failure carries a stable ``kind`` string clients can branch on
- Never leak internal exception details for unexpected errors
- Log full stack traces internally for debugging
- No retrying and no silent degradation in the core
"""

from __future__ import annotations

import logging
from typing import Dict, Any, Optional

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger("paper_insight.errors")


# ---------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------

class PaperInsightError(Exception):
    """Base class for all typed failures in this package."""

    kind: str = "paper_insight_error"
    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_payload(self) -> Dict[str, Any]:
        return {"error": self.kind, "detail": self.message}


class ConfigurationError(PaperInsightError):
    """Raised when the configured provider or credentials are unusable."""

    kind = "configuration_error"
    status_code = 500


class NotFoundError(PaperInsightError):
    """Raised when a project or document id does not resolve."""

    kind = "not_found"
    status_code = 404


class ExtractionFailure(PaperInsightError):
    """The source file has no usable text layer. Fatal to ingestion."""

    kind = "extraction_failure"
    status_code = 422


class EmbeddingProviderFailure(PaperInsightError):
    """
    An embedding call failed.

    ``cause`` is one of: quota, network, invalid_input, invalid_response,
    not_implemented.
    """

    kind = "embedding_provider_failure"
    status_code = 502

    def __init__(self, provider: str, cause: str, message: str) -> None:
        super().__init__(f"[{provider}] {message}")
        self.provider = provider
        self.cause = cause

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        payload["provider"] = self.provider
        payload["cause"] = self.cause
        return payload


class DimensionMismatch(PaperInsightError):
    """
    Stored and query vectors disagree on length.

    Indicates the embedding provider changed while a project already held
    vectors from another one.
    """

    kind = "dimension_mismatch"
    status_code = 409

    def __init__(
        self,
        expected: int,
        actual: int,
        document_id: Optional[str] = None,
        chunk_index: Optional[int] = None,
    ) -> None:
        where = ""
        if document_id is not None:
            where = f" (document={document_id}, chunk={chunk_index})"
        super().__init__(
            f"Embedding dimension mismatch: expected {expected}, got {actual}{where}"
        )
        self.expected = expected
        self.actual = actual
        self.document_id = document_id
        self.chunk_index = chunk_index


class StructuredOutputParseFailure(PaperInsightError):
    """Generation output could not be parsed into the expected structure."""

    kind = "structured_output_parse_failure"
    status_code = 502


class GenerationUnavailable(PaperInsightError):
    """The generation service reported quota exhaustion or an unavailable model."""

    kind = "generation_unavailable"
    status_code = 503

    def __init__(self, reason: str, message: str) -> None:
        super().__init__(message)
        self.reason = reason

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        payload["reason"] = self.reason
        return payload


# ---------------------------------------------------------------------
# Public Exception Handlers
# ---------------------------------------------------------------------

async def paper_insight_error_handler(
    request: Request,
    exc: PaperInsightError,
) -> JSONResponse:
    """
    Render a typed failure as ``{"error": kind, "detail": message}``.
    """
    logger.warning(
        "Request %s %s failed with %s: %s",
        request.method,
        request.url.path,
        exc.kind,
        exc.message,
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_payload(),
    )


async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """
    Catch-all handler for uncaught exceptions.

    Logs the full traceback and returns a generic 500 with no internal
    details.
    """
    logger.exception(
        "Unhandled exception during request: %s %s",
        request.method,
        request.url.path,
        exc_info=exc,
    )

    payload: Dict[str, Any] = {
        "error": "internal_server_error",
        "detail": "Internal server error",
    }

    return JSONResponse(
        status_code=500,
        content=payload,
    )
