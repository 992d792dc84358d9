"""
Embedding Providers

This module defines the provider-agnostic embedding interface and its
interchangeable backends:

- ``OpenAIEmbeddingProvider``: batch-capable, many inputs per request
- ``GeminiEmbeddingProvider``: one input per request with a fixed delay
  between calls to respect rate limits
- ``LocalEmbeddingProvider``: declared but unimplemented, fails fast

Every backend preserves input order, returns exactly one vector per input,
and checks each vector against ``dimensions()``. A failure aborts the whole
call; partial results are never returned and zero vectors are never
substituted.

Providers perform no caching and hold no per-request state.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence, Union

import httpx

from ..config import Settings
from ..core.errors import ConfigurationError, EmbeddingProviderFailure

logger = logging.getLogger("paper_insight.embedder")

Vector = List[float]

GEMINI_DIMENSIONS = 768
LOCAL_DIMENSIONS = 384


# ---------------------------------------------------------------------
# Interface
# ---------------------------------------------------------------------

class EmbeddingProvider(ABC):
    """
    Capability interface over vector-generation backends.

    ``embed`` accepts one text or a sequence of texts and mirrors that shape
    in its result.
    """

    name: str = "abstract"

    async def embed(
        self,
        texts: Union[str, Sequence[str]],
    ) -> Union[Vector, List[Vector]]:
        """
        Generate embeddings.

        Parameters
        ----------
        texts : str or Sequence[str]
            A single text, or texts to embed in order.

        Returns
        -------
        Vector or List[Vector]
            One vector for a single text, otherwise one vector per input in
            input order.

        Raises
        ------
        EmbeddingProviderFailure
            If any request fails or the response is malformed.
        """
        single = isinstance(texts, str)
        inputs = [texts] if single else list(texts)

        if not inputs:
            return []

        for i, text in enumerate(inputs):
            if not isinstance(text, str) or not text.strip():
                raise EmbeddingProviderFailure(
                    self.name,
                    "invalid_input",
                    f"Input at index {i} is empty or not a string.",
                )

        logger.info("Embedding %d input(s) with provider=%s", len(inputs), self.name)

        vectors = await self._embed_many(inputs)
        self._validate(inputs, vectors)

        return vectors[0] if single else vectors

    @abstractmethod
    def dimensions(self) -> int:
        """Length of every vector this provider produces."""

    @abstractmethod
    async def _embed_many(self, inputs: List[str]) -> List[Vector]:
        """Embed a non-empty list of texts, in order."""

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _validate(self, inputs: List[str], vectors: List[Vector]) -> None:
        if len(vectors) != len(inputs):
            raise EmbeddingProviderFailure(
                self.name,
                "invalid_response",
                f"Expected {len(inputs)} embeddings, got {len(vectors)}.",
            )

        dim = self.dimensions()
        for i, vector in enumerate(vectors):
            if len(vector) != dim:
                raise EmbeddingProviderFailure(
                    self.name,
                    "invalid_response",
                    f"Embedding at index {i} has {len(vector)} dimensions, expected {dim}.",
                )

    def _http_failure(self, exc: httpx.HTTPError) -> EmbeddingProviderFailure:
        """Map a transport or status error onto a failure cause."""
        if isinstance(exc, httpx.HTTPStatusError):
            status = exc.response.status_code
            if status == 429:
                cause = "quota"
            elif status in (400, 413, 422):
                cause = "invalid_input"
            else:
                cause = "network"
        else:
            cause = "network"

        logger.error(
            "Embedding request failed (%s): provider=%s, cause=%s, error=%s",
            type(exc).__name__,
            self.name,
            cause,
            str(exc),
        )
        return EmbeddingProviderFailure(
            self.name,
            cause,
            f"Embedding generation failed: {type(exc).__name__}",
        )

    def _json(self, response: httpx.Response) -> dict:
        try:
            return response.json()
        except ValueError as exc:
            raise EmbeddingProviderFailure(
                self.name, "invalid_response", "Embedding response is not valid JSON."
            ) from exc

    @staticmethod
    def _as_vector(values: object) -> Optional[Vector]:
        if not isinstance(values, list) or not all(
            isinstance(x, (float, int)) and not isinstance(x, bool) for x in values
        ):
            return None
        return [float(x) for x in values]


# ---------------------------------------------------------------------
# OpenAI
# ---------------------------------------------------------------------

class OpenAIEmbeddingProvider(EmbeddingProvider):
    """
    Batch embedding over the OpenAI embeddings API.

    Batches are sent sequentially; output is reassembled by each record's
    ``index`` so order never depends on response ordering.
    """

    name = "openai"

    def __init__(
        self,
        api_key: str,
        model: str = "text-embedding-3-small",
        dimensions: int = 1536,
        base_url: str = "https://api.openai.com/v1",
        batch_size: int = 100,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if batch_size <= 0:
            raise ConfigurationError(f"Invalid embedding batch size: {batch_size}")

        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.batch_size = batch_size
        self.timeout = timeout
        self._dimensions = dimensions
        self._transport = transport

    def dimensions(self) -> int:
        return self._dimensions

    async def _embed_many(self, inputs: List[str]) -> List[Vector]:
        all_embeddings: List[Vector] = []
        headers = {"Authorization": f"Bearer {self.api_key}"}

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            for start in range(0, len(inputs), self.batch_size):
                batch = inputs[start : start + self.batch_size]
                payload = {
                    "model": self.model,
                    "input": batch,
                }
                # Only the text-embedding-3 family accepts a reduced output size.
                if self.model.startswith("text-embedding-3"):
                    payload["dimensions"] = self._dimensions

                try:
                    response = await client.post(
                        f"{self.base_url}/embeddings",
                        json=payload,
                        headers=headers,
                    )
                    response.raise_for_status()
                except httpx.HTTPError as exc:
                    raise self._http_failure(exc) from exc

                embeddings = self._extract_embeddings(self._json(response), len(batch))
                all_embeddings.extend(embeddings)

        return all_embeddings

    def _extract_embeddings(self, data: dict, expected: int) -> List[Vector]:
        """
        Parse and validate embedding output format.

        OpenAI returns:
            { "data": [ {"index": 0, "embedding": [...]}, ... ] }
        """
        records = data.get("data") if isinstance(data, dict) else None
        if not isinstance(records, list):
            raise EmbeddingProviderFailure(
                self.name, "invalid_response", "Embedding response missing 'data' list."
            )

        if len(records) != expected:
            raise EmbeddingProviderFailure(
                self.name,
                "invalid_response",
                f"Batch of {expected} inputs returned {len(records)} embeddings.",
            )

        ordered: List[Optional[Vector]] = [None] * expected

        for position, record in enumerate(records):
            if not isinstance(record, dict) or "embedding" not in record:
                raise EmbeddingProviderFailure(
                    self.name,
                    "invalid_response",
                    f"Malformed embedding record at position {position}.",
                )

            index = record.get("index", position)
            if not isinstance(index, int) or not 0 <= index < expected or ordered[index] is not None:
                raise EmbeddingProviderFailure(
                    self.name,
                    "invalid_response",
                    f"Invalid or duplicate embedding index {index!r}.",
                )

            vector = self._as_vector(record["embedding"])
            if vector is None:
                raise EmbeddingProviderFailure(
                    self.name,
                    "invalid_response",
                    f"Invalid embedding vector at index {index}: must be float list.",
                )
            ordered[index] = vector

        return [v for v in ordered if v is not None]


# ---------------------------------------------------------------------
# Gemini
# ---------------------------------------------------------------------

class GeminiEmbeddingProvider(EmbeddingProvider):
    """
    Single-item embedding over the Gemini ``embedContent`` endpoint.

    Calls are strictly sequential with ``delay_seconds`` between them.
    """

    name = "gemini"

    def __init__(
        self,
        api_key: str,
        model: str = "text-embedding-004",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        delay_seconds: float = 1.0,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.delay_seconds = delay_seconds
        self.timeout = timeout
        self._transport = transport

    def dimensions(self) -> int:
        return GEMINI_DIMENSIONS

    async def _embed_many(self, inputs: List[str]) -> List[Vector]:
        url = f"{self.base_url}/models/{self.model}:embedContent"
        headers = {"x-goog-api-key": self.api_key}
        embeddings: List[Vector] = []

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            for i, text in enumerate(inputs):
                if i and self.delay_seconds > 0:
                    await asyncio.sleep(self.delay_seconds)

                payload = {
                    "model": f"models/{self.model}",
                    "content": {"parts": [{"text": text}]},
                }

                try:
                    response = await client.post(url, json=payload, headers=headers)
                    response.raise_for_status()
                except httpx.HTTPError as exc:
                    raise self._http_failure(exc) from exc

                data = self._json(response)
                embedding = data.get("embedding") if isinstance(data, dict) else None
                values = embedding.get("values") if isinstance(embedding, dict) else None
                vector = self._as_vector(values)
                if vector is None:
                    raise EmbeddingProviderFailure(
                        self.name,
                        "invalid_response",
                        f"Malformed embedding response for input {i}.",
                    )
                embeddings.append(vector)

        return embeddings


# ---------------------------------------------------------------------
# Local
# ---------------------------------------------------------------------

class LocalEmbeddingProvider(EmbeddingProvider):
    """
    Placeholder for a self-hosted embedding server.

    Selecting it is allowed; any ``embed`` call fails immediately.
    """

    name = "local"

    def __init__(self, base_url: str = "http://localhost:8000", model: str = "all-MiniLM-L6-v2") -> None:
        self.base_url = base_url
        self.model = model

    def dimensions(self) -> int:
        return LOCAL_DIMENSIONS

    async def _embed_many(self, inputs: List[str]) -> List[Vector]:
        raise EmbeddingProviderFailure(
            self.name,
            "not_implemented",
            "Local embedding provider is not implemented; "
            "set EMBEDDING_PROVIDER to 'openai' or 'gemini'.",
        )


# ---------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------

def create_embedding_provider(
    settings: Settings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> EmbeddingProvider:
    """
    Build the provider named by ``settings.embedding_provider``.

    Raises
    ------
    ConfigurationError
        If the provider is unknown or its API key is missing.
    """
    provider = settings.embedding_provider

    if provider == "openai":
        if settings.openai_api_key is None:
            raise ConfigurationError("OpenAI API key not configured")
        return OpenAIEmbeddingProvider(
            api_key=settings.openai_api_key.get_secret_value(),
            model=settings.embedding_model,
            dimensions=settings.embedding_dimensions,
            base_url=settings.openai_base_url,
            batch_size=settings.openai_embed_batch_size,
            timeout=settings.http_timeout,
            transport=transport,
        )

    if provider == "gemini":
        if settings.gemini_api_key is None:
            raise ConfigurationError("Gemini API key not configured")
        return GeminiEmbeddingProvider(
            api_key=settings.gemini_api_key.get_secret_value(),
            model=settings.gemini_embedding_model,
            base_url=settings.gemini_base_url,
            delay_seconds=settings.gemini_embed_delay_seconds,
            timeout=settings.http_timeout,
            transport=transport,
        )

    if provider == "local":
        return LocalEmbeddingProvider(base_url=settings.local_embedding_url)

    raise ConfigurationError(f"Unknown embedding provider: {provider}")
