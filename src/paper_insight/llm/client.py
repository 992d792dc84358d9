"""
Generation Client

Adapter over an OpenAI-compatible chat completions endpoint.

Quota exhaustion and model unavailability are reported as
``ProviderUnavailable`` results with distinct reasons; malformed structured
output raises ``StructuredOutputParseFailure``. The client never retries.
"""

from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx

from ..config import Settings
from ..core.errors import ConfigurationError, StructuredOutputParseFailure
from .results import (
    MODEL_UNAVAILABLE,
    QUOTA_EXCEEDED,
    GenerationRequest,
    GenerationResult,
    ProviderUnavailable,
    Success,
)

logger = logging.getLogger("paper_insight.llm")

_CODE_FENCE = re.compile(r"```(?:json)?\n?|\n?```")


class GenerationClient(ABC):
    """Interface over text/JSON generation backends."""

    @abstractmethod
    async def generate(self, request: GenerationRequest) -> GenerationResult:
        """Run one generation request."""


class OpenAIGenerationClient(GenerationClient):
    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: str = "https://api.openai.com/v1",
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        """
        Returns ``Success(str)`` for text requests, ``Success(dict | list)``
        when ``wants_json`` is set, or ``ProviderUnavailable``.
        """
        system = request.system_message
        if request.wants_json:
            system = f"{system} Always respond with valid JSON."

        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": request.prompt},
            ],
            "temperature": request.temperature,
            "max_tokens": request.max_tokens,
        }
        if request.wants_json:
            payload["response_format"] = {"type": "json_object"}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(
                    f"{self.base_url}/chat/completions",
                    json=payload,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            return self._unavailable_or_raise(exc.response.status_code)
        except httpx.TransportError as exc:
            logger.warning("Generation transport error: %s", type(exc).__name__)
            return ProviderUnavailable(MODEL_UNAVAILABLE, f"Transport error: {type(exc).__name__}")

        try:
            content = resp.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise StructuredOutputParseFailure("Generation response has no message content") from exc

        if not isinstance(content, str):
            raise StructuredOutputParseFailure("Generation response content is not text")

        if not request.wants_json:
            return Success(content.strip())

        return Success(parse_json_output(content))

    def _unavailable_or_raise(self, status: int) -> ProviderUnavailable:
        if status == 429:
            logger.warning("Generation quota exceeded (model=%s)", self.model)
            return ProviderUnavailable(QUOTA_EXCEEDED, "Generation quota exceeded")

        if status == 404 or status >= 500:
            logger.warning("Generation model unavailable (model=%s, status=%d)", self.model, status)
            return ProviderUnavailable(MODEL_UNAVAILABLE, f"Model unavailable (HTTP {status})")

        raise ConfigurationError(f"Generation request rejected (HTTP {status})")


def parse_json_output(content: str) -> Any:
    """
    Parse model output as JSON, tolerating markdown code fences.

    Raises
    ------
    StructuredOutputParseFailure
        If the cleaned text is not valid JSON.
    """
    cleaned = _CODE_FENCE.sub("", content).strip()
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as exc:
        logger.error("Structured output parse failed at position %d", exc.pos)
        raise StructuredOutputParseFailure(
            f"Generation output is not valid JSON: {exc.msg}"
        ) from exc


def create_generation_client(
    settings: Settings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> GenerationClient:
    if settings.openai_api_key is None:
        raise ConfigurationError("OpenAI API key not configured")

    return OpenAIGenerationClient(
        api_key=settings.openai_api_key.get_secret_value(),
        model=settings.llm_model,
        base_url=settings.llm_base_url,
        timeout=settings.http_timeout,
        transport=transport,
    )
