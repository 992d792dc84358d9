"""
Tagged generation results.

The generation collaborator returns either ``Success`` or
``ProviderUnavailable``. Callers, the analysis cache in particular, branch
on the result type and never on generated text.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

QUOTA_EXCEEDED = "quota_exceeded"
MODEL_UNAVAILABLE = "model_unavailable"


@dataclass(frozen=True)
class GenerationRequest:
    """Input to the generation service."""
    prompt: str
    temperature: float = 0.7
    max_tokens: int = 2000
    wants_json: bool = False
    system_message: str = "You are a helpful research assistant."


@dataclass(frozen=True)
class Success:
    """A generated value: text, or a parsed JSON object when requested."""
    value: Any


@dataclass(frozen=True)
class ProviderUnavailable:
    """
    Placeholder returned when the service could not produce an answer.

    ``reason`` is ``quota_exceeded`` or ``model_unavailable``; both are
    recoverable by retrying later.
    """
    reason: str
    message: str = ""


GenerationResult = Union[Success, ProviderUnavailable]


def is_cacheable(result: GenerationResult) -> bool:
    """
    Whether a result may be persisted as a cached artifact.

    Every ``Success`` is cacheable, structured or not; a
    ``ProviderUnavailable`` placeholder never is.
    """
    return isinstance(result, Success)
