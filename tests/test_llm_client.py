"""
Generation client tests against a mocked chat completions endpoint.
"""

import json

import httpx
import pytest

from paper_insight.core.errors import ConfigurationError, StructuredOutputParseFailure
from paper_insight.llm.client import (
    OpenAIGenerationClient,
    create_generation_client,
    parse_json_output,
)
from paper_insight.llm.results import (
    MODEL_UNAVAILABLE,
    QUOTA_EXCEEDED,
    GenerationRequest,
    ProviderUnavailable,
    Success,
)


def completion(content: str) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def client_for(handler) -> OpenAIGenerationClient:
    return OpenAIGenerationClient(api_key="sk-test", transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_text_generation():
    seen = {}

    def handler(request):
        seen.update(json.loads(request.content))
        return httpx.Response(200, json=completion("  A concise summary.  "))

    result = await client_for(handler).generate(
        GenerationRequest(prompt="Summarize", temperature=0.5, max_tokens=1000)
    )

    assert result == Success("A concise summary.")
    assert seen["temperature"] == 0.5
    assert seen["max_tokens"] == 1000
    assert "response_format" not in seen
    assert seen["messages"][1] == {"role": "user", "content": "Summarize"}


@pytest.mark.asyncio
async def test_json_generation_parses_fenced_output():
    seen = {}

    def handler(request):
        seen.update(json.loads(request.content))
        return httpx.Response(200, json=completion('```json\n{"nodes": [], "edges": []}\n```'))

    result = await client_for(handler).generate(
        GenerationRequest(prompt="Extract", wants_json=True)
    )

    assert result == Success({"nodes": [], "edges": []})
    assert seen["response_format"] == {"type": "json_object"}
    assert "valid JSON" in seen["messages"][0]["content"]


@pytest.mark.asyncio
async def test_malformed_json_raises():
    client = client_for(lambda request: httpx.Response(200, json=completion("not json {")))

    with pytest.raises(StructuredOutputParseFailure):
        await client.generate(GenerationRequest(prompt="Review", wants_json=True))


@pytest.mark.asyncio
async def test_quota_is_a_placeholder():
    client = client_for(lambda request: httpx.Response(429, json={}))

    result = await client.generate(GenerationRequest(prompt="x"))

    assert isinstance(result, ProviderUnavailable)
    assert result.reason == QUOTA_EXCEEDED


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [404, 500, 503])
async def test_model_unavailable_is_a_placeholder(status):
    client = client_for(lambda request: httpx.Response(status, json={}))

    result = await client.generate(GenerationRequest(prompt="x"))

    assert isinstance(result, ProviderUnavailable)
    assert result.reason == MODEL_UNAVAILABLE


@pytest.mark.asyncio
async def test_transport_error_is_a_placeholder():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    result = await client_for(handler).generate(GenerationRequest(prompt="x"))

    assert result == ProviderUnavailable(MODEL_UNAVAILABLE, "Transport error: ReadTimeout")


@pytest.mark.asyncio
async def test_rejected_request_is_configuration_error():
    client = client_for(lambda request: httpx.Response(401, json={}))

    with pytest.raises(ConfigurationError):
        await client.generate(GenerationRequest(prompt="x"))


def test_parse_json_output_plain():
    assert parse_json_output('{"a": 1}') == {"a": 1}


def test_factory_requires_key(settings):
    assert isinstance(create_generation_client(settings), OpenAIGenerationClient)

    with pytest.raises(ConfigurationError):
        create_generation_client(settings.model_copy(update={"openai_api_key": None}))
