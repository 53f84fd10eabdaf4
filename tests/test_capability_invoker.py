"""Tests for CapabilityInvoker dispatch, input checks, timeout and retry policy."""

import logging
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from openai import APIConnectionError

from enrichment_engine.core.capabilities import PHASE_ONE, CapabilityKind
from enrichment_engine.core.embeddings import OpenAIEmbeddingClient
from enrichment_engine.core.errors import (
    CapabilityUnavailable,
    DimensionMismatch,
    EmptyInput,
    InputTooLarge,
    MalformedCapabilityOutput,
)
from enrichment_engine.core.llm import AnthropicCompletionClient, build_completion_client
from enrichment_engine.core.schemas_capabilities import (
    EMBEDDING_DIMENSIONS,
    EmbeddingOutput,
    SummariesOutput,
    TagsOutput,
)
from enrichment_engine.services.capability_invoker import CapabilityInvoker
from tests.fakes.fake_clients import (
    SAMPLE_DOCUMENT,
    SUMMARIES_RESPONSE,
    TAGS_RESPONSE,
    FakeCompletionClient,
    FakeEmbeddingClient,
    make_vector,
)


def _connection_error() -> APIConnectionError:
    return APIConnectionError(request=httpx.Request("POST", "https://api.openai.com/v1/embeddings"))


@pytest.fixture
def invoker(completion_client, embedding_client, settings):
    return CapabilityInvoker(completion_client, embedding_client, settings)


@pytest.mark.asyncio
async def test_invoke_returns_tagged_result(invoker, completion_client):
    result = await invoker.invoke(CapabilityKind.TAGGING, SAMPLE_DOCUMENT)

    assert result.kind == CapabilityKind.TAGGING
    assert isinstance(result.payload, TagsOutput)
    assert result.duration_ms >= 0
    assert completion_client.call_count(CapabilityKind.TAGGING) == 1


@pytest.mark.asyncio
async def test_invoke_uses_configured_model(invoker, completion_client, settings):
    await invoker.invoke(CapabilityKind.SHORT_FORM_SUMMARIES, SAMPLE_DOCUMENT)

    call = completion_client.calls[0]
    assert call["model"] == settings.SUMMARY_MODEL
    assert SAMPLE_DOCUMENT in call["user_prompt"]


@pytest.mark.asyncio
async def test_invoke_every_phase_one_kind(invoker):
    for kind in PHASE_ONE:
        result = await invoker.invoke(kind, SAMPLE_DOCUMENT)
        assert result.kind == kind


@pytest.mark.asyncio
async def test_retries_once_on_transient_error(embedding_client, settings):
    client = FakeCompletionClient(
        responses={CapabilityKind.SHORT_FORM_SUMMARIES: [TimeoutError(), SUMMARIES_RESPONSE]}
    )
    invoker = CapabilityInvoker(client, embedding_client, settings)

    result = await invoker.invoke(CapabilityKind.SHORT_FORM_SUMMARIES, SAMPLE_DOCUMENT)

    assert isinstance(result.payload, SummariesOutput)
    assert client.call_count(CapabilityKind.SHORT_FORM_SUMMARIES) == 2


@pytest.mark.asyncio
async def test_transient_error_after_retry_is_unavailable(embedding_client, settings):
    client = FakeCompletionClient(
        responses={CapabilityKind.TAGGING: [TimeoutError(), TimeoutError(), TAGS_RESPONSE]}
    )
    invoker = CapabilityInvoker(client, embedding_client, settings)

    with pytest.raises(CapabilityUnavailable) as exc_info:
        await invoker.invoke(CapabilityKind.TAGGING, SAMPLE_DOCUMENT)

    assert exc_info.value.kind == CapabilityKind.TAGGING
    assert exc_info.value.details["attempts"] == 2
    assert client.call_count(CapabilityKind.TAGGING) == 2


@pytest.mark.asyncio
async def test_slow_capability_times_out(embedding_client, settings):
    fast_timeout = settings.model_copy(update={"CAPABILITY_TIMEOUT_SECONDS": 0.05})
    client = FakeCompletionClient(delays={CapabilityKind.CLASSIFICATION: 1.0})
    invoker = CapabilityInvoker(client, embedding_client, fast_timeout)

    with pytest.raises(CapabilityUnavailable, match="timed out") as exc_info:
        await invoker.invoke(CapabilityKind.CLASSIFICATION, SAMPLE_DOCUMENT)

    assert exc_info.value.details["error_type"] == "TimeoutError"
    assert client.call_count(CapabilityKind.CLASSIFICATION) == 2


@pytest.mark.asyncio
async def test_malformed_output_is_not_retried(embedding_client, settings):
    client = FakeCompletionClient(
        responses={CapabilityKind.SHORT_FORM_SUMMARIES: ["no json here", SUMMARIES_RESPONSE]}
    )
    invoker = CapabilityInvoker(client, embedding_client, settings)

    with pytest.raises(MalformedCapabilityOutput):
        await invoker.invoke(CapabilityKind.SHORT_FORM_SUMMARIES, SAMPLE_DOCUMENT)

    assert client.call_count(CapabilityKind.SHORT_FORM_SUMMARIES) == 1


@pytest.mark.asyncio
async def test_non_transient_error_is_not_retried(embedding_client, settings):
    client = FakeCompletionClient(responses={CapabilityKind.SEARCH_METADATA: ValueError("bad request")})
    invoker = CapabilityInvoker(client, embedding_client, settings)

    with pytest.raises(CapabilityUnavailable) as exc_info:
        await invoker.invoke(CapabilityKind.SEARCH_METADATA, SAMPLE_DOCUMENT)

    assert exc_info.value.details["transient"] is False
    assert isinstance(exc_info.value.__cause__, ValueError)
    assert client.call_count(CapabilityKind.SEARCH_METADATA) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("text", ["", "   ", "too short", "  tiny \n "])
async def test_empty_input_rejected_before_call(invoker, completion_client, text):
    with pytest.raises(EmptyInput) as exc_info:
        await invoker.invoke(CapabilityKind.SHORT_FORM_SUMMARIES, text)

    assert exc_info.value.kind is None
    assert completion_client.calls == []


@pytest.mark.asyncio
async def test_input_too_large_rejected_before_call(invoker, completion_client, embedding_client):
    with pytest.raises(InputTooLarge):
        await invoker.invoke(CapabilityKind.EMBEDDING_VECTOR, "x" * 100_001)

    assert completion_client.calls == []
    assert embedding_client.inputs == []


@pytest.mark.asyncio
async def test_embedding_invocation_prepares_input(invoker, embedding_client):
    result = await invoker.invoke(CapabilityKind.EMBEDDING_VECTOR, "Hello   world,\n\nthis is text")

    assert isinstance(result.payload, EmbeddingOutput)
    assert len(result.payload.vector) == EMBEDDING_DIMENSIONS
    assert embedding_client.inputs == ["Hello world, this is text"]


@pytest.mark.asyncio
async def test_embedding_dimension_mismatch(completion_client, settings):
    invoker = CapabilityInvoker(completion_client, FakeEmbeddingClient([0.1] * 1536), settings)

    with pytest.raises(DimensionMismatch) as exc_info:
        await invoker.invoke(CapabilityKind.EMBEDDING_VECTOR, SAMPLE_DOCUMENT)

    assert exc_info.value.kind == CapabilityKind.EMBEDDING_VECTOR
    assert exc_info.value.actual == 1536


@pytest.mark.asyncio
async def test_embedding_retries_connection_error(completion_client, settings):
    embedding_client = FakeEmbeddingClient([_connection_error(), make_vector()])
    invoker = CapabilityInvoker(completion_client, embedding_client, settings)

    result = await invoker.invoke(CapabilityKind.EMBEDDING_VECTOR, SAMPLE_DOCUMENT)

    assert len(result.payload.vector) == EMBEDDING_DIMENSIONS
    assert len(embedding_client.inputs) == 2


@pytest.mark.asyncio
async def test_embed_query_accepts_short_text(invoker, embedding_client):
    vector = await invoker.embed_query("react")

    assert len(vector) == EMBEDDING_DIMENSIONS
    assert embedding_client.inputs == ["react"]


@pytest.mark.asyncio
async def test_embed_query_rejects_blank(invoker, embedding_client):
    with pytest.raises(EmptyInput):
        await invoker.embed_query("   ")
    assert embedding_client.inputs == []


@pytest.mark.asyncio
async def test_openai_embedding_client_requests_floats():
    response = MagicMock()
    response.data = [MagicMock(embedding=[0.5] * EMBEDDING_DIMENSIONS)]
    sdk = MagicMock()
    sdk.embeddings.create = AsyncMock(return_value=response)

    client = OpenAIEmbeddingClient(sdk, model="text-embedding-3-large")
    vector = await client.embed("hello")

    assert len(vector) == EMBEDDING_DIMENSIONS
    sdk.embeddings.create.assert_awaited_once_with(
        model="text-embedding-3-large", input="hello", encoding_format="float"
    )


@pytest.mark.asyncio
async def test_openai_embedding_client_logs_model_as_context(caplog):
    caplog.set_level(logging.DEBUG, logger="enrichment_engine.core.embeddings")
    response = MagicMock()
    response.data = [MagicMock(embedding=[0.5] * EMBEDDING_DIMENSIONS)]
    sdk = MagicMock()
    sdk.embeddings.create = AsyncMock(return_value=response)

    await OpenAIEmbeddingClient(sdk, model="text-embedding-3-large").embed("hello")

    record = next(r for r in caplog.records if "Generated embedding" in r.getMessage())
    assert record.extra_data == {
        "model": "text-embedding-3-large",
        "dimensions": EMBEDDING_DIMENSIONS,
    }


@pytest.mark.asyncio
async def test_anthropic_client_strips_vendor_prefix():
    text_block = MagicMock(type="text", text='{"ok": true}')
    sdk = MagicMock()
    sdk.messages.create = AsyncMock(return_value=MagicMock(content=[text_block]))

    client = AnthropicCompletionClient(sdk)
    output = await client.complete(
        model="anthropic/claude-3-haiku",
        system_prompt="system",
        user_prompt="user",
        max_tokens=100,
    )

    assert output == '{"ok": true}'
    assert sdk.messages.create.await_args.kwargs["model"] == "claude-3-haiku"


def test_build_completion_client_requires_provider_key(settings):
    no_key = settings.model_copy(update={"OPENROUTER_API_KEY": None})
    with pytest.raises(ValueError, match="OPENROUTER_API_KEY"):
        build_completion_client(no_key)


def test_build_completion_client_unknown_provider(settings):
    with pytest.raises(ValueError, match="Unknown LLM_PROVIDER"):
        build_completion_client(settings.model_copy(update={"LLM_PROVIDER": "bard"}))


def test_build_completion_client_openrouter(settings):
    client = build_completion_client(settings)
    assert client.provider == "openrouter"
