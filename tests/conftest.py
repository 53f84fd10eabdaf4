"""Pytest configuration and fixtures."""

import os

import pytest

from enrichment_engine.core.config import Settings, get_settings
from tests.fakes.fake_clients import FakeCompletionClient, FakeEmbeddingClient, make_pipeline_result


@pytest.fixture(scope="session", autouse=True)
def setup_test_env():
    """Set up test environment variables."""
    os.environ["SUPABASE_URL"] = "https://test.supabase.co"
    os.environ["SUPABASE_SERVICE_ROLE_KEY"] = "test-key"
    os.environ["OPENAI_API_KEY"] = "test-openai-key"
    os.environ["OPENROUTER_API_KEY"] = "test-openrouter-key"
    os.environ["ENRICHMENT_ENV"] = "test"
    get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    """Settings with fast retries and a short timeout."""
    return Settings(
        OPENAI_API_KEY="test-openai-key",
        OPENROUTER_API_KEY="test-openrouter-key",
        ENRICHMENT_ENV="test",
        CAPABILITY_TIMEOUT_SECONDS=0.5,
        CAPABILITY_RETRY_DELAY_SECONDS=0.0,
    )


@pytest.fixture
def completion_client() -> FakeCompletionClient:
    return FakeCompletionClient()


@pytest.fixture
def embedding_client() -> FakeEmbeddingClient:
    return FakeEmbeddingClient()


@pytest.fixture
def sample_result_factory():
    """Build a valid PipelineResult with field overrides."""
    return make_pipeline_result
