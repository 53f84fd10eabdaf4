"""OpenAI embeddings client.

The client is constructed explicitly and injected into the pipeline so tests
can substitute a fake.
"""

import logging
from typing import Protocol

from openai import AsyncOpenAI

from enrichment_engine.core.config import Settings, get_settings
from enrichment_engine.core.logging import get_logger, log_with_context

logger = get_logger(__name__)


class EmbeddingClient(Protocol):
    """Turns one text into one embedding vector."""

    model: str

    async def embed(self, text: str) -> list[float]: ...


class OpenAIEmbeddingClient:
    """Embeddings through the OpenAI SDK."""

    def __init__(self, client: AsyncOpenAI, model: str) -> None:
        self._client = client
        self.model = model

    async def embed(self, text: str) -> list[float]:
        """
        Generate an embedding for a single text.

        Args:
            text: Prepared input text

        Returns:
            Embedding vector as returned by the API (length not validated here)

        Raises:
            ValueError: If the response carries no embedding
        """
        response = await self._client.embeddings.create(
            model=self.model,
            input=text,
            encoding_format="float",
        )

        if not response.data:
            raise ValueError("Invalid embedding response from OpenAI: no data")

        embedding = response.data[0].embedding
        log_with_context(
            logger,
            logging.DEBUG,
            f"Generated embedding using {self.model}",
            model=self.model,
            dimensions=len(embedding),
        )
        return list(embedding)


def build_embedding_client(settings: Settings | None = None) -> OpenAIEmbeddingClient:
    """Build the OpenAI embedding client from settings."""
    settings = settings or get_settings()
    return OpenAIEmbeddingClient(
        AsyncOpenAI(api_key=settings.OPENAI_API_KEY),
        model=settings.EMBEDDING_MODEL,
    )
