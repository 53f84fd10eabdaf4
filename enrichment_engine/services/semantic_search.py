"""Nearest-neighbour search over indexed document embeddings.

Text queries are embedded through ``CapabilityInvoker.embed_query`` so query
and document vectors share one vector space.
"""

import asyncio
from collections.abc import Sequence

from enrichment_engine.core.config import Settings
from enrichment_engine.core.logging import get_logger
from enrichment_engine.core.similarity import SimilarityMatch, VectorIndex, validate_query
from enrichment_engine.services.capability_invoker import CapabilityInvoker

logger = get_logger(__name__)


class SemanticSearch:
    """Search endpoint contract over a ``VectorIndex``."""

    def __init__(self, invoker: CapabilityInvoker, index: VectorIndex, settings: Settings) -> None:
        self.invoker = invoker
        self.index = index
        self.settings = settings

    async def search_by_vector(
        self,
        query_embedding: Sequence[float],
        threshold: float | None = None,
        count: int | None = None,
    ) -> list[SimilarityMatch]:
        """
        Return up to ``count`` documents with similarity above ``threshold``.

        Args:
            query_embedding: Query vector (3072 floats)
            threshold: Minimum similarity, exclusive (default SEARCH_MATCH_THRESHOLD)
            count: Maximum matches (default SEARCH_MATCH_COUNT)

        Returns:
            Matches ordered by descending similarity
        """
        threshold = self.settings.SEARCH_MATCH_THRESHOLD if threshold is None else threshold
        count = self.settings.SEARCH_MATCH_COUNT if count is None else count
        validate_query(query_embedding, threshold, count)

        # Index implementations are synchronous (numpy, supabase-py)
        matches = await asyncio.to_thread(self.index.search, query_embedding, threshold, count)
        logger.info(f"Semantic search returned {len(matches)} matches (threshold={threshold})")
        return matches

    async def search_by_text(
        self,
        query_text: str,
        threshold: float | None = None,
        count: int | None = None,
    ) -> list[SimilarityMatch]:
        """Embed ``query_text`` and search with the resulting vector."""
        query_embedding = await self.invoker.embed_query(query_text)
        return await self.search_by_vector(query_embedding, threshold=threshold, count=count)
