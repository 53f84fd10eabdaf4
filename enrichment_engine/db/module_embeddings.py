"""pgvector-backed embedding index for enriched modules.

Embeddings live in the ``module_embeddings`` table (``module_id``, ``embedding``)
and are searched through the ``search_modules_by_embedding`` RPC, which returns
module rows with ``similarity = 1 - (embedding <=> query)``.
"""

import json
import logging
from collections.abc import Sequence
from typing import Any

from supabase import Client

from enrichment_engine.core.logging import get_logger, log_with_context
from enrichment_engine.core.similarity import (
    DEFAULT_MATCH_COUNT,
    DEFAULT_MATCH_THRESHOLD,
    SimilarityMatch,
    cosine_similarity,
    rank_matches,
    validate_query,
)
from enrichment_engine.db.supabase_client import get_supabase

logger = get_logger(__name__)

EMBEDDINGS_TABLE = "module_embeddings"
SEARCH_RPC = "search_modules_by_embedding"

# Candidates fetched per requested match when recomputing exactly
EXACT_CANDIDATE_FACTOR = 4


def _parse_vector(value: Any) -> list[float]:
    # PostgREST serializes pgvector columns as "[0.1,0.2,...]"
    if isinstance(value, str):
        return [float(x) for x in json.loads(value)]
    return [float(x) for x in value]


class SupabaseVectorIndex:
    """Vector index backed by Supabase pgvector."""

    def __init__(self, client: Client | None = None) -> None:
        self._client = client

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = get_supabase()
        return self._client

    def index(self, record_id: str, embedding: Sequence[float]) -> None:
        """
        Store (or replace) the embedding for a module.

        Args:
            record_id: Module UUID
            embedding: 3072-float embedding from ``PipelineResult.embedding``
        """
        validate_query(embedding, DEFAULT_MATCH_THRESHOLD, DEFAULT_MATCH_COUNT)

        self.client.table(EMBEDDINGS_TABLE).upsert(
            {"module_id": record_id, "embedding": list(embedding)},
            on_conflict="module_id",
        ).execute()

        logger.info(f"Indexed embedding for module {record_id}")

    def search(
        self,
        query_embedding: Sequence[float],
        threshold: float = DEFAULT_MATCH_THRESHOLD,
        count: int = DEFAULT_MATCH_COUNT,
        exact: bool = False,
    ) -> list[SimilarityMatch]:
        """
        Search modules by embedding similarity.

        Args:
            query_embedding: Query vector (3072 floats)
            threshold: Minimum similarity (exclusive)
            count: Maximum number of matches
            exact: Recompute similarity from the stored vectors instead of
                trusting the approximate index

        Returns:
            Matches ordered by descending similarity
        """
        validate_query(query_embedding, threshold, count)

        match_count = count * EXACT_CANDIDATE_FACTOR if exact else count
        response = self.client.rpc(
            SEARCH_RPC,
            {
                "query_embedding": list(query_embedding),
                "match_threshold": threshold,
                "match_count": match_count,
            },
        ).execute()

        rows = response.data or []
        matches = [
            SimilarityMatch(
                record_id=str(row["id"]),
                similarity=float(row["similarity"]),
                record={k: v for k, v in row.items() if k != "similarity"},
            )
            for row in rows
        ]

        if exact and matches:
            matches = self._recompute(query_embedding, matches)

        ranked = rank_matches(matches, threshold, count)
        log_with_context(
            logger,
            logging.INFO,
            f"Vector search returned {len(ranked)} matches",
            threshold=threshold,
            count=count,
            exact=exact,
        )
        return ranked

    def _recompute(
        self, query_embedding: Sequence[float], matches: list[SimilarityMatch]
    ) -> list[SimilarityMatch]:
        ids = [m.record_id for m in matches]
        response = (
            self.client.table(EMBEDDINGS_TABLE)
            .select("module_id, embedding")
            .in_("module_id", ids)
            .execute()
        )
        vectors = {str(row["module_id"]): _parse_vector(row["embedding"]) for row in response.data or []}

        recomputed = []
        for match in matches:
            vector = vectors.get(match.record_id)
            if vector is None:
                logger.warning(f"No stored embedding for module {match.record_id}, dropping match")
                continue
            recomputed.append(
                SimilarityMatch(
                    record_id=match.record_id,
                    similarity=cosine_similarity(query_embedding, vector),
                    record=match.record,
                )
            )
        return recomputed
