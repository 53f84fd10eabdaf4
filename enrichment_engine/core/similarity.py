"""
Embedding similarity and an exact in-memory vector index.

Similarity is defined as ``1 - cosine_distance`` (the same measure pgvector's
``<=>`` operator uses), so scores from the in-memory index and the Supabase
index are directly comparable.

Usage:
    from enrichment_engine.core.similarity import InMemoryVectorIndex

    index = InMemoryVectorIndex()
    index.add("module-1", embedding, record={"title": "Intro to TypeScript"})
    matches = index.search(query_embedding, threshold=0.5, count=10)
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

import numpy as np

from enrichment_engine.core.errors import DimensionMismatch
from enrichment_engine.core.logging import get_logger, log_with_context
from enrichment_engine.core.schemas_capabilities import EMBEDDING_DIMENSIONS

logger = get_logger(__name__)

DEFAULT_MATCH_THRESHOLD = 0.5
DEFAULT_MATCH_COUNT = 10


def _as_vector(values: Sequence[float] | np.ndarray) -> np.ndarray:
    vector = np.asarray(values, dtype=np.float64)
    if vector.ndim != 1:
        raise ValueError("Embedding must be a one-dimensional vector")
    return vector


def cosine_distance(a: Sequence[float] | np.ndarray, b: Sequence[float] | np.ndarray) -> float:
    """
    Cosine distance between two vectors of the same length.

    Raises:
        DimensionMismatch: If the vectors differ in length
        ValueError: If either vector has zero norm
    """
    vec_a = _as_vector(a)
    vec_b = _as_vector(b)
    if vec_a.shape != vec_b.shape:
        raise DimensionMismatch(expected=vec_a.shape[0], actual=vec_b.shape[0])

    norm_a = np.linalg.norm(vec_a)
    norm_b = np.linalg.norm(vec_b)
    if norm_a == 0 or norm_b == 0:
        raise ValueError("Cosine distance is undefined for zero vectors")

    cosine = float(np.dot(vec_a, vec_b) / (norm_a * norm_b))
    # Rounding can push |cosine| marginally past 1
    cosine = min(1.0, max(-1.0, cosine))
    return 1.0 - cosine


def cosine_similarity(a: Sequence[float] | np.ndarray, b: Sequence[float] | np.ndarray) -> float:
    """Similarity as ``1 - cosine_distance``; 1 for identical direction, 0 for orthogonal."""
    return 1.0 - cosine_distance(a, b)


@dataclass(frozen=True)
class SimilarityMatch:
    """One search hit."""

    record_id: str
    similarity: float
    record: dict[str, Any] = field(default_factory=dict)


class VectorIndex(Protocol):
    """Nearest-neighbour search contract used by the search endpoint."""

    def search(
        self,
        query_embedding: Sequence[float],
        threshold: float = DEFAULT_MATCH_THRESHOLD,
        count: int = DEFAULT_MATCH_COUNT,
    ) -> list[SimilarityMatch]: ...


def validate_query(
    query_embedding: Sequence[float],
    threshold: float,
    count: int,
    dimensions: int = EMBEDDING_DIMENSIONS,
) -> None:
    """
    Check a search request against the search contract.

    Raises:
        DimensionMismatch: If the query is not ``dimensions`` long
        ValueError: If threshold or count is out of range
    """
    if len(query_embedding) != dimensions:
        raise DimensionMismatch(expected=dimensions, actual=len(query_embedding))
    if not -1.0 <= threshold <= 1.0:
        raise ValueError("threshold must be between -1 and 1")
    if count < 1:
        raise ValueError("count must be at least 1")


def rank_matches(
    matches: list[SimilarityMatch], threshold: float, count: int
) -> list[SimilarityMatch]:
    """Keep matches strictly above threshold, best first, capped at count."""
    kept = [m for m in matches if m.similarity > threshold]
    kept.sort(key=lambda m: m.similarity, reverse=True)
    return kept[:count]


class InMemoryVectorIndex:
    """Exact cosine search over vectors held in memory.

    Used for correctness checks against the approximate pgvector index and as a
    local index in tests and scripts.
    """

    def __init__(self, dimensions: int = EMBEDDING_DIMENSIONS) -> None:
        self.dimensions = dimensions
        self._ids: list[str] = []
        self._records: dict[str, dict[str, Any]] = {}
        self._vectors: dict[str, np.ndarray] = {}

    def __len__(self) -> int:
        return len(self._ids)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._vectors

    def add(
        self,
        record_id: str,
        embedding: Sequence[float],
        record: dict[str, Any] | None = None,
    ) -> None:
        """Add or replace the vector for a record."""
        vector = _as_vector(embedding)
        if vector.shape[0] != self.dimensions:
            raise DimensionMismatch(expected=self.dimensions, actual=vector.shape[0])
        if not np.all(np.isfinite(vector)):
            raise ValueError("Embedding components must be finite")
        if np.linalg.norm(vector) == 0:
            raise ValueError("Cannot index a zero vector")

        if record_id not in self._vectors:
            self._ids.append(record_id)
        self._vectors[record_id] = vector
        self._records[record_id] = dict(record or {})

    def remove(self, record_id: str) -> None:
        if record_id in self._vectors:
            self._ids.remove(record_id)
            del self._vectors[record_id]
            del self._records[record_id]

    def get(self, record_id: str) -> np.ndarray | None:
        return self._vectors.get(record_id)

    def search(
        self,
        query_embedding: Sequence[float],
        threshold: float = DEFAULT_MATCH_THRESHOLD,
        count: int = DEFAULT_MATCH_COUNT,
    ) -> list[SimilarityMatch]:
        """
        Return up to ``count`` records whose similarity exceeds ``threshold``.

        Args:
            query_embedding: Query vector (EMBEDDING_DIMENSIONS floats)
            threshold: Minimum similarity (exclusive)
            count: Maximum number of matches

        Returns:
            Matches ordered by descending similarity
        """
        validate_query(query_embedding, threshold, count, dimensions=self.dimensions)
        if not self._ids:
            return []

        query = _as_vector(query_embedding)
        query_norm = np.linalg.norm(query)
        if query_norm == 0:
            raise ValueError("Cannot search with a zero vector")

        matrix = np.vstack([self._vectors[record_id] for record_id in self._ids])
        cosines = matrix @ query / (np.linalg.norm(matrix, axis=1) * query_norm)
        similarities = np.clip(cosines, -1.0, 1.0)

        matches = [
            SimilarityMatch(
                record_id=record_id,
                similarity=float(similarity),
                record=dict(self._records[record_id]),
            )
            for record_id, similarity in zip(self._ids, similarities, strict=True)
        ]

        ranked = rank_matches(matches, threshold, count)
        log_with_context(
            logger,
            logging.DEBUG,
            f"In-memory search returned {len(ranked)} of {len(self._ids)} records",
            threshold=threshold,
            count=count,
        )
        return ranked
