"""Input preparation and output validation for the embedding capability."""

import math
import re
from collections.abc import Sequence

from enrichment_engine.core.capabilities import CapabilityKind
from enrichment_engine.core.errors import DimensionMismatch, MalformedCapabilityOutput
from enrichment_engine.core.schemas_capabilities import EMBEDDING_DIMENSIONS, EmbeddingOutput

KIND = CapabilityKind.EMBEDDING_VECTOR


def prepare_embedding_input(text: str, max_chars: int) -> str:
    """Collapse whitespace and cap length to stay inside the model's token limit."""
    return re.sub(r"\s+", " ", text).strip()[:max_chars]


def validate_embedding(vector: Sequence[float]) -> EmbeddingOutput:
    """
    Check an embedding returned by the provider.

    Raises:
        DimensionMismatch: If the vector is not EMBEDDING_DIMENSIONS long
        MalformedCapabilityOutput: If any component is not a finite number
    """
    if len(vector) != EMBEDDING_DIMENSIONS:
        raise DimensionMismatch(expected=EMBEDDING_DIMENSIONS, actual=len(vector))

    components: list[float] = []
    for index, value in enumerate(vector):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise MalformedCapabilityOutput(
                "Embedding components must be numeric", kind=KIND, details={"index": index}
            )
        if not math.isfinite(value):
            raise MalformedCapabilityOutput(
                "Embedding components must be finite", kind=KIND, details={"index": index}
            )
        components.append(float(value))

    return EmbeddingOutput(vector=tuple(components))
