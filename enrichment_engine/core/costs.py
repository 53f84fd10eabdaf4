"""Static per-capability cost table.

Costs are fixed estimates per document in USD, not live metering.
"""

from enrichment_engine.core.capabilities import CapabilityKind
from enrichment_engine.core.schemas_pipeline import CostEstimate

CAPABILITY_COSTS_USD: dict[CapabilityKind, float] = {
    CapabilityKind.SHORT_FORM_SUMMARIES: 0.001,
    CapabilityKind.SEARCH_METADATA: 0.002,
    CapabilityKind.CLASSIFICATION: 0.003,
    CapabilityKind.TAGGING: 0.003,
    CapabilityKind.STRUCTURED_DESCRIPTION: 0.02,
    CapabilityKind.VISUAL_PROMPT: 0.01,
    CapabilityKind.EMBEDDING_VECTOR: 0.013,
    CapabilityKind.QUALITY_ASSESSMENT: 0.02,
}


def capability_cost(kind: CapabilityKind) -> float:
    """Fixed cost of one invocation of a capability."""
    return CAPABILITY_COSTS_USD[kind]


def per_document_cost() -> float:
    """Cost of one full pipeline run (all eight capabilities)."""
    return sum(CAPABILITY_COSTS_USD[kind] for kind in CapabilityKind)


def estimate_cost(document_count: int) -> CostEstimate:
    """
    Estimate the cost of processing a batch of documents.

    Args:
        document_count: Number of documents (non-negative integer)

    Returns:
        CostEstimate with total, per-document cost and per-capability breakdown

    Raises:
        ValueError: If document_count is negative or not an integer
    """
    if isinstance(document_count, bool) or not isinstance(document_count, int):
        raise ValueError("document_count must be an integer")
    if document_count < 0:
        raise ValueError("document_count must be non-negative")

    per_document = per_document_cost()
    return CostEstimate(
        document_count=document_count,
        total=per_document * document_count,
        per_document=per_document,
        breakdown={kind.value: cost for kind, cost in CAPABILITY_COSTS_USD.items()},
    )
