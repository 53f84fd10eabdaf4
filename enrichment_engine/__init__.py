"""Content enrichment engine.

Runs a document through eight generation capabilities in three phases and
returns one immutable, quality-gated ``PipelineResult``.

Usage:
    from enrichment_engine import EnrichmentPipeline

    pipeline = EnrichmentPipeline.from_settings()
    result = await pipeline.process(markdown_text)
    print(f"Quality: {result.quality_score}/100 passed={result.passed}")
"""

from enrichment_engine.core.capabilities import CapabilityKind
from enrichment_engine.core.errors import (
    CapabilityError,
    CapabilityUnavailable,
    DimensionMismatch,
    EmptyInput,
    InputTooLarge,
    InsufficientOutput,
    MalformedCapabilityOutput,
    QualityGateRejected,
)
from enrichment_engine.core.schemas_pipeline import CostEstimate, PipelineResult
from enrichment_engine.graphs.enrichment_pipeline_graph import (
    EnrichmentPipeline,
    EnrichmentRun,
    PipelineStatus,
)
from enrichment_engine.services.quality_gate import require_passing

__version__ = "0.1.0"

__all__ = [
    "CapabilityKind",
    "CapabilityError",
    "CapabilityUnavailable",
    "DimensionMismatch",
    "EmptyInput",
    "InputTooLarge",
    "InsufficientOutput",
    "MalformedCapabilityOutput",
    "QualityGateRejected",
    "CostEstimate",
    "PipelineResult",
    "EnrichmentPipeline",
    "EnrichmentRun",
    "PipelineStatus",
    "require_passing",
]
