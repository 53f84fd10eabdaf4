"""Pydantic schemas for enrichment pipeline results and cost estimates."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from enrichment_engine.core.schemas_capabilities import (
    META_DESCRIPTION_MAX_CHARS,
    META_TITLE_MAX_CHARS,
    QUALITY_PASS_THRESHOLD,
    EmbeddingOutput,
    TagsOutput,
    ValidationReport,
)


class PipelineResult(BaseModel):
    """Complete, immutable output of one successful enrichment run."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    # Summaries
    summary_short: str
    summary_medium: str
    summary_long: str

    # SEO
    meta_title: str = Field(..., max_length=META_TITLE_MAX_CHARS)
    meta_description: str = Field(..., max_length=META_DESCRIPTION_MAX_CHARS)
    seo_keywords: str

    # Categorization
    category: str
    category_confidence: float = Field(..., ge=0.0, le=1.0)
    category_reasoning: str

    # Tags
    tags: tuple[str, ...]

    # Structured data
    structured_data: dict[str, Any] = Field(..., alias="schema_json")

    # Image
    image_prompt: str
    image_style_notes: str

    # Embedding
    embedding: tuple[float, ...] = Field(..., repr=False)

    # Quality assurance
    quality_score: int = Field(..., ge=0, le=100)
    passed: bool
    validation_report: ValidationReport

    # Run metadata
    processing_time_ms: int = Field(..., ge=0)
    estimated_cost_usd: float = Field(..., ge=0.0)

    @model_validator(mode="after")
    def _check_invariants(self) -> "PipelineResult":
        if self.passed != (self.quality_score >= QUALITY_PASS_THRESHOLD):
            raise ValueError(f"passed must equal quality_score >= {QUALITY_PASS_THRESHOLD}")
        # Reuse the payload validators for the bit-exact shape contracts
        TagsOutput(tags=self.tags)
        EmbeddingOutput(vector=self.embedding)
        return self

    @property
    def embedding_dimensions(self) -> int:
        return len(self.embedding)

    def metadata_record(self) -> dict[str, Any]:
        """Persistable metadata without the embedding vector.

        The embedding is stored separately (see ``SupabaseVectorIndex.index``).
        """
        record = self.model_dump(mode="json", by_alias=True, exclude={"embedding"})
        record["tags"] = list(self.tags)
        return record


class CostEstimate(BaseModel):
    """Static cost estimate for processing a batch of documents."""

    model_config = ConfigDict(frozen=True)

    document_count: int = Field(..., ge=0)
    total: float = Field(..., ge=0.0)
    per_document: float = Field(..., ge=0.0)
    breakdown: dict[str, float]

