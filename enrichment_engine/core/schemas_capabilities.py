"""Pydantic schemas for capability payloads.

One payload model per capability kind. Models are frozen: a payload is produced
once by its chain and never edited afterwards.
"""

import math
import re
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from enrichment_engine.core.capabilities import CapabilityKind

EMBEDDING_DIMENSIONS = 3072

TAG_PATTERN = re.compile(r"^[a-z0-9-]+$")
MIN_TAGS = 3
MAX_TAGS = 5

META_TITLE_MAX_CHARS = 60
META_DESCRIPTION_MAX_CHARS = 160
MIN_SEO_KEYWORDS = 3

IMAGE_PROMPT_MAX_CHARS = 200
IMAGE_PROMPT_MIN_CHARS = 100

QUALITY_PASS_THRESHOLD = 70

# Rubric: max points per report dimension (sums to 100)
DIMENSION_MAX_POINTS: dict[str, int] = {
    "summaries": 25,
    "search_metadata": 25,
    "classification_tagging": 20,
    "structured_description": 15,
    "visual_prompt": 15,
}

CATEGORIES: tuple[str, ...] = (
    "Technology",
    "Business",
    "Development",
    "Design",
    "Marketing",
    "Data Science",
    "Education",
    "Productivity",
    "Career",
    "Other",
)


class SummariesOutput(BaseModel):
    """Three summaries of increasing length."""

    model_config = ConfigDict(frozen=True)

    summary_short: str = Field(..., min_length=1, description="1-2 sentences")
    summary_medium: str = Field(..., min_length=1, description="3-4 sentences")
    summary_long: str = Field(..., min_length=1, description="Full paragraph")

    @field_validator("summary_short", "summary_medium", "summary_long")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("summary must not be blank")
        return value


class SEOMetadataOutput(BaseModel):
    """Search metadata with hard length caps."""

    model_config = ConfigDict(frozen=True)

    meta_title: str = Field(..., min_length=1, max_length=META_TITLE_MAX_CHARS)
    meta_description: str = Field(..., min_length=1, max_length=META_DESCRIPTION_MAX_CHARS)
    seo_keywords: str = Field(..., description="Comma-separated keywords")

    @property
    def keyword_terms(self) -> list[str]:
        """Non-empty keyword terms."""
        return [term.strip() for term in self.seo_keywords.split(",") if term.strip()]


class ClassificationOutput(BaseModel):
    """Single category with a confidence in [0, 1]."""

    model_config = ConfigDict(frozen=True)

    category: str = Field(..., description="One of CATEGORIES")
    confidence: float = Field(..., ge=0.0, le=1.0)
    reasoning: str = Field(default="No reasoning provided")

    @field_validator("category")
    @classmethod
    def _known_category(cls, value: str) -> str:
        if value not in CATEGORIES:
            raise ValueError(f"category must be one of {', '.join(CATEGORIES)}")
        return value


class TagsOutput(BaseModel):
    """3-5 unique, normalized tags."""

    model_config = ConfigDict(frozen=True)

    tags: tuple[str, ...] = Field(..., min_length=MIN_TAGS, max_length=MAX_TAGS)

    @field_validator("tags")
    @classmethod
    def _normalized_unique(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        for tag in value:
            if not TAG_PATTERN.match(tag):
                raise ValueError(f"tag '{tag}' must match {TAG_PATTERN.pattern}")
        if len(set(value)) != len(value):
            raise ValueError("tags must be unique")
        return value


class SchemaOrgOutput(BaseModel):
    """Schema.org JSON-LD structured description."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    structured_data: dict[str, Any] = Field(..., alias="schema_json")

    @field_validator("structured_data")
    @classmethod
    def _has_context_and_type(cls, value: dict[str, Any]) -> dict[str, Any]:
        if value.get("@context") != "https://schema.org":
            raise ValueError("schema_json @context must be https://schema.org")
        if not value.get("@type"):
            raise ValueError("schema_json requires @type")
        return value


class ImagePromptOutput(BaseModel):
    """Prompt for a thumbnail image generator."""

    model_config = ConfigDict(frozen=True)

    image_prompt: str = Field(..., min_length=1, max_length=IMAGE_PROMPT_MAX_CHARS)
    style_notes: str = Field(default="No style notes provided")


class EmbeddingOutput(BaseModel):
    """Fixed-length embedding vector."""

    model_config = ConfigDict(frozen=True)

    vector: tuple[float, ...]

    @field_validator("vector")
    @classmethod
    def _fixed_length_finite(cls, value: tuple[float, ...]) -> tuple[float, ...]:
        if len(value) != EMBEDDING_DIMENSIONS:
            raise ValueError(f"vector must have {EMBEDDING_DIMENSIONS} components, got {len(value)}")
        if not all(math.isfinite(component) for component in value):
            raise ValueError("vector components must be finite")
        return value


class DimensionScore(BaseModel):
    """Score and feedback for one report dimension."""

    model_config = ConfigDict(frozen=True)

    score: int = Field(..., ge=0)
    max_score: int = Field(..., gt=0)
    feedback: str = ""

    @model_validator(mode="after")
    def _score_within_max(self) -> "DimensionScore":
        if self.score > self.max_score:
            raise ValueError(f"score {self.score} exceeds max_score {self.max_score}")
        return self


class ValidationReport(BaseModel):
    """Per-dimension breakdown produced by the quality gate."""

    model_config = ConfigDict(frozen=True)

    summaries: DimensionScore
    search_metadata: DimensionScore
    classification_tagging: DimensionScore
    structured_description: DimensionScore
    visual_prompt: DimensionScore
    overall_feedback: str = ""
    issues: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    proposed_passed: bool | None = Field(
        default=None, description="Pass flag proposed by the judge (audit only)"
    )

    @model_validator(mode="after")
    def _rubric_matches(self) -> "ValidationReport":
        for name, max_points in DIMENSION_MAX_POINTS.items():
            dimension: DimensionScore = getattr(self, name)
            if dimension.max_score != max_points:
                raise ValueError(f"{name} max_score must be {max_points}")
        return self

    @property
    def dimensions(self) -> dict[str, DimensionScore]:
        return {name: getattr(self, name) for name in DIMENSION_MAX_POINTS}


class QualityJudgment(BaseModel):
    """Unvetted judgment returned by the quality assessment capability."""

    model_config = ConfigDict(frozen=True)

    raw_score: float
    proposed_passed: bool | None = None
    report: ValidationReport


class QualityAssessment(BaseModel):
    """Quality gate outcome: clamped integer score and central pass decision."""

    model_config = ConfigDict(frozen=True)

    score: int = Field(..., ge=0, le=100)
    passed: bool
    report: ValidationReport

    @model_validator(mode="after")
    def _passed_matches_threshold(self) -> "QualityAssessment":
        if self.passed != (self.score >= QUALITY_PASS_THRESHOLD):
            raise ValueError(f"passed must equal score >= {QUALITY_PASS_THRESHOLD}")
        return self


CapabilityPayload = Union[
    SummariesOutput,
    SEOMetadataOutput,
    ClassificationOutput,
    TagsOutput,
    SchemaOrgOutput,
    ImagePromptOutput,
    EmbeddingOutput,
    QualityJudgment,
]


class CapabilityResult(BaseModel):
    """Tagged result of a single capability invocation."""

    model_config = ConfigDict(frozen=True)

    kind: CapabilityKind
    payload: CapabilityPayload
    duration_ms: int = Field(default=0, ge=0)
