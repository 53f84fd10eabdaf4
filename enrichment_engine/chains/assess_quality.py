"""Prompt and response parsing for the quality assessment capability.

The judge scores the aggregated Phase 1 and Phase 2 outputs against a fixed
rubric (summaries 25, search metadata 25, classification and tagging 20,
structured description 15, visual prompt 15). Its overall score and pass flag
are returned unvetted; ``QualityGate`` clamps the score and decides pass/fail.
"""

import json
import math
from collections.abc import Mapping
from typing import Any

from enrichment_engine.core.capabilities import PHASE_ONE, PHASE_TWO, CapabilityKind
from enrichment_engine.core.errors import MalformedCapabilityOutput
from enrichment_engine.core.llm import extract_json_object
from enrichment_engine.core.schemas_capabilities import (
    DIMENSION_MAX_POINTS,
    QUALITY_PASS_THRESHOLD,
    ClassificationOutput,
    DimensionScore,
    ImagePromptOutput,
    QualityJudgment,
    SchemaOrgOutput,
    SEOMetadataOutput,
    SummariesOutput,
    TagsOutput,
    ValidationReport,
)

KIND = CapabilityKind.QUALITY_ASSESSMENT

# Judge response key -> report dimension
JUDGE_DIMENSION_KEYS: dict[str, str] = {
    "summary": "summaries",
    "seo": "search_metadata",
    "categorization": "classification_tagging",
    "schema": "structured_description",
    "image_prompt": "visual_prompt",
}

# ruff: noqa: E501
SYSTEM_PROMPT = f"""You are a content quality assurance expert. Your task is to evaluate the quality and completeness of AI-generated metadata for markdown content.

SCORING CRITERIA (100 points total):

1. SUMMARY QUALITY (25 points)
   - Short summary is concise and impactful (8 pts)
   - Medium summary provides good context (8 pts)
   - Long summary is comprehensive (9 pts)

2. SEO QUALITY (25 points)
   - Meta title is compelling and keyword-rich (10 pts)
   - Meta description has clear value proposition (10 pts)
   - Keywords are relevant and specific (5 pts)

3. CATEGORIZATION & TAGGING (20 points)
   - Category is accurate and appropriate (10 pts)
   - Tags are specific, relevant, and well-formatted (10 pts)

4. STRUCTURED DATA (15 points)
   - Schema.org data is valid and complete (10 pts)
   - Appropriate schema type selected (5 pts)

5. IMAGE PROMPT (15 points)
   - Prompt is vivid and specific (8 pts)
   - Appropriate style and composition (7 pts)

QUALITY THRESHOLDS:
- 90-100: Exceptional quality
- 80-89: High quality
- {QUALITY_PASS_THRESHOLD}-79: Good quality (PASSES)
- Below {QUALITY_PASS_THRESHOLD}: Needs improvement (FAILS)

VALIDATION RULES:
1. Score objectively based on criteria above
2. Deduct points for missing, vague, or low-quality outputs
3. Provide specific, actionable feedback
4. Check for consistency across all metadata

OUTPUT FORMAT (JSON):
{{
  "quality_score": 85,
  "passed": true,
  "validation_report": {{
    "summary": {{"score": 22, "feedback": "..."}},
    "seo": {{"score": 24, "feedback": "..."}},
    "categorization": {{"score": 18, "feedback": "..."}},
    "schema": {{"score": 13, "feedback": "..."}},
    "image_prompt": {{"score": 14, "feedback": "..."}},
    "overall_feedback": "...",
    "issues": [],
    "recommendations": ["..."]
  }}
}}

Return ONLY valid JSON. Do not include any other text."""


def _require(outputs: Mapping[CapabilityKind, Any], kind: CapabilityKind, model: type) -> Any:
    payload = outputs.get(kind)
    if not isinstance(payload, model):
        raise ValueError(f"Quality assessment requires a {model.__name__} for {kind.value}")
    return payload


def build_prompt(
    document_text: str,
    outputs: Mapping[CapabilityKind, Any],
    excerpt_chars: int,
) -> str:
    """
    Render the judge input from the source excerpt and every generated output.

    The embedding vector is not shown to the judge.

    Raises:
        ValueError: If any Phase 1 or Phase 2 output is missing
    """
    missing = [kind.value for kind in (*PHASE_ONE, *PHASE_TWO) if kind not in outputs]
    if missing:
        raise ValueError(f"Missing outputs for quality assessment: {', '.join(missing)}")

    summaries: SummariesOutput = _require(outputs, CapabilityKind.SHORT_FORM_SUMMARIES, SummariesOutput)
    seo: SEOMetadataOutput = _require(outputs, CapabilityKind.SEARCH_METADATA, SEOMetadataOutput)
    classification: ClassificationOutput = _require(
        outputs, CapabilityKind.CLASSIFICATION, ClassificationOutput
    )
    tags: TagsOutput = _require(outputs, CapabilityKind.TAGGING, TagsOutput)
    schema: SchemaOrgOutput = _require(outputs, CapabilityKind.STRUCTURED_DESCRIPTION, SchemaOrgOutput)
    image: ImagePromptOutput = _require(outputs, CapabilityKind.VISUAL_PROMPT, ImagePromptOutput)

    return f"""ORIGINAL CONTENT:
{document_text[:excerpt_chars]}

GENERATED METADATA:

SUMMARIES:
- Short: {summaries.summary_short}
- Medium: {summaries.summary_medium}
- Long: {summaries.summary_long}

SEO:
- Meta Title: {seo.meta_title}
- Meta Description: {seo.meta_description}
- Keywords: {seo.seo_keywords}

CATEGORIZATION:
- Category: {classification.category}
- Tags: {", ".join(tags.tags)}

SCHEMA.ORG:
{json.dumps(schema.structured_data, indent=2)}

IMAGE PROMPT:
{image.image_prompt}

Evaluate this metadata quality and return a validation score."""


def _as_number(value: Any, field: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise MalformedCapabilityOutput(f"{field} must be a number", kind=KIND)
    return float(value)


def _dimension(report: dict[str, Any], judge_key: str) -> DimensionScore:
    entry = report.get(judge_key)
    if not isinstance(entry, dict):
        raise MalformedCapabilityOutput(f"validation_report.{judge_key} is missing", kind=KIND)

    max_points = DIMENSION_MAX_POINTS[JUDGE_DIMENSION_KEYS[judge_key]]
    score = _as_number(entry.get("score"), f"validation_report.{judge_key}.score")
    feedback = entry.get("feedback")
    return DimensionScore(
        score=min(max(round(score), 0), max_points),
        max_score=max_points,
        feedback=feedback if isinstance(feedback, str) else "",
    )


def _string_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if str(item).strip()]


def parse_quality_judgment(raw_output: str) -> QualityJudgment:
    """
    Parse the judge response into an unvetted ``QualityJudgment``.

    Dimension sub-scores are clamped to their rubric maximum. The overall score
    is left as returned.

    Raises:
        MalformedCapabilityOutput: If the score or any report dimension is missing
    """
    data = extract_json_object(raw_output, kind=KIND)

    raw_score = _as_number(data.get("quality_score"), "quality_score")

    report_data = data.get("validation_report")
    if not isinstance(report_data, dict):
        raise MalformedCapabilityOutput("validation_report is missing", kind=KIND)

    proposed_passed = data.get("passed")
    if not isinstance(proposed_passed, bool):
        proposed_passed = None

    overall_feedback = report_data.get("overall_feedback")
    dimensions = {
        JUDGE_DIMENSION_KEYS[key]: _dimension(report_data, key) for key in JUDGE_DIMENSION_KEYS
    }
    report = ValidationReport(
        **dimensions,
        overall_feedback=overall_feedback if isinstance(overall_feedback, str) else "",
        issues=_string_list(report_data.get("issues")),
        recommendations=_string_list(report_data.get("recommendations")),
        proposed_passed=proposed_passed,
    )
    return QualityJudgment(raw_score=raw_score, proposed_passed=proposed_passed, report=report)
