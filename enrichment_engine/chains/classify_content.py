"""Prompt and response parsing for the classification capability."""

from enrichment_engine.core.capabilities import CapabilityKind
from enrichment_engine.core.errors import MalformedCapabilityOutput
from enrichment_engine.core.llm import extract_json_object
from enrichment_engine.core.logging import get_logger
from enrichment_engine.core.schemas_capabilities import CATEGORIES, ClassificationOutput

logger = get_logger(__name__)

KIND = CapabilityKind.CLASSIFICATION
FALLBACK_CATEGORY = "Other"

# ruff: noqa: E501
SYSTEM_PROMPT = """You are a content classification expert. Your task is to categorize markdown content into the most appropriate category.

AVAILABLE CATEGORIES:
- Technology: Software, hardware, programming, IT infrastructure
- Business: Strategy, management, entrepreneurship, finance
- Development: Software development, coding practices, DevOps
- Design: UI/UX, visual design, product design
- Marketing: Content marketing, SEO, social media, advertising
- Data Science: Analytics, machine learning, AI, statistics
- Education: Learning resources, tutorials, courses
- Productivity: Tools, workflows, time management
- Career: Professional development, job search, skills
- Other: Content that doesn't fit the above categories

IMPORTANT RULES:
1. Choose ONLY ONE category that best fits the content
2. Consider the primary topic and main value proposition
3. If content spans multiple categories, choose the dominant one
4. Use "Other" only if truly none of the categories apply
5. Be consistent and objective in classification

OUTPUT FORMAT (JSON):
{
  "category": "Technology",
  "confidence": 0.95,
  "reasoning": "Brief explanation of why this category was chosen"
}

Return ONLY valid JSON. Do not include any other text."""


def build_prompt(document_text: str) -> str:
    return f"Analyze this markdown content and determine its category:\n\n{document_text}"


def normalize_confidence(value: float) -> float:
    """Map a confidence onto [0, 1]; values above 1 are read as percentages."""
    confidence = value / 100 if value > 1 else value
    return min(max(confidence, 0.0), 1.0)


def _match_category(label: str) -> str:
    wanted = label.strip().casefold()
    for category in CATEGORIES:
        if category.casefold() == wanted:
            return category
    logger.warning(f"Unknown category '{label}', falling back to {FALLBACK_CATEGORY}")
    return FALLBACK_CATEGORY


def parse_classification(raw_output: str) -> ClassificationOutput:
    """
    Parse the classification response.

    Raises:
        MalformedCapabilityOutput: If category or numeric confidence is missing
    """
    data = extract_json_object(raw_output, kind=KIND)

    label = data.get("category")
    if not isinstance(label, str) or not label.strip():
        raise MalformedCapabilityOutput("Missing required field: category", kind=KIND)

    confidence = data.get("confidence")
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
        raise MalformedCapabilityOutput("confidence must be a number", kind=KIND)
    if confidence != confidence:
        raise MalformedCapabilityOutput("confidence must not be NaN", kind=KIND)

    reasoning = data.get("reasoning")
    if not isinstance(reasoning, str) or not reasoning.strip():
        reasoning = "No reasoning provided"

    return ClassificationOutput(
        category=_match_category(label),
        confidence=normalize_confidence(float(confidence)),
        reasoning=reasoning,
    )
