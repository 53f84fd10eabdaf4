"""Prompt and response parsing for the search metadata capability."""

from typing import Any

from enrichment_engine.core.capabilities import CapabilityKind
from enrichment_engine.core.errors import InsufficientOutput, MalformedCapabilityOutput
from enrichment_engine.core.llm import extract_json_object
from enrichment_engine.core.logging import get_logger
from enrichment_engine.core.schemas_capabilities import (
    META_DESCRIPTION_MAX_CHARS,
    META_TITLE_MAX_CHARS,
    MIN_SEO_KEYWORDS,
    SEOMetadataOutput,
)

logger = get_logger(__name__)

KIND = CapabilityKind.SEARCH_METADATA

# ruff: noqa: E501
SYSTEM_PROMPT = f"""You are an SEO expert specializing in metadata optimization. Your task is to create SEO-optimized metadata for markdown content.

IMPORTANT RULES:
1. meta_title: 50-{META_TITLE_MAX_CHARS} characters, compelling and keyword-rich
2. meta_description: 150-{META_DESCRIPTION_MAX_CHARS} characters, actionable with clear value proposition
3. seo_keywords: 5-10 relevant keywords, comma-separated, no hashtags
4. Use natural language, avoid keyword stuffing
5. Focus on user intent and search visibility
6. Include power words and action verbs where appropriate

OUTPUT FORMAT (JSON):
{{
  "meta_title": "Compelling title with primary keyword (50-60 chars)",
  "meta_description": "Clear value proposition with call-to-action (150-160 chars)",
  "seo_keywords": "keyword1, keyword2, keyword3, keyword4, keyword5"
}}

Return ONLY valid JSON with these three fields. Do not include any other text."""


def build_prompt(document_text: str) -> str:
    return f"Analyze this markdown content and create SEO metadata:\n\n{document_text}"


def _required_text(data: dict[str, Any], field: str) -> str:
    value = data.get(field)
    if not isinstance(value, str) or not value.strip():
        raise MalformedCapabilityOutput(f"Missing required SEO field: {field}", kind=KIND)
    return value.strip()


def parse_seo_metadata(raw_output: str) -> SEOMetadataOutput:
    """
    Parse the SEO response, truncating title and description to their caps.

    Raises:
        MalformedCapabilityOutput: If the JSON is missing or lacks a field
        InsufficientOutput: If fewer than MIN_SEO_KEYWORDS keywords are present
    """
    data = extract_json_object(raw_output, kind=KIND)

    meta_title = _required_text(data, "meta_title")
    meta_description = _required_text(data, "meta_description")

    keywords = data.get("seo_keywords")
    if isinstance(keywords, list):
        keywords = ", ".join(str(k).strip() for k in keywords if str(k).strip())
    if not isinstance(keywords, str) or not keywords.strip():
        raise MalformedCapabilityOutput("Missing required SEO field: seo_keywords", kind=KIND)

    if len(meta_title) > META_TITLE_MAX_CHARS:
        logger.debug(f"Truncating meta_title from {len(meta_title)} chars")
        meta_title = meta_title[:META_TITLE_MAX_CHARS].rstrip()
    if len(meta_description) > META_DESCRIPTION_MAX_CHARS:
        logger.debug(f"Truncating meta_description from {len(meta_description)} chars")
        meta_description = meta_description[:META_DESCRIPTION_MAX_CHARS].rstrip()

    output = SEOMetadataOutput(
        meta_title=meta_title,
        meta_description=meta_description,
        seo_keywords=keywords.strip(),
    )
    if len(output.keyword_terms) < MIN_SEO_KEYWORDS:
        raise InsufficientOutput(
            f"Expected at least {MIN_SEO_KEYWORDS} SEO keywords",
            kind=KIND,
            details={"keywords": len(output.keyword_terms)},
        )
    return output
