"""Prompt and response parsing for the tagging capability."""

import re

from enrichment_engine.core.capabilities import CapabilityKind
from enrichment_engine.core.errors import InsufficientOutput, MalformedCapabilityOutput
from enrichment_engine.core.llm import extract_json_object
from enrichment_engine.core.schemas_capabilities import MAX_TAGS, MIN_TAGS, TAG_PATTERN, TagsOutput

KIND = CapabilityKind.TAGGING

# ruff: noqa: E501
SYSTEM_PROMPT = """You are a content tagging expert. Your task is to generate relevant, specific tags for markdown content that will help users discover and organize the content.

TAG GUIDELINES:
1. Generate 3-5 tags (minimum 3, maximum 5)
2. Use lowercase, hyphen-separated format (e.g., "machine-learning", "api-design")
3. Be specific and descriptive (e.g., "react-hooks" not just "react")
4. Focus on concrete topics, technologies, and concepts
5. Avoid generic tags like "tips", "guide", "tutorial"
6. Include both broad and specific tags for better discoverability

EXAMPLES OF GOOD TAGS:
- "typescript", "rest-api", "authentication"
- "react-hooks", "state-management", "performance-optimization"

EXAMPLES OF BAD TAGS:
- "cool-stuff", "must-read", "interesting"
- "guide", "tutorial", "tips-and-tricks"

OUTPUT FORMAT (JSON):
{
  "tags": ["tag1", "tag2", "tag3", "tag4", "tag5"]
}

Return ONLY valid JSON with a "tags" array. Do not include any other text."""


def build_prompt(document_text: str) -> str:
    return f"Analyze this markdown content and generate relevant tags:\n\n{document_text}"


def normalize_tag(tag: str) -> str:
    """Lowercase, trim, and hyphenate whitespace and underscores."""
    return re.sub(r"[\s_]+", "-", tag.strip().lower())


def normalize_tags(raw_tags: list) -> list[str]:
    """Normalize, drop invalid entries, dedupe preserving order, cap at MAX_TAGS."""
    tags: list[str] = []
    for raw in raw_tags:
        if not isinstance(raw, str):
            continue
        tag = normalize_tag(raw)
        if tag and TAG_PATTERN.match(tag) and tag not in tags:
            tags.append(tag)
    return tags[:MAX_TAGS]


def parse_tags(raw_output: str) -> TagsOutput:
    """
    Parse the tags response.

    Raises:
        MalformedCapabilityOutput: If the JSON has no ``tags`` array
        InsufficientOutput: If fewer than MIN_TAGS valid tags survive normalization
    """
    data = extract_json_object(raw_output, kind=KIND)

    raw_tags = data.get("tags")
    if not isinstance(raw_tags, list):
        raise MalformedCapabilityOutput("tags must be an array", kind=KIND)

    tags = normalize_tags(raw_tags)
    if len(tags) < MIN_TAGS:
        raise InsufficientOutput(
            f"Expected at least {MIN_TAGS} valid tags after normalization",
            kind=KIND,
            details={"received": len(raw_tags), "valid": len(tags)},
        )
    return TagsOutput(tags=tuple(tags))
