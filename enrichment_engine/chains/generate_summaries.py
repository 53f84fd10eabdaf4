"""Prompt and response parsing for the short-form summaries capability."""

from enrichment_engine.core.capabilities import CapabilityKind
from enrichment_engine.core.errors import InsufficientOutput
from enrichment_engine.core.llm import parse_llm_json
from enrichment_engine.core.schemas_capabilities import SummariesOutput

KIND = CapabilityKind.SHORT_FORM_SUMMARIES

# ruff: noqa: E501
SYSTEM_PROMPT = """You are a professional content summarizer. Your task is to create three different-length summaries of markdown content.

IMPORTANT RULES:
1. Generate THREE distinct summaries with different lengths
2. Each summary must be self-contained and comprehensive
3. Focus on the core value and key takeaways
4. Use clear, professional language
5. No fluff or filler words

OUTPUT FORMAT (JSON):
{
  "summary_short": "1-2 sentences, 50-100 characters. One complete thought.",
  "summary_medium": "3-4 sentences, 150-250 characters. Key points and context.",
  "summary_long": "Full paragraph, 350-500 characters. Comprehensive overview with details."
}

Return ONLY valid JSON with these three fields. Do not include any other text."""


def build_prompt(document_text: str) -> str:
    return f"Analyze this markdown content and create three summaries:\n\n{document_text}"


def parse_summaries(raw_output: str) -> SummariesOutput:
    """
    Parse the summaries response.

    Raises:
        MalformedCapabilityOutput: If the JSON is missing or lacks a summary field
        InsufficientOutput: If the summaries are not strictly increasing in length
    """
    output = parse_llm_json(raw_output, SummariesOutput, kind=KIND)

    short_len = len(output.summary_short)
    medium_len = len(output.summary_medium)
    long_len = len(output.summary_long)
    if not short_len < medium_len < long_len:
        raise InsufficientOutput(
            "Summaries must increase in length: short < medium < long",
            kind=KIND,
            details={"short": short_len, "medium": medium_len, "long": long_len},
        )
    return output
