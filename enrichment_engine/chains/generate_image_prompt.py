"""Prompt and response parsing for the thumbnail visual prompt capability."""

from enrichment_engine.core.capabilities import CapabilityKind
from enrichment_engine.core.errors import MalformedCapabilityOutput
from enrichment_engine.core.llm import extract_json_object
from enrichment_engine.core.logging import get_logger
from enrichment_engine.core.schemas_capabilities import (
    IMAGE_PROMPT_MAX_CHARS,
    IMAGE_PROMPT_MIN_CHARS,
    ImagePromptOutput,
)

logger = get_logger(__name__)

KIND = CapabilityKind.VISUAL_PROMPT
DEFAULT_STYLE_NOTES = "No style notes provided"

# ruff: noqa: E501
SYSTEM_PROMPT = """You are an expert AI image prompt engineer. Your task is to create detailed, effective prompts for generating thumbnail images that represent markdown content.

PROMPT GUIDELINES:
1. Create vivid, specific visual descriptions
2. Include style, composition, and mood
3. Specify colors, lighting, and atmosphere
4. Keep prompts between 100-200 characters
5. Focus on abstract concepts and metaphors for technical content
6. Avoid text in images (AI image generators struggle with text)

STYLE PREFERENCES:
- Clean, modern, minimalist design
- Bold colors with good contrast
- Isometric or flat illustration styles work well
- Avoid photorealism unless specifically needed

EXAMPLE OF A GOOD PROMPT:
- "Isometric illustration of interconnected code blocks and data streams, vibrant blues and purples, modern tech aesthetic, clean lines, digital art"

OUTPUT FORMAT (JSON):
{
  "image_prompt": "Detailed visual description here, 100-200 characters, specific and evocative",
  "style_notes": "Brief explanation of why this visual works for the content"
}

Return ONLY valid JSON. Do not include any other text."""


def build_prompt(document_text: str) -> str:
    return (
        "Analyze this markdown content and create a compelling image prompt for a thumbnail:"
        f"\n\n{document_text}"
    )


def parse_image_prompt(raw_output: str) -> ImagePromptOutput:
    """
    Parse the image prompt response, truncating prompts over IMAGE_PROMPT_MAX_CHARS.

    Raises:
        MalformedCapabilityOutput: If the JSON is missing or has no ``image_prompt``
    """
    data = extract_json_object(raw_output, kind=KIND)

    prompt = data.get("image_prompt")
    if not isinstance(prompt, str) or not prompt.strip():
        raise MalformedCapabilityOutput("Missing required field: image_prompt", kind=KIND)
    prompt = prompt.strip()

    if len(prompt) < IMAGE_PROMPT_MIN_CHARS:
        logger.warning(
            f"Image prompt is shorter than recommended ({len(prompt)} < {IMAGE_PROMPT_MIN_CHARS} chars)"
        )
    if len(prompt) > IMAGE_PROMPT_MAX_CHARS:
        prompt = prompt[:IMAGE_PROMPT_MAX_CHARS]

    style_notes = data.get("style_notes")
    if not isinstance(style_notes, str) or not style_notes.strip():
        style_notes = DEFAULT_STYLE_NOTES

    return ImagePromptOutput(image_prompt=prompt, style_notes=style_notes)
