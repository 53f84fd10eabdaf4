"""Prompt and response parsing for the Schema.org structured description capability."""

from datetime import date

from enrichment_engine.core.capabilities import CapabilityKind
from enrichment_engine.core.errors import MalformedCapabilityOutput
from enrichment_engine.core.llm import extract_json_object
from enrichment_engine.core.schemas_capabilities import SchemaOrgOutput

KIND = CapabilityKind.STRUCTURED_DESCRIPTION
SCHEMA_CONTEXT = "https://schema.org"

# ruff: noqa: E501
SYSTEM_PROMPT = """You are a Schema.org structured data expert. Your task is to create valid JSON-LD structured data for markdown content to enhance SEO and rich snippets in search results.

SCHEMA.ORG TYPES TO USE:
- Article: For blog posts, articles, news content
- TechArticle: For technical documentation, tutorials
- HowTo: For step-by-step guides and tutorials
- Course: For educational content and learning materials
- FAQPage: For FAQ-style content
- WebPage: Generic fallback for other content

REQUIRED FIELDS:
- @context: "https://schema.org"
- @type: The most appropriate type from above
- headline: Article title (max 110 characters)
- description: Brief description
- author: { @type: "Organization", name: "CurrentPrompt" }
- publisher: { @type: "Organization", name: "CurrentPrompt" }
- datePublished: Current date in ISO 8601 format
- keywords: Array of relevant keywords

OPTIONAL BUT RECOMMENDED:
- articleBody: Brief excerpt or summary
- articleSection: Category/section
- about: Main topic description
- educationalLevel: For learning content (beginner/intermediate/advanced)

IMPORTANT RULES:
1. Generate valid, compliant Schema.org JSON-LD
2. Choose the most specific and appropriate type
3. Include all required fields
4. Use realistic, relevant data based on content

Return ONLY valid JSON-LD structured data. No additional text or explanation."""


def build_prompt(document_text: str) -> str:
    return f"Analyze this markdown content and generate Schema.org structured data:\n\n{document_text}"


def parse_schema_org(raw_output: str, today: date | None = None) -> SchemaOrgOutput:
    """
    Parse the JSON-LD response.

    ``@context`` is forced to https://schema.org and ``datePublished`` defaults
    to today when the model leaves it out.

    Raises:
        MalformedCapabilityOutput: If the JSON is missing or has no ``@type``
    """
    schema = extract_json_object(raw_output, kind=KIND)

    schema_type = schema.get("@type")
    if not schema_type or not isinstance(schema_type, (str, list)):
        raise MalformedCapabilityOutput("Missing required Schema.org field: @type", kind=KIND)

    schema["@context"] = SCHEMA_CONTEXT
    if not schema.get("datePublished"):
        schema["datePublished"] = (today or date.today()).isoformat()

    return SchemaOrgOutput(structured_data=schema)
