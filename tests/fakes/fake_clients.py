"""In-memory fakes for the completion, embedding and Supabase clients."""

import asyncio
import json
import time
from typing import Any

from enrichment_engine.core.capabilities import CapabilityKind
from enrichment_engine.core.schemas_capabilities import (
    EMBEDDING_DIMENSIONS,
    DimensionScore,
    ValidationReport,
)
from enrichment_engine.core.schemas_pipeline import PipelineResult
from enrichment_engine.services.capability_invoker import PROMPT_CAPABILITIES

SAMPLE_DOCUMENT = """# Introduction to TypeScript

TypeScript is a strongly typed programming language that builds on JavaScript, giving you better tooling at any scale.

## Key Features

- **Type Safety**: Catch errors at compile time
- **Tooling**: Enhanced IDE support and autocomplete

TypeScript makes JavaScript development more productive and enjoyable!
"""

SUMMARIES_RESPONSE = json.dumps(
    {
        "summary_short": "TypeScript adds static types to JavaScript.",
        "summary_medium": (
            "TypeScript is a typed superset of JavaScript. It catches errors at compile time "
            "and improves editor tooling for large codebases."
        ),
        "summary_long": (
            "TypeScript is a strongly typed programming language that builds on JavaScript. "
            "It brings compile-time type safety, modern ECMAScript features and rich IDE "
            "support, which makes it a good fit for large codebases. This introduction covers "
            "its key features and how to install it and write a first file."
        ),
    }
)

SEO_RESPONSE = json.dumps(
    {
        "meta_title": "Introduction to TypeScript: Typed JavaScript at Scale",
        "meta_description": (
            "Learn what TypeScript is, why static types catch bugs early, and how to install "
            "it and write your first typed JavaScript file today."
        ),
        "seo_keywords": "typescript, javascript, static typing, type safety, web development",
    }
)

CLASSIFICATION_RESPONSE = json.dumps(
    {
        "category": "Development",
        "confidence": 0.92,
        "reasoning": "Introductory programming language tutorial.",
    }
)

TAGS_RESPONSE = json.dumps({"tags": ["typescript", "javascript", "static-typing", "type-safety"]})

SCHEMA_RESPONSE = json.dumps(
    {
        "@context": "https://schema.org",
        "@type": "TechArticle",
        "headline": "Introduction to TypeScript",
        "description": "A short introduction to TypeScript.",
        "datePublished": "2025-01-15",
        "keywords": ["TypeScript", "JavaScript"],
    }
)

IMAGE_PROMPT_RESPONSE = json.dumps(
    {
        "image_prompt": (
            "Isometric illustration of glowing blue code blocks snapping together like puzzle "
            "pieces, type annotations as light beams, dark background, clean vector art"
        ),
        "style_notes": "Puzzle pieces suggest type safety fitting code together.",
    }
)


def quality_response(score: float = 85, passed: bool | None = True, **overrides: Any) -> str:
    report = {
        "summary": {"score": 22, "feedback": "Clear and concise."},
        "seo": {"score": 23, "feedback": "Strong title and description."},
        "categorization": {"score": 17, "feedback": "Accurate category, specific tags."},
        "schema": {"score": 12, "feedback": "Valid TechArticle."},
        "image_prompt": {"score": 11, "feedback": "Vivid prompt."},
        "overall_feedback": "High quality metadata.",
        "issues": [],
        "recommendations": ["Add educationalLevel to the schema"],
    }
    report.update(overrides)
    data: dict[str, Any] = {"quality_score": score, "validation_report": report}
    if passed is not None:
        data["passed"] = passed
    return json.dumps(data)


DEFAULT_RESPONSES: dict[CapabilityKind, str] = {
    CapabilityKind.SHORT_FORM_SUMMARIES: SUMMARIES_RESPONSE,
    CapabilityKind.SEARCH_METADATA: SEO_RESPONSE,
    CapabilityKind.CLASSIFICATION: CLASSIFICATION_RESPONSE,
    CapabilityKind.TAGGING: TAGS_RESPONSE,
    CapabilityKind.STRUCTURED_DESCRIPTION: SCHEMA_RESPONSE,
    CapabilityKind.VISUAL_PROMPT: IMAGE_PROMPT_RESPONSE,
    CapabilityKind.QUALITY_ASSESSMENT: quality_response(),
}

_KIND_BY_SYSTEM_PROMPT = {
    capability.system_prompt: kind for kind, capability in PROMPT_CAPABILITIES.items()
}


def make_vector(seed: int = 1, dimensions: int = EMBEDDING_DIMENSIONS) -> list[float]:
    """Deterministic non-zero vector."""
    return [((i * seed) % 13 + 1) / 13 for i in range(dimensions)]


def unit_vector(axis: int, dimensions: int = EMBEDDING_DIMENSIONS) -> list[float]:
    vector = [0.0] * dimensions
    vector[axis] = 1.0
    return vector


class FakeCompletionClient:
    """Answers each capability with a canned response.

    A response may be a string, an exception instance to raise, or a list of
    either, consumed one per call (the last entry repeats).
    """

    provider = "fake"

    def __init__(
        self,
        responses: dict[CapabilityKind, Any] | None = None,
        delays: dict[CapabilityKind, float] | None = None,
    ) -> None:
        self.responses: dict[CapabilityKind, Any] = {**DEFAULT_RESPONSES, **(responses or {})}
        self.delays = delays or {}
        self.calls: list[dict[str, Any]] = []

    def started(self, kind: CapabilityKind) -> list[float]:
        return [call["started_at"] for call in self.calls if call["kind"] == kind]

    def call_count(self, kind: CapabilityKind) -> int:
        return len(self.started(kind))

    async def complete(
        self,
        *,
        model: str,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int,
        temperature: float = 0.0,
    ) -> str:
        kind = _KIND_BY_SYSTEM_PROMPT[system_prompt]
        self.calls.append(
            {
                "kind": kind,
                "model": model,
                "user_prompt": user_prompt,
                "started_at": time.perf_counter(),
            }
        )

        delay = self.delays.get(kind)
        if delay:
            await asyncio.sleep(delay)
        else:
            await asyncio.sleep(0)

        response = self.responses[kind]
        if isinstance(response, list):
            response = response.pop(0) if len(response) > 1 else response[0]
        if isinstance(response, BaseException):
            raise response
        return response


class FakeEmbeddingClient:
    """Returns a fixed vector (or raises) and records every input."""

    model = "fake-embedding"

    def __init__(self, responses: Any = None, delay: float = 0.0) -> None:
        self.responses = responses if responses is not None else make_vector()
        self.delay = delay
        self.inputs: list[str] = []
        self.started_at: list[float] = []

    async def embed(self, text: str) -> list[float]:
        self.inputs.append(text)
        self.started_at.append(time.perf_counter())
        await asyncio.sleep(self.delay)

        response = self.responses
        if isinstance(response, list) and response and not isinstance(response[0], (int, float)):
            response = response.pop(0) if len(response) > 1 else response[0]
        if isinstance(response, BaseException):
            raise response
        return list(response)


class _FakeResponse:
    def __init__(self, data: Any) -> None:
        self.data = data


class _FakeQuery:
    def __init__(self, client: "FakeSupabaseClient", table: str) -> None:
        self.client = client
        self.table = table
        self._filter_ids: list[str] | None = None
        self._pending_upsert: dict[str, Any] | None = None

    def upsert(self, row: dict[str, Any], on_conflict: str | None = None) -> "_FakeQuery":
        self._pending_upsert = row
        return self

    def select(self, columns: str) -> "_FakeQuery":
        return self

    def in_(self, column: str, values: list[str]) -> "_FakeQuery":
        self._filter_ids = list(values)
        return self

    def execute(self) -> _FakeResponse:
        rows = self.client.tables.setdefault(self.table, {})
        if self._pending_upsert is not None:
            rows[self._pending_upsert["module_id"]] = self._pending_upsert
            return _FakeResponse([self._pending_upsert])
        selected = [
            row for key, row in rows.items() if self._filter_ids is None or key in self._filter_ids
        ]
        return _FakeResponse(selected)


class _FakeRpc:
    def __init__(self, rows: list[dict[str, Any]]) -> None:
        self._rows = rows

    def execute(self) -> _FakeResponse:
        return _FakeResponse(self._rows)


class FakeSupabaseClient:
    """Enough of the supabase-py surface for the vector index."""

    def __init__(self, rpc_rows: list[dict[str, Any]] | None = None) -> None:
        self.tables: dict[str, dict[str, dict[str, Any]]] = {}
        self.rpc_rows = rpc_rows or []
        self.rpc_calls: list[tuple[str, dict[str, Any]]] = []

    def table(self, name: str) -> _FakeQuery:
        return _FakeQuery(self, name)

    def rpc(self, name: str, params: dict[str, Any]) -> _FakeRpc:
        self.rpc_calls.append((name, params))
        return _FakeRpc(self.rpc_rows)


def make_validation_report(**overrides: Any) -> ValidationReport:
    data: dict[str, Any] = {
        "summaries": DimensionScore(score=20, max_score=25, feedback="Good"),
        "search_metadata": DimensionScore(score=20, max_score=25, feedback="Good"),
        "classification_tagging": DimensionScore(score=15, max_score=20, feedback="Good"),
        "structured_description": DimensionScore(score=10, max_score=15, feedback="Good"),
        "visual_prompt": DimensionScore(score=10, max_score=15, feedback="Good"),
        "overall_feedback": "Needs work.",
    }
    data.update(overrides)
    return ValidationReport(**data)


def make_pipeline_result(**overrides: Any) -> PipelineResult:
    data: dict[str, Any] = {
        "summary_short": "Short.",
        "summary_medium": "A medium summary.",
        "summary_long": "A considerably longer summary paragraph.",
        "meta_title": "Title",
        "meta_description": "Description",
        "seo_keywords": "a, b, c",
        "category": "Development",
        "category_confidence": 0.9,
        "category_reasoning": "Code",
        "tags": ("typescript", "javascript", "static-typing"),
        "schema_json": {"@context": "https://schema.org", "@type": "TechArticle"},
        "image_prompt": "An isometric illustration",
        "image_style_notes": "Clean",
        "embedding": tuple(make_vector()),
        "quality_score": 80,
        "passed": True,
        "validation_report": make_validation_report(),
        "processing_time_ms": 1200,
        "estimated_cost_usd": 0.072,
    }
    data.update(overrides)
    return PipelineResult(**data)
