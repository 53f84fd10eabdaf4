"""Content enrichment LangGraph pipeline.

4-node LangGraph StateGraph:
1. phase_one: summaries, SEO metadata, classification, tagging (concurrent)
2. phase_two: Schema.org description, visual prompt, embedding (concurrent)
3. quality_gate: quality assessment over every Phase 1/2 output
4. assemble_result: build the immutable PipelineResult

A phase waits for all of its capabilities. If any fails, the phase's results
are discarded and the first failure (in capability order) ends the run.
"""

import asyncio
import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from langchain_core.runnables import RunnableConfig
from langgraph.graph import END, StateGraph

from enrichment_engine.core.capabilities import (
    PHASE_ONE,
    PHASE_TWO,
    PHASE_THREE,
    CapabilityKind,
)
from enrichment_engine.core.config import Settings, get_settings
from enrichment_engine.core.costs import capability_cost, estimate_cost
from enrichment_engine.core.embeddings import EmbeddingClient, build_embedding_client
from enrichment_engine.core.llm import CompletionClient, build_completion_client
from enrichment_engine.core.logging import get_logger, log_with_context
from enrichment_engine.core.schemas_capabilities import (
    CapabilityPayload,
    ClassificationOutput,
    EmbeddingOutput,
    ImagePromptOutput,
    QualityAssessment,
    SchemaOrgOutput,
    SEOMetadataOutput,
    SummariesOutput,
    TagsOutput,
)
from enrichment_engine.core.schemas_pipeline import CostEstimate, PipelineResult
from enrichment_engine.services.capability_invoker import CapabilityInvoker, check_document_text
from enrichment_engine.services.quality_gate import QualityGate

logger = get_logger(__name__)

MAX_STEPS = 8


class PipelineStatus(str, Enum):
    """Lifecycle of one enrichment run."""

    IDLE = "idle"
    PHASE1_RUNNING = "phase1_running"
    PHASE2_RUNNING = "phase2_running"
    PHASE3_RUNNING = "phase3_running"
    COMPLETED = "completed"
    FAILED = "failed"


_TRANSITIONS: dict[PipelineStatus, frozenset[PipelineStatus]] = {
    PipelineStatus.IDLE: frozenset({PipelineStatus.PHASE1_RUNNING, PipelineStatus.FAILED}),
    PipelineStatus.PHASE1_RUNNING: frozenset({PipelineStatus.PHASE2_RUNNING, PipelineStatus.FAILED}),
    PipelineStatus.PHASE2_RUNNING: frozenset({PipelineStatus.PHASE3_RUNNING, PipelineStatus.FAILED}),
    PipelineStatus.PHASE3_RUNNING: frozenset({PipelineStatus.COMPLETED, PipelineStatus.FAILED}),
    PipelineStatus.COMPLETED: frozenset(),
    PipelineStatus.FAILED: frozenset(),
}


@dataclass
class EnrichmentState:
    """State for the enrichment pipeline graph."""

    # Input
    run_id: UUID
    document_text: str
    step_count: int = 0

    # Phase outputs
    outputs: dict[CapabilityKind, Any] = field(default_factory=dict)
    assessment: QualityAssessment | None = None

    # Output
    result: PipelineResult | None = None


def _check_max_steps(state: EnrichmentState) -> EnrichmentState:
    """Check and increment step count, raise if exceeded."""
    state.step_count += 1
    if state.step_count > MAX_STEPS:
        raise RuntimeError(f"Graph exceeded max steps ({MAX_STEPS})")
    return state


def _get_run(config: RunnableConfig) -> "EnrichmentRun":
    return config["configurable"]["enrichment_run"]


async def _run_phase(
    run: "EnrichmentRun",
    kinds: Sequence[CapabilityKind],
    document_text: str,
) -> dict[CapabilityKind, CapabilityPayload]:
    """Invoke every capability of a phase concurrently and wait for all of them."""
    results = await asyncio.gather(
        *(run.invoker.invoke(kind, document_text) for kind in kinds),
        return_exceptions=True,
    )

    failures = [
        (kind, result) for kind, result in zip(kinds, results, strict=True)
        if isinstance(result, BaseException)
    ]
    if failures:
        kind, error = failures[0]
        if len(failures) > 1:
            log_with_context(
                logger,
                logging.WARNING,
                f"{len(failures)} capabilities failed in the same phase",
                run_id=str(run.run_id),
                capability=kind.value,
                failed=[k.value for k, _ in failures],
            )
        raise error

    run.accrue(kinds)
    return {result.kind: result.payload for result in results}


async def phase_one(state: EnrichmentState, config: RunnableConfig) -> dict[str, Any]:
    """Phase 1: basic metadata."""
    state = _check_max_steps(state)
    run = _get_run(config)
    run.transition(PipelineStatus.PHASE1_RUNNING)

    outputs = await _run_phase(run, PHASE_ONE, state.document_text)

    classification: ClassificationOutput = outputs[CapabilityKind.CLASSIFICATION]
    tags: TagsOutput = outputs[CapabilityKind.TAGGING]
    run.log_phase_complete(
        1, category=classification.category, tags=", ".join(tags.tags)
    )
    return {"outputs": {**state.outputs, **outputs}, "step_count": state.step_count}


async def phase_two(state: EnrichmentState, config: RunnableConfig) -> dict[str, Any]:
    """Phase 2: rich metadata and the embedding vector."""
    state = _check_max_steps(state)
    run = _get_run(config)
    run.transition(PipelineStatus.PHASE2_RUNNING)

    outputs = await _run_phase(run, PHASE_TWO, state.document_text)

    embedding: EmbeddingOutput = outputs[CapabilityKind.EMBEDDING_VECTOR]
    run.log_phase_complete(2, embedding_dimensions=len(embedding.vector))
    return {"outputs": {**state.outputs, **outputs}, "step_count": state.step_count}


async def quality_gate(state: EnrichmentState, config: RunnableConfig) -> dict[str, Any]:
    """Phase 3: score the aggregated outputs."""
    state = _check_max_steps(state)
    run = _get_run(config)
    run.transition(PipelineStatus.PHASE3_RUNNING)

    assessment = await run.quality_gate.assess(state.document_text, state.outputs)
    run.accrue(PHASE_THREE)

    run.log_phase_complete(3, quality_score=assessment.score, passed=assessment.passed)
    return {"assessment": assessment, "step_count": state.step_count}


def assemble_result(state: EnrichmentState, config: RunnableConfig) -> dict[str, Any]:
    """Build the PipelineResult from all eight outputs and the gate decision."""
    state = _check_max_steps(state)
    run = _get_run(config)

    assessment = state.assessment
    if assessment is None:
        raise RuntimeError("assemble_result reached without a quality assessment")

    summaries: SummariesOutput = state.outputs[CapabilityKind.SHORT_FORM_SUMMARIES]
    seo: SEOMetadataOutput = state.outputs[CapabilityKind.SEARCH_METADATA]
    classification: ClassificationOutput = state.outputs[CapabilityKind.CLASSIFICATION]
    tags: TagsOutput = state.outputs[CapabilityKind.TAGGING]
    schema: SchemaOrgOutput = state.outputs[CapabilityKind.STRUCTURED_DESCRIPTION]
    image: ImagePromptOutput = state.outputs[CapabilityKind.VISUAL_PROMPT]
    embedding: EmbeddingOutput = state.outputs[CapabilityKind.EMBEDDING_VECTOR]

    result = PipelineResult(
        summary_short=summaries.summary_short,
        summary_medium=summaries.summary_medium,
        summary_long=summaries.summary_long,
        meta_title=seo.meta_title,
        meta_description=seo.meta_description,
        seo_keywords=seo.seo_keywords,
        category=classification.category,
        category_confidence=classification.confidence,
        category_reasoning=classification.reasoning,
        tags=tags.tags,
        structured_data=schema.structured_data,
        image_prompt=image.image_prompt,
        image_style_notes=image.style_notes,
        embedding=embedding.vector,
        quality_score=assessment.score,
        passed=assessment.passed,
        validation_report=assessment.report,
        processing_time_ms=run.elapsed_ms(),
        estimated_cost_usd=run.accrued_cost_usd,
    )
    return {"result": result, "step_count": state.step_count}


def _build_graph() -> StateGraph:
    """Build the LangGraph for content enrichment."""
    graph = StateGraph(EnrichmentState)

    graph.add_node("phase_one", phase_one)
    graph.add_node("phase_two", phase_two)
    graph.add_node("quality_gate", quality_gate)
    graph.add_node("assemble_result", assemble_result)

    # Flow: phase 1 -> phase 2 -> quality gate -> result
    graph.set_entry_point("phase_one")
    graph.add_edge("phase_one", "phase_two")
    graph.add_edge("phase_two", "quality_gate")
    graph.add_edge("quality_gate", "assemble_result")
    graph.add_edge("assemble_result", END)

    return graph


# Compile the graph once at module load
_compiled_graph = _build_graph().compile()


class EnrichmentRun:
    """One pass of one document through the pipeline.

    Single-use: a second ``execute`` raises ``RuntimeError``. Re-processing a
    document means starting a new run.
    """

    def __init__(self, invoker: CapabilityInvoker, quality_gate: QualityGate) -> None:
        self.invoker = invoker
        self.quality_gate = quality_gate
        self.run_id = uuid4()
        self.status = PipelineStatus.IDLE
        self.accrued_cost_usd = 0.0
        self.phase_started_at: dict[PipelineStatus, float] = {}
        self._started_at: float | None = None

    def transition(self, new_status: PipelineStatus) -> None:
        if new_status not in _TRANSITIONS[self.status]:
            raise RuntimeError(
                f"Invalid pipeline transition {self.status.value} -> {new_status.value}"
            )
        self.status = new_status
        if new_status not in (PipelineStatus.COMPLETED, PipelineStatus.FAILED):
            self.phase_started_at[new_status] = time.perf_counter()
            log_with_context(
                logger, logging.INFO, f"Entering {new_status.value}", run_id=str(self.run_id)
            )

    def accrue(self, kinds: Sequence[CapabilityKind]) -> None:
        self.accrued_cost_usd += sum(capability_cost(kind) for kind in kinds)

    def elapsed_ms(self) -> int:
        if self._started_at is None:
            return 0
        return int((time.perf_counter() - self._started_at) * 1000)

    def log_phase_complete(self, phase: int, **details: Any) -> None:
        started = self.phase_started_at.get(self.status)
        duration_ms = int((time.perf_counter() - started) * 1000) if started is not None else 0
        log_with_context(
            logger,
            logging.INFO,
            f"Phase {phase} complete ({duration_ms}ms)",
            run_id=str(self.run_id),
            duration_ms=duration_ms,
            **details,
        )

    async def execute(self, document_text: str) -> PipelineResult:
        """
        Run all three phases on one document.

        Args:
            document_text: Raw document text

        Returns:
            PipelineResult for the document (check ``passed`` for the gate decision)

        Raises:
            EmptyInput: If the document is too short (before any capability runs)
            InputTooLarge: If the document is too long (before any capability runs)
            CapabilityError: The first capability failure of the failing phase
            RuntimeError: If the run has already been executed
        """
        if self.status != PipelineStatus.IDLE:
            raise RuntimeError("EnrichmentRun is single-use; start a new run to re-process")

        self._started_at = time.perf_counter()

        try:
            check_document_text(document_text, self.invoker.settings)
            final_state = await _compiled_graph.ainvoke(
                EnrichmentState(run_id=self.run_id, document_text=document_text),
                config={"configurable": {"enrichment_run": self}},
            )
        except Exception as e:
            self.status = PipelineStatus.FAILED
            log_with_context(
                logger,
                logging.ERROR,
                f"Enrichment pipeline failed after {self.elapsed_ms()}ms: {e}",
                run_id=str(self.run_id),
                error_type=type(e).__name__,
            )
            raise

        # LangGraph returns dict
        result: PipelineResult = final_state["result"]
        self.transition(PipelineStatus.COMPLETED)

        log_with_context(
            logger,
            logging.INFO,
            f"Enrichment pipeline complete: quality {result.quality_score}/100, "
            f"cost ${result.estimated_cost_usd:.4f}",
            run_id=str(self.run_id),
            processing_time_ms=result.processing_time_ms,
            passed=result.passed,
        )
        if not result.passed:
            log_with_context(
                logger,
                logging.WARNING,
                "Content did not pass quality validation threshold",
                run_id=str(self.run_id),
                quality_score=result.quality_score,
                feedback=result.validation_report.overall_feedback,
            )
        return result


class EnrichmentPipeline:
    """Entry point used by the record-creation collaborator.

    Clients are injected so tests can substitute fakes.
    """

    def __init__(
        self,
        completion_client: CompletionClient,
        embedding_client: EmbeddingClient,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.invoker = CapabilityInvoker(completion_client, embedding_client, self.settings)
        self.quality_gate = QualityGate(self.invoker)

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "EnrichmentPipeline":
        """Build a pipeline with the provider clients selected by settings."""
        settings = settings or get_settings()
        return cls(
            completion_client=build_completion_client(settings),
            embedding_client=build_embedding_client(settings),
            settings=settings,
        )

    def new_run(self) -> EnrichmentRun:
        return EnrichmentRun(self.invoker, self.quality_gate)

    async def process(self, document_text: str) -> PipelineResult:
        """Process one document through a fresh run."""
        return await self.new_run().execute(document_text)

    def estimate_cost(self, document_count: int) -> CostEstimate:
        """Static cost estimate for ``document_count`` documents; no I/O."""
        return estimate_cost(document_count)

    def health(self) -> dict[str, Any]:
        """Report provider configuration without making remote calls."""
        provider = self.settings.LLM_PROVIDER.lower()
        completion_keys = {
            "openrouter": self.settings.OPENROUTER_API_KEY,
            "openai": self.settings.OPENAI_API_KEY,
            "anthropic": self.settings.ANTHROPIC_API_KEY,
        }
        return {
            "provider": provider,
            "completion_configured": bool(completion_keys.get(provider)),
            "embedding_configured": bool(self.settings.OPENAI_API_KEY),
            "embedding_model": self.settings.EMBEDDING_MODEL,
            "capabilities": len(CapabilityKind),
        }
