"""Quality gate: scores the aggregated outputs and decides pass/fail.

The judge's overall score is clamped into [0, 100] and rounded to an integer.
``passed`` is always recomputed as ``score >= QUALITY_PASS_THRESHOLD``; a pass
flag proposed by the judge is kept on the report for auditing only.
"""

import logging
import math
from collections.abc import Mapping
from typing import Any

from enrichment_engine.core.capabilities import CapabilityKind
from enrichment_engine.core.errors import MalformedCapabilityOutput, QualityGateRejected
from enrichment_engine.core.logging import get_logger, log_with_context
from enrichment_engine.core.schemas_capabilities import (
    QUALITY_PASS_THRESHOLD,
    QualityAssessment,
    QualityJudgment,
)
from enrichment_engine.core.schemas_pipeline import PipelineResult
from enrichment_engine.services.capability_invoker import CapabilityInvoker

logger = get_logger(__name__)


def clamp_score(raw_score: float) -> int:
    """Clamp a judge score into [0, 100] and round it to an integer."""
    if math.isnan(raw_score):
        raise MalformedCapabilityOutput(
            "quality_score must not be NaN", kind=CapabilityKind.QUALITY_ASSESSMENT
        )
    return int(round(min(max(raw_score, 0.0), 100.0)))


def decide(judgment: QualityJudgment) -> QualityAssessment:
    """Turn an unvetted judgment into a gate decision."""
    score = clamp_score(judgment.raw_score)
    passed = score >= QUALITY_PASS_THRESHOLD

    if judgment.proposed_passed is not None and judgment.proposed_passed != passed:
        log_with_context(
            logger,
            logging.WARNING,
            "Judge pass flag disagrees with threshold, overriding",
            capability=CapabilityKind.QUALITY_ASSESSMENT.value,
            proposed_passed=judgment.proposed_passed,
            score=score,
        )

    return QualityAssessment(score=score, passed=passed, report=judgment.report)


class QualityGate:
    """Runs the quality assessment capability and enforces the pass threshold."""

    def __init__(self, invoker: CapabilityInvoker) -> None:
        self.invoker = invoker

    async def assess(
        self,
        document_text: str,
        outputs: Mapping[CapabilityKind, Any],
    ) -> QualityAssessment:
        """
        Score the aggregated outputs of one run.

        The gate only reads ``outputs``; it never modifies or regenerates them.

        Args:
            document_text: Original document text
            outputs: Phase 1 and Phase 2 payloads keyed by capability kind

        Returns:
            QualityAssessment with clamped integer score and recomputed pass flag
        """
        result = await self.invoker.invoke(
            CapabilityKind.QUALITY_ASSESSMENT, document_text, context=outputs
        )
        judgment = result.payload
        if not isinstance(judgment, QualityJudgment):
            raise MalformedCapabilityOutput(
                "Quality assessment returned an unexpected payload",
                kind=CapabilityKind.QUALITY_ASSESSMENT,
            )
        return decide(judgment)


def require_passing(result: PipelineResult) -> PipelineResult:
    """
    Return ``result`` unchanged if it passed the quality gate.

    For callers that refuse to persist rejected metadata.

    Raises:
        QualityGateRejected: If ``result.passed`` is false
    """
    if not result.passed:
        raise QualityGateRejected(
            score=result.quality_score,
            feedback=result.validation_report.overall_feedback,
            threshold=QUALITY_PASS_THRESHOLD,
        )
    return result
