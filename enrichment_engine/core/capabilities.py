"""Capability kinds and their phase groupings.

The enrichment pipeline runs a closed set of eight capabilities:

    Phase 1 (concurrent):  summaries, seo, classification, tagging
    Phase 2 (concurrent):  structured description, visual prompt, embedding
    Phase 3 (sequential):  quality assessment

Every kind belongs to exactly one phase; this is checked at import time.
"""

from enum import Enum


class CapabilityKind(str, Enum):
    """One value per generation capability."""

    SHORT_FORM_SUMMARIES = "summaries"
    SEARCH_METADATA = "seo"
    CLASSIFICATION = "classification"
    TAGGING = "tagging"
    STRUCTURED_DESCRIPTION = "structured_description"
    VISUAL_PROMPT = "visual_prompt"
    EMBEDDING_VECTOR = "embedding"
    QUALITY_ASSESSMENT = "quality_assessment"


PHASE_ONE: tuple[CapabilityKind, ...] = (
    CapabilityKind.SHORT_FORM_SUMMARIES,
    CapabilityKind.SEARCH_METADATA,
    CapabilityKind.CLASSIFICATION,
    CapabilityKind.TAGGING,
)

PHASE_TWO: tuple[CapabilityKind, ...] = (
    CapabilityKind.STRUCTURED_DESCRIPTION,
    CapabilityKind.VISUAL_PROMPT,
    CapabilityKind.EMBEDDING_VECTOR,
)

PHASE_THREE: tuple[CapabilityKind, ...] = (CapabilityKind.QUALITY_ASSESSMENT,)

PHASES: tuple[tuple[CapabilityKind, ...], ...] = (PHASE_ONE, PHASE_TWO, PHASE_THREE)


def _check_phases_exhaustive() -> None:
    grouped = [kind for phase in PHASES for kind in phase]
    if len(grouped) != len(set(grouped)) or set(grouped) != set(CapabilityKind):
        raise RuntimeError("Every capability kind must belong to exactly one phase")


_check_phases_exhaustive()
