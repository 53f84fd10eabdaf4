"""Error taxonomy for capability invocation and pipeline runs.

Every error carries the capability kind it originated from (``None`` for input
rejections that happen before any capability runs) so callers can tell which
step of a run failed.
"""

from typing import Any

from enrichment_engine.core.capabilities import CapabilityKind


class CapabilityError(Exception):
    """Base class for all capability and pipeline failures."""

    def __init__(
        self,
        message: str,
        kind: CapabilityKind | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.details = details or {}

    def __str__(self) -> str:
        prefix = f"[{self.kind.value}] " if self.kind else ""
        if self.details:
            return f"{prefix}{self.message} | Details: {self.details}"
        return f"{prefix}{self.message}"


class MalformedCapabilityOutput(CapabilityError):
    """Raised when a capability response has no parsable or well-shaped JSON object."""


class InsufficientOutput(CapabilityError):
    """Raised when parsed output fails a semantic constraint (e.g. too few tags)."""


class DimensionMismatch(CapabilityError):
    """Raised when an embedding vector does not have the expected length."""

    def __init__(
        self,
        expected: int,
        actual: int,
        kind: CapabilityKind | None = CapabilityKind.EMBEDDING_VECTOR,
    ) -> None:
        super().__init__(
            f"Embedding dimension mismatch: expected {expected}, got {actual}",
            kind=kind,
            details={"expected": expected, "actual": actual},
        )
        self.expected = expected
        self.actual = actual


class EmptyInput(CapabilityError):
    """Raised when document text is below the minimum length."""


class InputTooLarge(CapabilityError):
    """Raised when document text exceeds the maximum length."""


class CapabilityUnavailable(CapabilityError):
    """Raised when the remote capability call itself fails (timeout, API error)."""


class QualityGateRejected(Exception):
    """Raised by callers that refuse to keep output scored below the pass threshold."""

    def __init__(self, score: int, feedback: str, threshold: int) -> None:
        super().__init__(
            f"Quality score ({score}) is below threshold ({threshold}). Feedback: {feedback}"
        )
        self.score = score
        self.feedback = feedback
        self.threshold = threshold
