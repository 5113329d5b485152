"""Exception taxonomy for the aggregation and scoring engine."""

from __future__ import annotations

from typing import Mapping


class EcoSphereError(Exception):
    """Base class for all service-specific errors."""


class InvalidSample(EcoSphereError, ValueError):
    """Raised when a malformed coordinate is offered to the sample store."""


class SourceError(EcoSphereError):
    """A single environmental source failed; recovered inside the fetcher."""

    def __init__(self, source: str, reason: str) -> None:
        super().__init__(f"{source}: {reason}")
        self.source = source
        self.reason = reason


class SourceTimeout(SourceError):
    """A single environmental source did not settle within its timeout."""

    def __init__(self, source: str, timeout_seconds: float) -> None:
        super().__init__(source, f"timed out after {timeout_seconds:.1f}s")
        self.timeout_seconds = timeout_seconds


class AggregationFailed(EcoSphereError):
    """Every environmental source failed for the requested coordinate."""

    def __init__(self, failures: Mapping[str, str]) -> None:
        self.failures = dict(failures)
        detail = ", ".join(f"{name}={reason}" for name, reason in sorted(self.failures.items()))
        super().__init__(f"All environmental sources failed ({detail})")


class UploadFailed(EcoSphereError):
    """The upload collaborator rejected or could not receive a batch."""
