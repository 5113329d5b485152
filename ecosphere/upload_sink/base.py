"""Shared protocol and payload shape for upload/persistence backends."""

from __future__ import annotations

from typing import Any, Dict, List, Protocol

from ecosphere.domain import DrainedBatch, EnvironmentalRecord

UploadPayload = Dict[str, List[Dict[str, Any]]]


def build_upload_payload(batch: DrainedBatch, record: EnvironmentalRecord) -> UploadPayload:
    """All drained samples followed by one entry carrying the cycle's record."""
    locations: List[Dict[str, Any]] = [sample.to_upload_dict() for sample in batch.samples]
    locations.append({"environmentData": record.to_dict()})
    return {"locations": locations}


class UploadSink(Protocol):
    """Protocol for upload backends.

    Implementations raise UploadFailed when the batch could not be delivered.
    """

    name: str

    def upload(self, payload: UploadPayload) -> None:
        """Deliver one cycle's payload."""
