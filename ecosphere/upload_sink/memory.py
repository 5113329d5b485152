"""In-memory upload sink, intended for development and tests."""

import threading
from typing import List

from ecosphere.upload_sink.base import UploadPayload, UploadSink
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="upload_sink/memory")


class InMemoryUploadSink(UploadSink):
    """Thread-safe list of delivered payloads (dev/test)."""

    name = "memory"

    def __init__(self, max_payloads: int | None = 1000) -> None:
        self.max_payloads = max_payloads
        self._payloads: List[UploadPayload] = []
        self._lock = threading.Lock()

    def upload(self, payload: UploadPayload) -> None:
        with self._lock:
            self._payloads.append(payload)
            if self.max_payloads is not None and len(self._payloads) > self.max_payloads:
                del self._payloads[: len(self._payloads) - self.max_payloads]
        logger.debug("Stored upload payload", extra={"locations": len(payload.get("locations", []))})

    @property
    def payloads(self) -> List[UploadPayload]:
        with self._lock:
            return list(self._payloads)

    def clear(self) -> None:
        with self._lock:
            self._payloads.clear()
