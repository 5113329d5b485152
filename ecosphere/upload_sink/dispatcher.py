"""Fire-and-forget delivery of cycle payloads to an upload sink."""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor

from ecosphere.domain import DrainedBatch, EnvironmentalRecord
from ecosphere.errors import UploadFailed
from ecosphere.upload_sink.base import UploadSink, build_upload_payload
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="upload_sink/dispatcher")


class UploadDispatcher:
    """Hand payloads to a sink on a single background worker.

    A failed upload is logged and dropped: the batch has already left the
    sample store and is not restored.
    """

    def __init__(self, sink: UploadSink) -> None:
        self.sink = sink
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="upload")

    def _deliver(self, batch: DrainedBatch, record: EnvironmentalRecord) -> bool:
        payload = build_upload_payload(batch, record)
        try:
            self.sink.upload(payload)
        except UploadFailed as exc:
            logger.warning(
                "Upload failed; batch discarded",
                extra={"sink": self.sink.name, "batch_size": len(batch), "error": str(exc)},
            )
            return False
        except Exception:
            logger.exception("Unexpected upload error; batch discarded", extra={"sink": self.sink.name})
            return False
        return True

    def submit(self, batch: DrainedBatch, record: EnvironmentalRecord) -> Future:
        """Schedule delivery and return immediately; the future resolves to True on success."""
        return self._executor.submit(self._deliver, batch, record)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
