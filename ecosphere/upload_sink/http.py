"""HTTP upload sink posting JSON batches to a REST endpoint (e.g. a Firebase realtime DB path)."""

import requests

from ecosphere.errors import UploadFailed
from ecosphere.upload_sink.base import UploadPayload, UploadSink
from utils.logging_utils import get_tagged_logger, mask_url

logger = get_tagged_logger(__name__, tag="upload_sink/http")

REQUEST_TIMEOUT_SECONDS = 10


class HttpUploadSink(UploadSink):
    """POST each payload as JSON; any transport or HTTP error is an UploadFailed."""

    name = "http"

    def __init__(self, url: str, *, session: requests.Session | None = None) -> None:
        if not url:
            raise ValueError("upload_url must be set for the http upload sink")
        self.url = url
        self.session = session or requests.Session()

    def upload(self, payload: UploadPayload) -> None:
        try:
            resp = self.session.post(self.url, json=payload, timeout=REQUEST_TIMEOUT_SECONDS)
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise UploadFailed(f"POST {mask_url(self.url)} failed: {exc}") from exc
        logger.info(
            "Uploaded location batch with environmental data",
            extra={"url": mask_url(self.url), "status_code": resp.status_code},
        )
