"""Choose the upload backend from configuration."""

from __future__ import annotations

from ecosphere import config
from ecosphere.upload_sink.base import UploadSink
from ecosphere.upload_sink.http import HttpUploadSink
from ecosphere.upload_sink.memory import InMemoryUploadSink
from ecosphere.upload_sink.redis import RedisUploadSink
from utils.logging_utils import get_tagged_logger, mask_url

logger = get_tagged_logger(__name__, tag="upload_sink/factory")


def build_upload_sink(settings: config.Settings | None = None) -> UploadSink:
    """Instantiate the configured upload sink."""
    settings = settings or config.settings
    kind = (settings.upload_sink or "memory").lower()

    if kind == "memory":
        logger.info("Using InMemoryUploadSink")
        return InMemoryUploadSink()

    if kind == "http":
        if not settings.upload_url:
            raise ValueError("upload_url must be set for the http upload sink")
        logger.info("Using HttpUploadSink", extra={"url": mask_url(settings.upload_url)})
        return HttpUploadSink(settings.upload_url)

    if kind == "redis":
        if not settings.upload_redis_url:
            raise ValueError("upload_redis_url must be set for the redis upload sink")
        try:
            sink = RedisUploadSink.from_url(settings.upload_redis_url, key=settings.upload_redis_key)
            logger.info("Using RedisUploadSink", extra={"redis_url": mask_url(settings.upload_redis_url)})
            return sink
        except Exception as exc:  # pragma: no cover - depends on a live server
            logger.warning("Falling back to InMemoryUploadSink (Redis unavailable)", extra={"error": str(exc)})
            return InMemoryUploadSink()

    raise ValueError(f"Unknown upload sink '{kind}'")
