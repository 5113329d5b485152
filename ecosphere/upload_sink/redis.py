"""Redis-backed upload sink appending JSON payloads to a list."""

import json

import redis

from ecosphere.errors import UploadFailed
from ecosphere.upload_sink.base import UploadPayload, UploadSink
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="upload_sink/redis")


class RedisUploadSink(UploadSink):
    """RPUSH each payload onto `key`; a downstream worker consumes the list."""

    name = "redis"

    def __init__(self, client, key: str = "ecosphere:uploads", max_length: int | None = None) -> None:
        self.client = client
        self.key = key
        self.max_length = max_length

    @classmethod
    def from_url(cls, url: str, **kwargs) -> "RedisUploadSink":
        """Connect with redis-py and verify the server answers."""
        client = redis.Redis.from_url(url)
        client.ping()
        return cls(client, **kwargs)

    def upload(self, payload: UploadPayload) -> None:
        try:
            body = json.dumps(payload)
        except (TypeError, ValueError) as exc:
            raise UploadFailed(f"Payload is not JSON-serializable: {exc}") from exc
        try:
            length = self.client.rpush(self.key, body)
            if self.max_length is not None:
                self.client.ltrim(self.key, -self.max_length, -1)
        except redis.RedisError as exc:
            raise UploadFailed(f"RPUSH {self.key} failed: {exc}") from exc
        logger.debug("Queued upload payload in Redis", extra={"key": self.key, "queue_length": length})
