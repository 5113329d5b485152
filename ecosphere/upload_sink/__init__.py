"""Upload/persistence backends for drained sample batches."""

from .base import UploadPayload, UploadSink, build_upload_payload
from .dispatcher import UploadDispatcher
from .factory import build_upload_sink
from .http import HttpUploadSink
from .memory import InMemoryUploadSink
from .redis import RedisUploadSink

__all__ = [
    "UploadPayload",
    "UploadSink",
    "build_upload_payload",
    "UploadDispatcher",
    "build_upload_sink",
    "HttpUploadSink",
    "InMemoryUploadSink",
    "RedisUploadSink",
]
