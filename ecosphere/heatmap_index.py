"""Append-only collection of scored points read by the rendering layer."""

from __future__ import annotations

import threading
from typing import List, Optional, Tuple

from ecosphere.domain import ScoredPoint


class HeatmapIndex:
    """Session-scoped heatmap points.

    Writers append under a lock; readers get an immutable tuple copy so
    rendering never iterates a list that is still growing.
    """

    def __init__(self) -> None:
        self._points: List[ScoredPoint] = []
        self._lock = threading.Lock()

    def append(self, point: ScoredPoint) -> None:
        with self._lock:
            self._points.append(point)

    def snapshot(self) -> Tuple[ScoredPoint, ...]:
        """Return a copy of every point appended so far."""
        with self._lock:
            return tuple(self._points)

    def latest(self) -> Optional[ScoredPoint]:
        with self._lock:
            return self._points[-1] if self._points else None

    def clear(self) -> None:
        """Drop all points (session reset)."""
        with self._lock:
            self._points.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._points)
