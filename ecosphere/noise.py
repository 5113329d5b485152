"""Ambient noise level accessors fed by the audio subsystem."""

from __future__ import annotations

import math
import threading
from typing import Optional, Protocol


def decibels_to_intensity(decibels: float) -> float:
    """Convert an average power reading (dBFS) into the 0-100 intensity scale."""
    return math.pow(10.0, decibels / 20.0) * 100.0


class NoiseLevelAccessor(Protocol):
    """Anything that can report the current ambient noise level."""

    def current(self) -> Optional[float]:
        """Return the latest level, or None when nothing has been measured yet."""
        ...


class MeteredNoiseLevel(NoiseLevelAccessor):
    """Thread-safe holder for the most recent metered level.

    The audio collaborator pushes raw decibel readings; the fetcher reads the
    converted intensity from a worker thread.
    """

    def __init__(self) -> None:
        self._intensity: Optional[float] = None
        self._lock = threading.Lock()

    def update_decibels(self, decibels: float) -> float:
        """Record a new dBFS reading and return the derived intensity."""
        if not math.isfinite(decibels):
            raise ValueError(f"Decibel reading must be finite, got {decibels!r}")
        intensity = decibels_to_intensity(decibels)
        with self._lock:
            self._intensity = intensity
        return intensity

    def current(self) -> Optional[float]:
        with self._lock:
            return self._intensity

    def reset(self) -> None:
        with self._lock:
            self._intensity = None


class StaticNoiseLevel(NoiseLevelAccessor):
    """Fixed level, for tests and devices without a microphone."""

    def __init__(self, level: Optional[float]) -> None:
        self.level = level

    def current(self) -> Optional[float]:
        return self.level
