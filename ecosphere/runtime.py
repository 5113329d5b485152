"""Wire the store, fetcher, scheduler and sinks from settings."""

from __future__ import annotations

from dataclasses import dataclass

from ecosphere import config
from ecosphere.cycle_scheduler import CycleScheduler
from ecosphere.data_sources import build_data_source
from ecosphere.data_sources.base import EnvironmentDataSource
from ecosphere.environment_fetcher import EnvironmentFetcher
from ecosphere.heatmap_index import HeatmapIndex
from ecosphere.noise import MeteredNoiseLevel
from ecosphere.sample_store import SampleStore
from ecosphere.upload_sink import UploadDispatcher, UploadSink, build_upload_sink
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="runtime")


@dataclass
class Runtime:
    """Everything one running session owns."""
    settings: config.Settings
    store: SampleStore
    noise: MeteredNoiseLevel
    heatmap: HeatmapIndex
    fetcher: EnvironmentFetcher
    uploader: UploadDispatcher
    scheduler: CycleScheduler

    def reset_session(self) -> int:
        """Start a fresh heatmap session and return how many points were dropped.

        Pending samples stay in the batch for the next cycle.
        """
        dropped = len(self.heatmap)
        self.heatmap.clear()
        self.noise.reset()
        logger.info("Session reset", extra={"points_dropped": dropped})
        return dropped

    def shutdown(self) -> None:
        """Stop the timer, then drain uploads and in-flight source calls."""
        logger.info("Shutting down runtime")
        self.scheduler.stop(wait=True)
        self.uploader.shutdown(wait=True)
        self.fetcher.shutdown(wait_for_running=True)


def build_runtime(
    settings: config.Settings | None = None,
    *,
    data_source: EnvironmentDataSource | None = None,
    upload_sink: UploadSink | None = None,
) -> Runtime:
    """Build a runtime; `data_source` and `upload_sink` override the configured ones."""
    settings = settings or config.settings
    store = SampleStore(device_id=settings.device_id)
    noise = MeteredNoiseLevel()
    heatmap = HeatmapIndex()
    fetcher = EnvironmentFetcher(
        data_source or build_data_source(settings),
        noise,
        timeout_seconds=settings.source_timeout_seconds,
        max_workers=settings.fetch_workers,
    )
    uploader = UploadDispatcher(upload_sink or build_upload_sink(settings))
    scheduler = CycleScheduler(
        store,
        fetcher,
        heatmap,
        period_seconds=settings.cycle_period_seconds,
        uploader=uploader,
    )
    return Runtime(
        settings=settings,
        store=store,
        noise=noise,
        heatmap=heatmap,
        fetcher=fetcher,
        uploader=uploader,
        scheduler=scheduler,
    )
