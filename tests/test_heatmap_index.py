import datetime as dt
import threading

from ecosphere.domain import ScoreBreakdown, ScoredPoint
from ecosphere.heatmap_index import HeatmapIndex


def make_point(lat: float, score: float = 0.5) -> ScoredPoint:
    breakdown = ScoreBreakdown(
        aqi=0.0, noise=0.0, temperature=0.0, green_space_distance=0.0,
        aqi_term=0.0, green_space_term=0.5, temperature_term=0.0, noise_term=0.0,
    )
    return ScoredPoint(
        latitude=lat,
        longitude=0.0,
        score=score,
        breakdown=breakdown,
        created_at=dt.datetime(2024, 1, 1, tzinfo=dt.timezone.utc),
    )


def test_snapshot_is_idempotent_without_appends():
    index = HeatmapIndex()
    index.append(make_point(1.0))
    index.append(make_point(2.0))
    assert index.snapshot() == index.snapshot()


def test_snapshot_is_a_copy():
    index = HeatmapIndex()
    index.append(make_point(1.0))
    snap = index.snapshot()
    index.append(make_point(2.0))
    assert len(snap) == 1
    assert isinstance(snap, tuple)
    assert len(index.snapshot()) == 2


def test_latest_and_clear():
    index = HeatmapIndex()
    assert index.latest() is None
    index.append(make_point(1.0))
    index.append(make_point(2.0))
    assert index.latest().latitude == 2.0
    index.clear()
    assert len(index) == 0


def test_concurrent_appends_are_all_kept():
    index = HeatmapIndex()

    def writer(base):
        for i in range(250):
            index.append(make_point(base + i))

    threads = [threading.Thread(target=writer, args=(n * 1000,)) for n in range(4)]
    for t in threads:
        t.start()
    for _ in range(50):
        index.snapshot()
    for t in threads:
        t.join()
    assert len(index.snapshot()) == 1000
