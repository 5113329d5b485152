import math
import threading

import pytest

from ecosphere.noise import MeteredNoiseLevel, StaticNoiseLevel, decibels_to_intensity


@pytest.mark.parametrize(
    "decibels, expected",
    [(0.0, 100.0), (-20.0, 10.0), (-40.0, 1.0), (-160.0, 1e-6)],
)
def test_decibels_to_intensity(decibels, expected):
    assert decibels_to_intensity(decibels) == pytest.approx(expected)


def test_metered_level_starts_empty_and_tracks_latest():
    level = MeteredNoiseLevel()
    assert level.current() is None

    assert level.update_decibels(-20.0) == pytest.approx(10.0)
    level.update_decibels(-40.0)
    assert level.current() == pytest.approx(1.0)

    level.reset()
    assert level.current() is None


@pytest.mark.parametrize("bad", [math.nan, math.inf, -math.inf])
def test_metered_level_rejects_non_finite(bad):
    level = MeteredNoiseLevel()
    level.update_decibels(0.0)
    with pytest.raises(ValueError):
        level.update_decibels(bad)
    assert level.current() == pytest.approx(100.0)


def test_metered_level_concurrent_updates():
    level = MeteredNoiseLevel()

    def writer():
        for _ in range(200):
            level.update_decibels(-20.0)

    threads = [threading.Thread(target=writer) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert level.current() == pytest.approx(10.0)


def test_static_level():
    assert StaticNoiseLevel(3.5).current() == 3.5
    assert StaticNoiseLevel(None).current() is None
