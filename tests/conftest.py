"""Shared test fixtures for all test modules."""

from datetime import datetime
from pathlib import Path

import pytest
from tests.helpers import INTERVAL, NOW, RecordingPublisher, TrackingSource

from promdownsampler.core.models import RawSample, TimeRange
from promdownsampler.core.time_range import collection_range


@pytest.fixture
def now() -> datetime:
    """Fixed current time for collection runs."""
    return NOW


@pytest.fixture
def time_range() -> TimeRange:
    """Range a run started at NOW collects."""
    return collection_range(NOW, INTERVAL)


@pytest.fixture
def minute_samples(time_range: TimeRange):
    """Factory for one sample per minute inside the collected range."""

    def _samples(*values: float) -> list[RawSample]:
        return [
            RawSample(timestamp=time_range.start_ms + i * 60_000, value=value)
            for i, value in enumerate(values)
        ]

    return _samples


@pytest.fixture
def source() -> TrackingSource:
    """Empty tracking source."""
    return TrackingSource()


@pytest.fixture
def publisher() -> RecordingPublisher:
    """Publisher recording outputs in memory."""
    return RecordingPublisher()


@pytest.fixture
def output_path(tmp_path: Path) -> Path:
    """Provide a temporary path for the published output file."""
    return tmp_path / "downsample_output.txt"
