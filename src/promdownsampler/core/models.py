"""Core domain models for collection runs."""

import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass(frozen=True)
class TimeRange:
    """Range covered by one collection run.

    Attributes:
        start: Inclusive start of the range (UTC).
        end: Inclusive end of the range (UTC).
        step: Resolution requested from the metrics source.
    """

    start: datetime
    end: datetime
    step: timedelta

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError(f"start {self.start} is after end {self.end}")
        if self.step <= timedelta(0):
            raise ValueError(f"step must be positive, got {self.step}")

    @property
    def start_ms(self) -> int:
        return _to_millis(self.start)

    @property
    def end_ms(self) -> int:
        return _to_millis(self.end)

    def __str__(self) -> str:
        return f"{self.start} to {self.end} with {self.step} step."


@dataclass(frozen=True)
class RawSample:
    """A single raw sample as returned by the metrics source.

    Attributes:
        timestamp: Unix timestamp in milliseconds.
        value: Sample value.
    """

    timestamp: int
    value: float


@dataclass(frozen=True)
class SeriesResult:
    """Raw samples of one series (metric name plus label set).

    A failed query is represented by a result with no samples.

    Attributes:
        identifier: Series identifier, e.g. up{job="node"}.
        samples: Samples ordered by timestamp.
    """

    identifier: str
    samples: tuple[RawSample, ...] = ()


@dataclass(frozen=True)
class DownsampledPoint:
    """Mean value of one series within one bucket.

    Attributes:
        identifier: Series identifier the point belongs to.
        value: Arithmetic mean of the samples in the bucket.
        timestamp: Bucket start, Unix timestamp in milliseconds.
    """

    identifier: str
    value: float
    timestamp: int


# Base metric name -> downsampled points of every series with that name.
RunOutput = dict[str, list[DownsampledPoint]]


@dataclass
class RunReport:
    """Summary of a finished collection run."""

    started_at: datetime
    finished_at: datetime | None = None
    series_names: int = 0
    series_with_data: int = 0
    points_written: int = 0
    published: bool = False

    @property
    def elapsed(self) -> timedelta | None:
        if self.finished_at is None:
            return None
        return self.finished_at - self.started_at


@dataclass
class RunState:
    """Process-wide record of whether a collection run is in progress.

    All mutations go through try_begin() and finish(), which take the
    same lock, so only one writer touches the state at a time.
    """

    active: bool = False
    started_at: datetime | None = None
    _lock: threading.Lock = field(
        default_factory=threading.Lock, repr=False, compare=False
    )

    def try_begin(self, now: datetime) -> bool:
        """Mark a run as started unless one is already active.

        Returns:
            True if the caller now owns the run, False if a run was active.
        """
        with self._lock:
            if self.active:
                return False
            self.active = True
            self.started_at = now
            return True

    def finish(self) -> None:
        """Mark the current run as finished."""
        with self._lock:
            self.active = False


def _to_millis(moment: datetime) -> int:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return (moment - EPOCH) // timedelta(milliseconds=1)
