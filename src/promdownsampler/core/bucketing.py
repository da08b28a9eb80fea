"""Downsampling of raw series into fixed-width time buckets."""

import math
from collections import defaultdict

from promdownsampler.core.models import DownsampledPoint, SeriesResult


def bucket_timestamp(timestamp: int, interval_ms: int) -> int:
    """Return the start of the bucket containing timestamp.

    Buckets are aligned to the Unix epoch, so a timestamp that is an exact
    multiple of interval_ms starts its own bucket.
    """
    if interval_ms <= 0:
        raise ValueError(f"interval_ms must be positive, got {interval_ms}")
    return timestamp - (timestamp % interval_ms)


def downsample(series: SeriesResult, interval_ms: int) -> list[DownsampledPoint]:
    """Collapse a series into one averaged point per bucket.

    Args:
        series: Raw samples of a single series.
        interval_ms: Bucket width in milliseconds.

    Returns:
        One DownsampledPoint per non-empty bucket, in no particular order.
        Empty if the series has no samples.
    """
    values_by_bucket: defaultdict[int, list[float]] = defaultdict(list)
    for sample in series.samples:
        values_by_bucket[bucket_timestamp(sample.timestamp, interval_ms)].append(
            sample.value
        )

    # fsum is exact, so the mean does not depend on sample order
    return [
        DownsampledPoint(
            identifier=series.identifier,
            value=math.fsum(values) / len(values),
            timestamp=timestamp,
        )
        for timestamp, values in values_by_bucket.items()
    ]
