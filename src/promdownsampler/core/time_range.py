"""Time range construction for collection runs."""

from datetime import datetime, timedelta, timezone

from promdownsampler.core.models import EPOCH, TimeRange

DEFAULT_STEP = timedelta(minutes=1)

# Trimmed from the end of the range so the query does not pick up the
# sample sitting exactly on the next bucket boundary.
END_SHRINK = timedelta(seconds=1)


def truncate(moment: datetime, interval: timedelta) -> datetime:
    """Round a moment down to a multiple of interval since the Unix epoch."""
    if interval <= timedelta(0):
        raise ValueError(f"interval must be positive, got {interval}")
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    elapsed = moment - EPOCH
    return EPOCH + (elapsed - elapsed % interval)


def collection_range(
    now: datetime,
    interval: timedelta,
    step: timedelta = DEFAULT_STEP,
) -> TimeRange:
    """Build the range covering the last complete interval before now.

    Args:
        now: Current time.
        interval: Collection interval, also the bucket width.
        step: Query resolution (default: one minute).

    Returns:
        TimeRange from the start of the previous interval to one second
        before the start of the current one.
    """
    start = truncate(now - interval, interval)
    return TimeRange(start=start, end=start + interval - END_SHRINK, step=step)
