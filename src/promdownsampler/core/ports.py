"""Port interfaces for the metrics source and the output publisher.

The collection pipeline depends only on these protocols, not on the
HTTP client or the filesystem.
"""

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from promdownsampler.core.models import RunOutput, SeriesResult, TimeRange


@runtime_checkable
class MetricsSourcePort(Protocol):
    """Port for reading raw samples from a metrics source.

    Examples: PrometheusSource, InMemoryMetricsSource.
    """

    async def list_series_names(self) -> Sequence[str]:
        """List every metric name known to the source.

        Raises:
            DiscoveryError: If the names could not be listed.
        """
        ...

    async def query_range(
        self, selector: str, time_range: TimeRange
    ) -> Sequence[SeriesResult]:
        """Fetch raw samples of every series matching selector.

        Returns:
            One SeriesResult per matching label set.

        Raises:
            QueryError: If the query failed.
            ShapeMismatchError: If the response was not a series matrix.
        """
        ...


@runtime_checkable
class OutputPublisherPort(Protocol):
    """Port for publishing the output of a collection run."""

    async def publish(self, output: RunOutput) -> int:
        """Publish a complete snapshot, replacing the previous one.

        Returns:
            Number of points written.

        Raises:
            PublishError: If the snapshot could not be published.
        """
        ...
