"""In-memory metrics source."""

from collections.abc import Iterable, Mapping, Sequence

from promdownsampler.core.encoding.exposition import (
    base_metric_name,
    format_series_identifier,
)
from promdownsampler.core.errors import DiscoveryError, QueryError
from promdownsampler.core.models import RawSample, SeriesResult, TimeRange


class InMemoryMetricsSource:
    """In-memory implementation of MetricsSourcePort.

    Holds series in a dict. Suitable for testing and for dry runs
    where no Prometheus server is available.
    """

    def __init__(self) -> None:
        self._series: dict[str, list[RawSample]] = {}
        self._failing: set[str] = set()
        self._discovery_failure: str | None = None

    def add_series(
        self,
        name: str,
        samples: Iterable[RawSample],
        labels: Mapping[str, str] | None = None,
    ) -> str:
        """Add samples to a series, creating it if needed.

        Returns:
            Identifier of the series.
        """
        identifier = format_series_identifier(name, labels)
        self._series.setdefault(identifier, []).extend(samples)
        return identifier

    def fail_query(self, selector: str) -> None:
        """Make every query for selector raise QueryError."""
        self._failing.add(selector)

    def fail_discovery(self, message: str = "source unavailable") -> None:
        """Make list_series_names() raise DiscoveryError."""
        self._discovery_failure = message

    async def list_series_names(self) -> Sequence[str]:
        """List distinct metric names, sorted."""
        if self._discovery_failure is not None:
            raise DiscoveryError(self._discovery_failure)
        return sorted({base_metric_name(identifier) for identifier in self._series})

    async def query_range(
        self, selector: str, time_range: TimeRange
    ) -> Sequence[SeriesResult]:
        """Return series named selector, limited to samples inside time_range."""
        if selector in self._failing:
            raise QueryError(f"query for {selector} failed")
        start, end = time_range.start_ms, time_range.end_ms
        return [
            SeriesResult(
                identifier=identifier,
                samples=tuple(
                    sorted(
                        (s for s in samples if start <= s.timestamp <= end),
                        key=lambda s: s.timestamp,
                    )
                ),
            )
            for identifier, samples in self._series.items()
            if base_metric_name(identifier) == selector
        ]
