"""Test doubles and constants shared by unit, integration and BDD tests."""

import asyncio
from collections.abc import Sequence
from datetime import datetime, timedelta, timezone

from promdownsampler.adapters.source.in_memory import InMemoryMetricsSource
from promdownsampler.core.models import RunOutput, SeriesResult, TimeRange

INTERVAL = timedelta(minutes=5)
INTERVAL_MS = 300_000
NOW = datetime(2026, 1, 1, 0, 7, 30, tzinfo=timezone.utc)


class TrackingSource(InMemoryMetricsSource):
    """In-memory source that records concurrency and can hold queries open."""

    def __init__(self, delay: float = 0.0) -> None:
        super().__init__()
        self.delay = delay
        self.gate: asyncio.Event | None = None
        self.in_flight = 0
        self.max_in_flight = 0
        self.queries: list[str] = []
        self.discovery_calls = 0

    async def list_series_names(self) -> Sequence[str]:
        self.discovery_calls += 1
        return await super().list_series_names()

    async def query_range(
        self, selector: str, time_range: TimeRange
    ) -> Sequence[SeriesResult]:
        self.queries.append(selector)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.gate is not None:
                await self.gate.wait()
            await asyncio.sleep(self.delay)
            return await super().query_range(selector, time_range)
        finally:
            self.in_flight -= 1


class RecordingPublisher:
    """OutputPublisherPort that keeps every published output in memory."""

    def __init__(self) -> None:
        self.outputs: list[RunOutput] = []

    async def publish(self, output: RunOutput) -> int:
        self.outputs.append(output)
        return sum(len(points) for points in output.values())
