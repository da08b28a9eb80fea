"""One collection run: discover, query, downsample, publish."""

import asyncio
import logging
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta, timezone

from promdownsampler.adapters.process import log_memory_usage
from promdownsampler.core.bucketing import downsample
from promdownsampler.core.encoding.exposition import base_metric_name
from promdownsampler.core.models import RunOutput, RunReport, SeriesResult, TimeRange
from promdownsampler.core.ports import MetricsSourcePort, OutputPublisherPort
from promdownsampler.core.time_range import collection_range
from promdownsampler.service.executor import QueryExecutor

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def build_run_output(results: Iterable[SeriesResult], interval_ms: int) -> RunOutput:
    """Downsample every series and group the points by base metric name.

    Series without samples are skipped, so no metric maps to an empty list.
    """
    output: RunOutput = {}
    for series in results:
        if not series.samples:
            continue
        points = downsample(series, interval_ms)
        output.setdefault(base_metric_name(series.identifier), []).extend(points)
    return output


class CollectionRun:
    """Runs the collection pipeline against a source and a publisher.

    Raises DiscoveryError or PublishError (both CollectionError) when the
    run can't complete; per-series query failures are absorbed by the
    executor.
    """

    def __init__(
        self,
        source: MetricsSourcePort,
        executor: QueryExecutor,
        publisher: OutputPublisherPort,
        interval: timedelta,
        clock: Clock = utcnow,
    ) -> None:
        self._source = source
        self._executor = executor
        self._publisher = publisher
        self._interval = interval
        self._interval_ms = interval // timedelta(milliseconds=1)
        self._clock = clock

    async def run(self) -> RunReport:
        """Collect the last complete interval before now."""
        return await self.execute(collection_range(self._clock(), self._interval))

    async def execute(self, time_range: TimeRange) -> RunReport:
        """Collect, downsample and publish samples covering time_range."""
        report = RunReport(started_at=self._clock())
        logger.info(
            "Start process", extra={"start_time": report.started_at.isoformat()}
        )
        log_memory_usage("start")

        names = list(dict.fromkeys(await self._source.list_series_names()))
        report.series_names = len(names)
        logger.debug("Downloaded labels", extra={"number_labels": len(names)})
        if not names:
            logger.warning("No series discovered, skipping run")
            return self._finish(report)

        logger.debug("Collect data for time", extra={"timerange": str(time_range)})
        async with asyncio.TaskGroup() as group:
            tasks = [
                group.create_task(self._executor.query(name, time_range))
                for name in names
            ]

        results = [series for task in tasks for series in task.result()]
        output = build_run_output(results, self._interval_ms)
        report.series_with_data = sum(1 for series in results if series.samples)
        logger.info(
            "Metrics downloaded",
            extra={
                "number_metrics": len(output),
                "time_elapsed": str(self._clock() - report.started_at),
            },
        )
        log_memory_usage("downloaded")

        if not output:
            logger.warning("No points produced, keeping previous output")
            return self._finish(report)

        report.points_written = await self._publisher.publish(output)
        report.published = True
        log_memory_usage("published")
        return self._finish(report)

    def _finish(self, report: RunReport) -> RunReport:
        report.finished_at = self._clock()
        logger.info(
            "Finish process",
            extra={
                "end_time": report.finished_at.isoformat(),
                "time_elapsed": str(report.elapsed),
                "published": report.published,
            },
        )
        return report
