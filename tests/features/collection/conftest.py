"""BDD step definitions for collection features."""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Any

import pytest
from pytest_bdd import given, parsers, then, when
from tests.helpers import TrackingSource

from promdownsampler.adapters.output.atomic_file import AtomicFilePublisher
from promdownsampler.core.models import (
    EPOCH,
    RawSample,
    RunOutput,
    RunReport,
    TimeRange,
)
from promdownsampler.service.executor import QueryExecutor
from promdownsampler.service.run import CollectionRun
from promdownsampler.service.scheduler import Scheduler


class CountingFilePublisher(AtomicFilePublisher):
    """AtomicFilePublisher that counts completed writes."""

    def __init__(self, path: Path) -> None:
        super().__init__(path, fsync=False)
        self.writes = 0

    def publish_sync(self, output: RunOutput) -> int:
        written = super().publish_sync(output)
        self.writes += 1
        return written


@dataclass
class CollectionScenarioContext:
    """State shared between the steps of one scenario."""

    source: TrackingSource = field(default_factory=TrackingSource)
    publisher: CountingFilePublisher | None = None
    scheduler: Scheduler | None = None
    report: RunReport | None = None
    hold_queries: bool = False
    skipped_tick: bool = False


def run_async(coro: Any) -> Any:
    """Run a coroutine synchronously."""
    return asyncio.run(coro)


def _time_range(start_ms: int, end_ms: int) -> TimeRange:
    return TimeRange(
        start=EPOCH + timedelta(milliseconds=start_ms),
        end=EPOCH + timedelta(milliseconds=end_ms),
        step=timedelta(minutes=1),
    )


def _scheduler(
    ctx: CollectionScenarioContext, time_range: TimeRange, interval_ms: int
) -> Scheduler:
    assert ctx.publisher is not None
    interval = timedelta(milliseconds=interval_ms)
    run = CollectionRun(
        source=ctx.source,
        executor=QueryExecutor(ctx.source, 4),
        publisher=ctx.publisher,
        interval=interval,
    )
    return Scheduler(lambda: run.execute(time_range), interval)


async def _single_run(
    ctx: CollectionScenarioContext, time_range: TimeRange, interval_ms: int
) -> None:
    ctx.scheduler = _scheduler(ctx, time_range, interval_ms)
    ctx.scheduler.tick()
    ctx.report = await ctx.scheduler.wait_idle()


async def _overlapping_ticks(ctx: CollectionScenarioContext) -> None:
    ctx.scheduler = _scheduler(ctx, _time_range(0, 299_000), 300_000)
    ctx.source.gate = asyncio.Event()
    ctx.scheduler.tick()
    while not ctx.source.in_flight:
        await asyncio.sleep(0)
    ctx.skipped_tick = ctx.scheduler.tick() is None
    ctx.source.gate.set()
    ctx.report = await ctx.scheduler.wait_idle()


def _output_lines(ctx: CollectionScenarioContext) -> list[str]:
    assert ctx.publisher is not None
    return ctx.publisher.path.read_text().splitlines()


@pytest.fixture
def ctx() -> CollectionScenarioContext:
    """Fresh scenario context for each test."""
    return CollectionScenarioContext()


# === Background Steps ===
@given("an in-memory metrics source")
def step_source(ctx: CollectionScenarioContext) -> None:
    ctx.source = TrackingSource()


@given("an output file publisher")
def step_publisher(ctx: CollectionScenarioContext, tmp_path: Path) -> None:
    ctx.publisher = CountingFilePublisher(tmp_path / "downsample_output.txt")


# === Source Steps ===
@given(
    parsers.parse(
        'series "{name}" with {count:d} samples of value {value:g} '
        "every {step_ms:d} ms from {start_ms:d}"
    )
)
def step_series(
    ctx: CollectionScenarioContext,
    name: str,
    count: int,
    value: float,
    step_ms: int,
    start_ms: int,
) -> None:
    ctx.source.add_series(
        name,
        [
            RawSample(timestamp=start_ms + i * step_ms, value=value)
            for i in range(count)
        ],
    )


@given(parsers.parse('queries for "{name}" fail'))
def step_failing_query(ctx: CollectionScenarioContext, name: str) -> None:
    ctx.source.fail_query(name)


@given("queries are held open until released")
def step_hold_queries(ctx: CollectionScenarioContext) -> None:
    ctx.hold_queries = True


# === Run Steps ===
@when(
    parsers.parse(
        "a collection run covers {start_ms:d} to {end_ms:d} ms "
        "with a {interval_ms:d} ms interval"
    )
)
def step_run(
    ctx: CollectionScenarioContext, start_ms: int, end_ms: int, interval_ms: int
) -> None:
    run_async(_single_run(ctx, _time_range(start_ms, end_ms), interval_ms))


@when("a second tick fires while the first run is still collecting")
def step_overlapping_ticks(ctx: CollectionScenarioContext) -> None:
    assert ctx.hold_queries
    run_async(_overlapping_ticks(ctx))


# === Outcome Steps ===
@then(parsers.parse("the run publishes {count:d} points"))
def step_points_published(ctx: CollectionScenarioContext, count: int) -> None:
    assert ctx.report is not None
    assert ctx.report.published is True
    assert ctx.report.points_written == count


@then(parsers.parse('the output contains the line "{line}"'))
def step_output_line(ctx: CollectionScenarioContext, line: str) -> None:
    assert line in _output_lines(ctx)


@then(parsers.parse('the output has no series named "{name}"'))
def step_series_absent(ctx: CollectionScenarioContext, name: str) -> None:
    assert ctx.publisher is not None
    assert name not in ctx.publisher.path.read_text()


@then("the second tick is skipped with a warning")
def step_tick_skipped(
    ctx: CollectionScenarioContext, caplog: pytest.LogCaptureFixture
) -> None:
    assert ctx.skipped_tick is True
    assert any(
        record.levelno == logging.WARNING
        and record.getMessage() == "Job still running. Will skip this time."
        for record in caplog.records
    )


@then("the output file is written once")
def step_written_once(ctx: CollectionScenarioContext) -> None:
    assert ctx.publisher is not None
    assert ctx.publisher.writes == 1
    assert ctx.publisher.path.exists()


@then("no queries are issued")
def step_no_queries(ctx: CollectionScenarioContext) -> None:
    assert ctx.source.discovery_calls == 1
    assert ctx.source.queries == []


@then("no output file is written")
def step_no_output(ctx: CollectionScenarioContext) -> None:
    assert ctx.publisher is not None
    assert ctx.publisher.writes == 0
    assert not ctx.publisher.path.exists()


@then("the run state is idle")
def step_state_idle(ctx: CollectionScenarioContext) -> None:
    assert ctx.scheduler is not None
    assert ctx.scheduler.state.active is False
    assert ctx.report is not None
    assert ctx.report.published is False
