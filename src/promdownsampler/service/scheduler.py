"""Single-flight periodic scheduler for collection runs."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import timedelta

from promdownsampler.core.errors import CollectionError
from promdownsampler.core.models import RunReport, RunState
from promdownsampler.service.run import Clock, utcnow

logger = logging.getLogger(__name__)

RunFactory = Callable[[], Awaitable[RunReport]]


class Scheduler:
    """Fires a collection run every interval, skipping ticks while one is active.

    Skipped ticks are dropped: they are not queued and not retried. Run
    failures are logged and never stop the loop.
    """

    def __init__(
        self,
        run_factory: RunFactory,
        interval: timedelta,
        state: RunState | None = None,
        clock: Clock = utcnow,
    ) -> None:
        """Initialize the scheduler.

        Args:
            run_factory: Called once per started run; returns the run coroutine.
            interval: Time between ticks.
            state: Shared run state (a fresh one by default).
            clock: Source of the current time.
        """
        if interval <= timedelta(0):
            raise ValueError(f"interval must be positive, got {interval}")
        self._run_factory = run_factory
        self._interval = interval
        self._state = state or RunState()
        self._clock = clock
        self._current: asyncio.Task[RunReport | None] | None = None

    @property
    def state(self) -> RunState:
        return self._state

    def tick(self) -> asyncio.Task[RunReport | None] | None:
        """Start a run unless one is already active.

        Returns:
            The task of the started run, or None if the tick was skipped.
        """
        if not self._state.try_begin(self._clock()):
            last = self._state.started_at
            logger.warning(
                "Job still running. Will skip this time.",
                extra={"last_execution": last.isoformat() if last else ""},
            )
            return None
        self._current = asyncio.create_task(self._guarded_run())
        return self._current

    async def _guarded_run(self) -> RunReport | None:
        try:
            return await self._run_factory()
        except CollectionError as exc:
            logger.error(
                "Collection run failed",
                extra={"error": str(exc), "error_type": type(exc).__name__},
            )
        except Exception:
            logger.exception("Collection run crashed")
        finally:
            self._state.finish()
        return None

    async def wait_idle(self) -> RunReport | None:
        """Wait for the in-flight run, if any, and return its report."""
        if self._current is None:
            return None
        return await self._current

    async def run_forever(self, run_on_start: bool = True) -> None:
        """Tick every interval until cancelled.

        Args:
            run_on_start: Fire the first run immediately instead of after
                one interval.
        """
        if run_on_start:
            self.tick()
        while True:
            await asyncio.sleep(self._interval.total_seconds())
            self.tick()
