"""Bounded-concurrency query executor."""

import asyncio
import logging
from collections.abc import Sequence

from promdownsampler.core.errors import QueryError, ShapeMismatchError
from promdownsampler.core.models import SeriesResult, TimeRange
from promdownsampler.core.ports import MetricsSourcePort

logger = logging.getLogger(__name__)


def _is_matrix(result: object) -> bool:
    if isinstance(result, (str, bytes)) or not isinstance(result, Sequence):
        return False
    return all(isinstance(series, SeriesResult) for series in result)


class QueryExecutor:
    """Issues range queries with at most max_concurrency in flight.

    A permit is held only while the source call is outstanding. Failed,
    timed out or malformed queries yield an empty result for the selector
    instead of raising, so one broken series can't abort a run.
    """

    def __init__(
        self,
        source: MetricsSourcePort,
        max_concurrency: int,
        query_timeout: float | None = None,
    ) -> None:
        """Initialize the executor.

        Args:
            source: Metrics source to query.
            max_concurrency: Maximum number of queries in flight.
            query_timeout: Deadline per query in seconds, None for no deadline.
        """
        if max_concurrency < 1:
            raise ValueError(f"max_concurrency must be >= 1, got {max_concurrency}")
        self._source = source
        self._max_concurrency = max_concurrency
        self._query_timeout = query_timeout
        self._semaphore: asyncio.Semaphore | None = None

    @property
    def max_concurrency(self) -> int:
        return self._max_concurrency

    def _get_semaphore(self) -> asyncio.Semaphore:
        """Get or create the semaphore (lazy to avoid event loop issues)."""
        if self._semaphore is None:
            self._semaphore = asyncio.Semaphore(self._max_concurrency)
        return self._semaphore

    async def query(self, selector: str, time_range: TimeRange) -> list[SeriesResult]:
        """Query one selector.

        Returns:
            One SeriesResult per label set, or a single empty result for
            selector if the query failed.
        """
        async with self._get_semaphore():
            try:
                result = await asyncio.wait_for(
                    self._source.query_range(selector, time_range),
                    timeout=self._query_timeout,
                )
            except TimeoutError:
                logger.error(
                    "Get metric timed out",
                    extra={"target_label": selector, "timeout": self._query_timeout},
                )
                return [SeriesResult(identifier=selector)]
            except ShapeMismatchError as exc:
                logger.warning(
                    "Query result not type of matrix",
                    extra={"target_label": selector, "error": str(exc)},
                )
                return [SeriesResult(identifier=selector)]
            except QueryError as exc:
                logger.error(
                    "Get metric error",
                    extra={"target_label": selector, "error": str(exc)},
                )
                return [SeriesResult(identifier=selector)]
            except Exception:
                logger.exception(
                    "Get metric crashed", extra={"target_label": selector}
                )
                return [SeriesResult(identifier=selector)]

        if not _is_matrix(result):
            logger.warning(
                "Query result not type of matrix", extra={"target_label": selector}
            )
            return [SeriesResult(identifier=selector)]
        return list(result)
