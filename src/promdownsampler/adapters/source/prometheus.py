"""Prometheus HTTP API adapter for MetricsSourcePort."""

import logging
from collections.abc import Sequence
from types import TracebackType
from typing import Any

import httpx

from promdownsampler.core.encoding.exposition import format_series_identifier
from promdownsampler.core.errors import DiscoveryError, QueryError, ShapeMismatchError
from promdownsampler.core.models import RawSample, SeriesResult, TimeRange

logger = logging.getLogger(__name__)

METRIC_LABEL = "__name__"
_LABEL_VALUES_PATH = f"/api/v1/label/{METRIC_LABEL}/values"
_QUERY_RANGE_PATH = "/api/v1/query_range"


def _payload_data(response: httpx.Response) -> Any:
    """Check status of an API response and return its data field.

    Raises:
        ValueError: If the body is not a successful API response.
    """
    body = response.json()
    if not isinstance(body, dict):
        raise ValueError("response body is not a JSON object")
    if body.get("status") != "success":
        error_type = body.get("errorType", "unknown")
        raise ValueError(f"{error_type}: {body.get('error', 'no error message')}")
    return body.get("data")


def _parse_series(entry: Any) -> SeriesResult:
    """Convert one matrix entry into a SeriesResult.

    Raises:
        ShapeMismatchError: If the entry is not a {metric, values} object.
    """
    try:
        labels = dict(entry["metric"])
        values = entry["values"]
        name = labels.pop(METRIC_LABEL, "")
        samples = tuple(
            RawSample(timestamp=round(float(ts) * 1000), value=float(value))
            for ts, value in values
        )
        identifier = format_series_identifier(name, labels)
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        raise ShapeMismatchError(f"malformed matrix entry: {exc}") from exc
    return SeriesResult(identifier=identifier, samples=samples)


class PrometheusSource:
    """MetricsSourcePort backed by the Prometheus HTTP API v1.

    Example:
        ```python
        async with PrometheusSource("http://127.0.0.1:9090") as source:
            names = await source.list_series_names()
        ```
    """

    def __init__(
        self,
        base_url: str,
        timeout: float | None = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the source.

        Args:
            base_url: Prometheus endpoint, e.g. http://127.0.0.1:9090.
            timeout: Per-request timeout in seconds. Ignored if client is given.
            client: Pre-configured client. Its lifecycle stays with the caller.
        """
        self._base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=self._base_url, timeout=timeout
        )

    async def __aenter__(self) -> "PrometheusSource":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client if this source created it."""
        if self._owns_client:
            await self._client.aclose()

    async def list_series_names(self) -> Sequence[str]:
        """List all values of the __name__ label."""
        try:
            response = await self._client.get(_LABEL_VALUES_PATH)
            response.raise_for_status()
            data = _payload_data(response)
        except (httpx.HTTPError, ValueError) as exc:
            raise DiscoveryError(f"Can't get labels: {exc}") from exc
        if not isinstance(data, list) or not all(isinstance(v, str) for v in data):
            raise DiscoveryError("label values response is not a list of strings")
        return data

    async def query_range(
        self, selector: str, time_range: TimeRange
    ) -> Sequence[SeriesResult]:
        """Run a range query and return one SeriesResult per label set."""
        params = {
            "query": selector,
            "start": f"{time_range.start_ms / 1000:.3f}",
            "end": f"{time_range.end_ms / 1000:.3f}",
            "step": f"{time_range.step.total_seconds():g}",
        }
        try:
            response = await self._client.get(_QUERY_RANGE_PATH, params=params)
            response.raise_for_status()
            data = _payload_data(response)
        except (httpx.HTTPError, ValueError) as exc:
            raise QueryError(f"Query range data error: {exc}") from exc

        if not isinstance(data, dict) or data.get("resultType") != "matrix":
            result_type = data.get("resultType") if isinstance(data, dict) else None
            raise ShapeMismatchError(f"expected matrix result, got {result_type!r}")
        result = data.get("result")
        if not isinstance(result, list):
            raise ShapeMismatchError("matrix result is not a list")
        return [_parse_series(entry) for entry in result]
