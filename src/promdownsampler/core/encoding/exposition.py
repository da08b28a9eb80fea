"""Prometheus text exposition encoder for downsampled output."""

import math
from collections.abc import Iterable, Iterator, Mapping

from promdownsampler.core.models import DownsampledPoint

LABEL_SET_DELIMITER = "{"


def base_metric_name(identifier: str) -> str:
    """Strip the label set from a series identifier.

    Example:
        base_metric_name('up{job="node"}') == "up"
    """
    return identifier.split(LABEL_SET_DELIMITER, 1)[0]


def _escape_label_value(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


def format_series_identifier(name: str, labels: Mapping[str, str] | None = None) -> str:
    """Format a metric name and its labels as a series identifier.

    Labels are sorted by name. A series without labels is just its name.

    Args:
        name: Metric name.
        labels: Label names and values, excluding __name__.

    Returns:
        Identifier such as http_requests_total{method="GET",status="200"}.
    """
    if not labels:
        return name
    pairs = ",".join(
        f'{key}="{_escape_label_value(labels[key])}"' for key in sorted(labels)
    )
    return f"{name}{{{pairs}}}"


def format_value(value: float) -> str:
    """Format a sample value as a fixed-point decimal."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    return f"{value:f}"


def iter_exposition_lines(
    output: Mapping[str, Iterable[DownsampledPoint]],
) -> Iterator[str]:
    """Yield exposition lines, each terminated by a newline.

    Every metric gets a gauge TYPE header followed by one line per point.
    Metric and point order follow the iteration order of output.
    """
    for name, points in output.items():
        yield f"# TYPE {name} gauge\n"
        for point in points:
            yield f"{point.identifier} {format_value(point.value)} {point.timestamp}\n"


def encode_run_output(output: Mapping[str, Iterable[DownsampledPoint]]) -> str:
    """Encode a run output to Prometheus text format.

    Args:
        output: Points grouped by base metric name.

    Returns:
        Exposition text. Empty string if output is empty.
    """
    return "".join(iter_exposition_lines(output))
