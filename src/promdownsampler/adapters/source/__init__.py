"""Metrics source adapters implementing MetricsSourcePort."""

from promdownsampler.adapters.source.in_memory import InMemoryMetricsSource
from promdownsampler.adapters.source.prometheus import PrometheusSource

__all__ = ["InMemoryMetricsSource", "PrometheusSource"]
