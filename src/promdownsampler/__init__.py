"""prometheus-downsampler: periodic Prometheus downsampling to a text file."""

from promdownsampler.adapters.output.atomic_file import AtomicFilePublisher
from promdownsampler.adapters.source.in_memory import InMemoryMetricsSource
from promdownsampler.adapters.source.prometheus import PrometheusSource
from promdownsampler.core.bucketing import bucket_timestamp, downsample
from promdownsampler.core.encoding.exposition import encode_run_output
from promdownsampler.core.errors import (
    CollectionError,
    DiscoveryError,
    PublishError,
    QueryError,
    ShapeMismatchError,
)
from promdownsampler.core.models import (
    DownsampledPoint,
    RawSample,
    RunOutput,
    RunReport,
    RunState,
    SeriesResult,
    TimeRange,
)
from promdownsampler.core.time_range import collection_range
from promdownsampler.service.executor import QueryExecutor
from promdownsampler.service.run import CollectionRun, build_run_output
from promdownsampler.service.scheduler import Scheduler

__version__ = "0.1.0"

__all__ = [
    "AtomicFilePublisher",
    "CollectionError",
    "CollectionRun",
    "DiscoveryError",
    "DownsampledPoint",
    "InMemoryMetricsSource",
    "PrometheusSource",
    "PublishError",
    "QueryError",
    "QueryExecutor",
    "RawSample",
    "RunOutput",
    "RunReport",
    "RunState",
    "Scheduler",
    "SeriesResult",
    "ShapeMismatchError",
    "TimeRange",
    "build_run_output",
    "bucket_timestamp",
    "collection_range",
    "downsample",
    "encode_run_output",
]
