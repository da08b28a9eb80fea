"""Error taxonomy for the downsampler.

Run-level failures derive from CollectionError and abort the current run
only. Per-series failures derive from QueryError and are contained by the
query executor.
"""


class DownsamplerError(Exception):
    """Base class for all downsampler errors."""


class CollectionError(DownsamplerError):
    """A collection run could not complete."""


class DiscoveryError(CollectionError):
    """Listing series names from the metrics source failed."""


class PublishError(CollectionError):
    """Writing or replacing the published output file failed."""


class QueryError(DownsamplerError):
    """A range query for a single selector failed."""


class ShapeMismatchError(QueryError):
    """A range query returned something other than a series matrix."""


class ConfigError(DownsamplerError, ValueError):
    """Settings are missing or invalid."""
