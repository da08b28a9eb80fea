"""Runtime settings loaded from the environment and an optional .env file."""

import os
import re
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path

from dotenv import dotenv_values

from promdownsampler.core.errors import ConfigError

ENV_PREFIX = "PDS_"

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")
_UNITS = {
    "ms": timedelta(milliseconds=1),
    "s": timedelta(seconds=1),
    "m": timedelta(minutes=1),
    "h": timedelta(hours=1),
}


def parse_duration(text: str) -> timedelta:
    """Parse a Go-style duration such as "5m", "1h30m" or "250ms".

    A bare number is read as seconds.

    Raises:
        ConfigError: If text is not a valid duration.
    """
    text = text.strip()
    try:
        return timedelta(seconds=float(text))
    except (ValueError, OverflowError):
        pass
    total = timedelta(0)
    position = 0
    for match in _DURATION_PART.finditer(text):
        if match.start() != position:
            break
        total += float(match.group(1)) * _UNITS[match.group(2)]
        position = match.end()
    if position == 0 or position != len(text):
        raise ConfigError(f"invalid duration: {text!r}")
    return total


@dataclass(frozen=True)
class Settings:
    """Settings for the downsampler.

    Attributes:
        source_url: Source Prometheus endpoint.
        output_path: Published output file path.
        concurrency: Max concurrent queries to the source.
        interval: Collection interval, also the bucket width.
        query_timeout: Deadline for a single query, in seconds.
        log_level: Root log level.
    """

    source_url: str = "http://127.0.0.1:9090"
    output_path: str = "/tmp/prometheus_downsample_output.txt"
    concurrency: int = 50
    interval: timedelta = timedelta(minutes=5)
    query_timeout: float = 30.0
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if not self.source_url:
            raise ConfigError("source_url must not be empty")
        if not self.output_path:
            raise ConfigError("output_path must not be empty")
        if self.concurrency < 1:
            raise ConfigError(f"concurrency must be >= 1, got {self.concurrency}")
        if self.interval <= timedelta(0):
            raise ConfigError(f"interval must be positive, got {self.interval}")
        if self.interval % timedelta(milliseconds=1):
            raise ConfigError(
                f"interval must be whole milliseconds, got {self.interval}"
            )
        if self.query_timeout <= 0:
            raise ConfigError(
                f"query_timeout must be positive, got {self.query_timeout}"
            )


def _read_int(value: str, name: str) -> int:
    try:
        return int(value)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from exc


def _read_float(value: str, name: str) -> float:
    try:
        return float(value)
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number, got {value!r}") from exc


def load_settings(
    environ: Mapping[str, str] | None = None,
    env_file: str | os.PathLike[str] | None = None,
) -> Settings:
    """Build Settings from PDS_* variables.

    Values from env_file (default: PDS_ENV_FILE or ./.env, if present) are
    used only where the environment does not set the variable.

    Args:
        environ: Environment to read (default: os.environ).
        env_file: Path of a dotenv file.

    Returns:
        Validated Settings.
    """
    env = dict(os.environ if environ is None else environ)
    path = Path(env_file or env.get(f"{ENV_PREFIX}ENV_FILE", ".env"))
    if path.is_file():
        for key, value in dotenv_values(path).items():
            if value is not None:
                env.setdefault(key, value)

    defaults = Settings()
    source = env.get(f"{ENV_PREFIX}SOURCE")
    output = env.get(f"{ENV_PREFIX}OUTPUT")
    concurrency = env.get(f"{ENV_PREFIX}CONCURRENT")
    interval = env.get(f"{ENV_PREFIX}INTERVAL")
    query_timeout = env.get(f"{ENV_PREFIX}QUERY_TIMEOUT")
    log_level = env.get(f"{ENV_PREFIX}LOG_LEVEL")
    return Settings(
        source_url=source or defaults.source_url,
        output_path=output or defaults.output_path,
        concurrency=(
            _read_int(concurrency, "PDS_CONCURRENT")
            if concurrency
            else defaults.concurrency
        ),
        interval=parse_duration(interval) if interval else defaults.interval,
        query_timeout=(
            _read_float(query_timeout, "PDS_QUERY_TIMEOUT")
            if query_timeout
            else defaults.query_timeout
        ),
        log_level=(log_level or defaults.log_level).upper(),
    )
