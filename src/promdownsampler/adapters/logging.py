"""Logging setup for the downsampler.

Modules log through the standard library with structured fields passed
as ``extra``. KeyValueFormatter appends those fields to each line as
``key=value`` pairs.
"""

import logging
import sys

# Standard LogRecord attributes that should not be treated as extra fields
_STANDARD_LOGRECORD_ATTRS = frozenset(
    {
        "args",
        "asctime",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "message",
        "module",
        "msecs",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "taskName",
        "thread",
        "threadName",
    }
)

DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def extra_fields(record: logging.LogRecord) -> dict[str, object]:
    """Return the fields passed to a logging call via ``extra``."""
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _STANDARD_LOGRECORD_ATTRS and not key.startswith("_")
    }


def _render(value: object) -> str:
    text = str(value)
    if not text or any(ch.isspace() for ch in text) or '"' in text:
        escaped = text.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    return text


class KeyValueFormatter(logging.Formatter):
    """Formatter that appends extra fields as sorted key=value pairs.

    Example:
        ```python
        logger.info("Finish write to output file", extra={"number_metrics": 12})
        # 2026-01-01 00:00:00,000 INFO promdownsampler...: Finish write to
        # output file number_metrics=12
        ```
    """

    def __init__(self, fmt: str = DEFAULT_FORMAT, datefmt: str | None = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        fields = extra_fields(record)
        if not fields:
            return message
        # Keep tracebacks at the end of the entry
        head, sep, tail = message.partition("\n")
        pairs = " ".join(f"{key}={_render(fields[key])}" for key in sorted(fields))
        return f"{head} {pairs}{sep}{tail}"


_HANDLER_NAME = "promdownsampler"


def configure_logging(level: str | int = "INFO") -> logging.Handler:
    """Install a stderr handler with KeyValueFormatter on the root logger.

    Calling it again only updates the level.

    Args:
        level: Log level name or number.

    Returns:
        The installed handler.
    """
    root = logging.getLogger()
    root.setLevel(level)
    for handler in root.handlers:
        if handler.get_name() == _HANDLER_NAME:
            return handler
    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(KeyValueFormatter())
    root.addHandler(handler)
    return handler
