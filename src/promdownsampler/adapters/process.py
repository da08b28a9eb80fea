"""Process resource statistics."""

import logging

import psutil

logger = logging.getLogger(__name__)

_MIB = 1024 * 1024


def memory_usage() -> dict[str, int]:
    """Return current memory statistics of this process.

    Returns:
        Resident and virtual size in MiB plus the thread count.
    """
    process = psutil.Process()
    info = process.memory_info()
    return {
        "rss_mib": info.rss // _MIB,
        "vms_mib": info.vms // _MIB,
        "num_threads": process.num_threads(),
    }


def log_memory_usage(stage: str) -> None:
    """Log memory statistics at DEBUG level, tagged with a pipeline stage."""
    if not logger.isEnabledFor(logging.DEBUG):
        return
    logger.debug("Runtime memory status", extra={"stage": stage, **memory_usage()})
