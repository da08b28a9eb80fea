"""Atomic file publisher for downsampled output.

The output is written to a temporary file in the target directory and then
renamed over the published path, so readers see either the previous
snapshot or the new one, never a partial write.
"""

import asyncio
import logging
import os
import tempfile
from pathlib import Path

from promdownsampler.core.encoding.exposition import iter_exposition_lines
from promdownsampler.core.errors import PublishError
from promdownsampler.core.models import RunOutput

logger = logging.getLogger(__name__)


class AtomicFilePublisher:
    """OutputPublisherPort that replaces a file via temp-file-then-rename."""

    def __init__(self, path: str | os.PathLike[str], fsync: bool = True) -> None:
        """Initialize the publisher.

        Args:
            path: Published output file path.
            fsync: Flush the temp file to disk before the rename.
        """
        self._path = Path(path)
        self._fsync = fsync

    @property
    def path(self) -> Path:
        return self._path

    async def publish(self, output: RunOutput) -> int:
        """Publish output without blocking the event loop."""
        return await asyncio.to_thread(self.publish_sync, output)

    def publish_sync(self, output: RunOutput) -> int:
        """Write output to a temp file and rename it over the published path.

        Returns:
            Number of points written.

        Raises:
            PublishError: If the temp file can't be created or written, or
                the rename fails. The previously published file is untouched.
        """
        directory = self._path.parent
        try:
            fd, temp_name = tempfile.mkstemp(
                prefix=f"{self._path.name}_", suffix=".tmp", dir=directory
            )
        except OSError as exc:
            raise PublishError(
                f"Can't create output file in {directory}: {exc}"
            ) from exc

        temp_path = Path(temp_name)
        try:
            points = self._write(fd, output)
            os.replace(temp_path, self._path)
        except (OSError, ValueError) as exc:
            temp_path.unlink(missing_ok=True)
            raise PublishError(
                f"Can't publish output file {self._path}: {exc}"
            ) from exc

        logger.info(
            "Finish write to output file",
            extra={"filepath": str(self._path), "number_metrics": points},
        )
        return points

    def _write(self, fd: int, output: RunOutput) -> int:
        """Write exposition lines to fd and close it; return the point count."""
        points = sum(len(p) for p in output.values())
        with open(fd, "w", encoding="utf-8", newline="\n") as handle:
            # published file is world-readable, mkstemp default is 0600
            os.fchmod(handle.fileno(), 0o644)
            handle.writelines(iter_exposition_lines(output))
            handle.flush()
            if self._fsync:
                os.fsync(handle.fileno())
        return points
