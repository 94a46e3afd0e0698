"""Local video cache directory management.

The cache is append-only: files are written once under their blob name and
never deleted by this service. Moving a download into place uses os.replace,
which is atomic on one filesystem and overwrites an existing file, so two
concurrent downloads of the same blob end with the last writer's copy and
never a partial file.
"""

import os
import shutil
from dataclasses import dataclass
from pathlib import Path

import structlog

from reelfeed.core.config import StorageConfig

logger = structlog.get_logger(__name__)


@dataclass
class DiskUsage:
    """Disk usage statistics."""

    total: int
    used: int
    available: int
    percent_used: float


class CacheStorageError(Exception):
    """Exception raised for cache directory errors."""

    pass


class CacheDirectory:
    """Owns the on-disk directory holding downloaded videos."""

    def __init__(self, config: StorageConfig) -> None:
        """Initialize the cache directory.

        Args:
            config: Storage configuration with the cache path.
        """
        self.config = config
        self.path = Path(config.cache_dir).expanduser()

        logger.debug("cache_directory_configured", path=str(self.path))

    def initialize(self) -> bool:
        """Create the cache directory and its parents if missing.

        Failure is logged and reported, not raised: later writes may still
        fail, and each failed write only skips one video.

        Returns:
            True if the directory exists afterwards.
        """
        try:
            self.path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning("cache_directory_create_failed", path=str(self.path), error=str(e))
            return False

        logger.info("cache_directory_ready", path=str(self.path))
        return True

    def local_path_for(self, blob_name: str) -> Path:
        """Compute the cache path for a blob name.

        Raises:
            CacheStorageError: If the name would escape the cache directory.
        """
        candidate = Path(blob_name)
        if (
            not blob_name
            or candidate.is_absolute()
            or candidate.name != blob_name
            or blob_name in (".", "..")
        ):
            raise CacheStorageError(f"Invalid blob name for cache: {blob_name!r}")
        return self.path / blob_name

    def exists(self, path: Path) -> bool:
        return path.is_file()

    def move_into_place(self, source: Path, destination: Path) -> Path:
        """Atomically move a downloaded file to its cache path.

        An existing file at the destination is overwritten.

        Raises:
            CacheStorageError: If the move fails. The source is removed.
        """
        try:
            os.replace(source, destination)
        except OSError as e:
            source.unlink(missing_ok=True)
            raise CacheStorageError(
                f"Failed to move {source.name} into {destination}: {e}"
            ) from e

        logger.debug("cache_file_stored", path=str(destination))
        return destination

    def get_disk_usage(self) -> DiskUsage:
        """Get current disk usage for the cache directory.

        Raises:
            CacheStorageError: If usage cannot be read.
        """
        try:
            usage = shutil.disk_usage(self.path)
            percent_used = (usage.used / usage.total) * 100 if usage.total > 0 else 0.0

            return DiskUsage(
                total=usage.total,
                used=usage.used,
                available=usage.free,
                percent_used=round(percent_used, 2),
            )
        except OSError as e:
            logger.error("disk_usage_check_failed", error=str(e))
            raise CacheStorageError(f"Failed to get disk usage: {e}") from e
