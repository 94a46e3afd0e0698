"""Local video cache fetcher.

Lists the remote video container, resolves every entry, reuses the cached
file when one exists and downloads it otherwise. Records are published one
by one as they become available, in listing order.

Failure policy:
- Listing failure aborts the pass and propagates. The published collection
  is only cleared after a successful listing, so it keeps the previous pass.
- URL, metadata, download or move-into-place failure for one entry skips
  that entry; the pass continues with the next one.
"""

import asyncio
import time
from datetime import datetime, timezone
from typing import Awaitable, List, Optional, TypeVar
from uuid import uuid4

import structlog

from reelfeed.core.config import TimeoutsConfig
from reelfeed.core.metrics import MetricsCollector
from reelfeed.models.video import BlobEntry, FetchResult, SkippedItem, VideoRecord
from reelfeed.providers.base import BlobStore
from reelfeed.providers.exceptions import BlobStoreError, ListingError
from reelfeed.services.cache_storage import CacheDirectory, CacheStorageError
from reelfeed.services.observable import Published, PublishedList

logger = structlog.get_logger(__name__)

T = TypeVar("T")

DEFAULT_CONTENT_TYPE = "video/mp4"


class StageTimeoutError(Exception):
    """Raised when one network stage of a fetch exceeds its timeout."""

    pass


class VideoCacheFetcher:
    """Fetches the remote video list into the local cache and publishes it.

    Passes are serialized: a call made while a pass is running waits for it
    to finish, then runs its own pass.
    """

    def __init__(
        self,
        blob_store: BlobStore,
        cache: CacheDirectory,
        timeouts: Optional[TimeoutsConfig] = None,
        container: str = "videos",
    ) -> None:
        """Initialize the fetcher and create the cache directory.

        Args:
            blob_store: Remote store holding the videos.
            cache: Local cache directory.
            timeouts: Per-operation network timeouts.
            container: Remote container listed on every pass.
        """
        self.blob_store = blob_store
        self.cache = cache
        self.timeouts = timeouts or TimeoutsConfig()
        self.container = container

        self.videos: PublishedList[VideoRecord] = PublishedList(name="videos")
        self.is_fetching: Published[bool] = Published(False, name="is_fetching")
        self.last_error: Published[Optional[str]] = Published(None, name="last_error")

        self._lock = asyncio.Lock()

        self.cache.initialize()

    def bind_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        """Pin published state to the event loop that presentation code runs on."""
        for published in (self.videos, self.is_fetching, self.last_error):
            published.bind_loop(loop)

    async def fetch_all(self) -> FetchResult:
        """Run a full fetch pass.

        Returns:
            FetchResult with the published records and pass statistics.

        Raises:
            ListingError: If the container cannot be listed.
        """
        if self._lock.locked():
            logger.info("fetch_waiting_for_running_pass", container=self.container)

        async with self._lock:
            pass_id = f"fetch_{uuid4().hex[:8]}"
            with structlog.contextvars.bound_contextvars(pass_id=pass_id):
                return await self._run_pass()

    async def _run_pass(self) -> FetchResult:
        start_time = time.monotonic()
        logger.info("fetch_started", container=self.container)
        self.is_fetching.set(True)
        try:
            result = await self._fetch_entries(start_time)
        finally:
            self.is_fetching.set(False)

        duration = time.monotonic() - start_time
        MetricsCollector.record_fetch_pass("success", duration)
        logger.info(
            "fetch_completed",
            listed=result.listed,
            published=len(result.videos),
            cache_hits=result.cache_hits,
            downloaded=result.downloaded,
            skipped=len(result.skipped),
            duration_seconds=round(duration, 3),
        )
        return result

    async def _fetch_entries(self, start_time: float) -> FetchResult:
        try:
            entries = await self._list_entries()
        except ListingError as e:
            self.last_error.set(str(e))
            MetricsCollector.record_fetch_pass("failed", time.monotonic() - start_time)
            logger.error("fetch_failed", container=self.container, error=str(e))
            raise

        self.videos.clear()
        MetricsCollector.update_cached_videos(0)
        self.last_error.set(None)
        result = FetchResult(listed=len(entries))

        for entry in entries:
            record = await self._process_entry(entry, result)
            if record is None:
                continue
            result.videos.append(record)
            self.videos.append(record)
            MetricsCollector.update_cached_videos(len(result.videos))
        return result

    async def _list_entries(self) -> List[BlobEntry]:
        try:
            return await self._with_timeout(
                self.blob_store.list(self.container), self.timeouts.listing, "list"
            )
        except StageTimeoutError as e:
            raise ListingError(str(e)) from e

    async def _with_timeout(self, operation: Awaitable[T], timeout: float, stage: str) -> T:
        try:
            return await asyncio.wait_for(operation, timeout=timeout)
        except asyncio.TimeoutError as e:
            raise StageTimeoutError(f"{stage} timed out after {timeout}s") from e

    async def _process_entry(self, entry: BlobEntry, result: FetchResult) -> Optional[VideoRecord]:
        """Resolve one entry into a cached record, or skip it."""
        stage = "resolve_url"
        try:
            remote_url = await self._with_timeout(
                self.blob_store.resolve_download_url(entry), self.timeouts.metadata, stage
            )

            stage = "metadata"
            metadata = await self._with_timeout(
                self.blob_store.get_metadata(entry), self.timeouts.metadata, stage
            )

            stage = "store"
            local_path = self.cache.local_path_for(entry.name)

            if self.cache.exists(local_path):
                MetricsCollector.record_cache_lookup(hit=True)
                result.cache_hits += 1
                logger.debug("video_cache_hit", name=entry.name)
            else:
                MetricsCollector.record_cache_lookup(hit=False)
                stage = "download"
                logger.info("video_download_started", name=entry.name)
                temp_path = await self._with_timeout(
                    self.blob_store.download(remote_url, self.cache.path),
                    self.timeouts.download,
                    stage,
                )

                stage = "store"
                self.cache.move_into_place(temp_path, local_path)
                MetricsCollector.record_download("success", metadata.size)
                result.downloaded += 1
                logger.info("video_downloaded", name=entry.name, size_bytes=metadata.size)

        except (BlobStoreError, CacheStorageError, StageTimeoutError, OSError) as e:
            if stage == "download":
                MetricsCollector.record_download("failed")
            self._skip(entry, stage, e, result)
            return None

        return VideoRecord(
            video_id=entry.name,
            local_path=local_path,
            remote_url=remote_url,
            name=entry.name,
            size=metadata.size,
            content_type=metadata.content_type or DEFAULT_CONTENT_TYPE,
            created_at=metadata.created_at or datetime.now(timezone.utc),
        )

    def _skip(self, entry: BlobEntry, stage: str, error: Exception, result: FetchResult) -> None:
        MetricsCollector.record_item_failure(stage)
        result.skipped.append(SkippedItem(name=entry.name, stage=stage, error=str(error)))
        logger.warning(
            "fetch_item_skipped",
            name=entry.name,
            stage=stage,
            error_type=type(error).__name__,
            error=str(error),
        )
