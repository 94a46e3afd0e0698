"""Service layer implementations."""

from reelfeed.services.cache_storage import CacheDirectory, CacheStorageError, DiskUsage
from reelfeed.services.feed import FeedSelection
from reelfeed.services.generation import (
    InvalidDurationError,
    InvalidPromptTextError,
    InvalidRatioError,
    InvalidTaskResponseError,
    VideoGenerationError,
    VideoGenerationService,
)
from reelfeed.services.observable import Published, PublishedList
from reelfeed.services.playback import LoopingPlaybackController, NoVideoBoundError
from reelfeed.services.video_cache import StageTimeoutError, VideoCacheFetcher

__all__ = [
    # Cache storage
    "CacheDirectory",
    "CacheStorageError",
    "DiskUsage",
    # Feed
    "FeedSelection",
    # Generation
    "InvalidDurationError",
    "InvalidPromptTextError",
    "InvalidRatioError",
    "InvalidTaskResponseError",
    "VideoGenerationError",
    "VideoGenerationService",
    # Observable state
    "Published",
    "PublishedList",
    # Playback
    "LoopingPlaybackController",
    "NoVideoBoundError",
    # Fetcher
    "StageTimeoutError",
    "VideoCacheFetcher",
]
