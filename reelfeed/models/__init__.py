"""Data models for the application."""

from reelfeed.models.playback import PlaybackState
from reelfeed.models.video import BlobEntry, BlobMetadata, FetchResult, SkippedItem, VideoRecord

__all__ = [
    "BlobEntry",
    "BlobMetadata",
    "FetchResult",
    "PlaybackState",
    "SkippedItem",
    "VideoRecord",
]
