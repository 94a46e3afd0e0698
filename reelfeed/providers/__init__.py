"""Adapters for the remote blob store, functions and media player."""

from reelfeed.providers.base import BlobStore, FunctionsClient
from reelfeed.providers.exceptions import (
    BlobDownloadError,
    BlobStoreError,
    FunctionsError,
    ListingError,
    ProviderError,
    ResolutionError,
)
from reelfeed.providers.media import (
    EndOfMediaCenter,
    HeadlessMediaPlayer,
    MediaItem,
    MediaPlayer,
    ObserverToken,
)

__all__ = [
    "BlobDownloadError",
    "BlobStore",
    "BlobStoreError",
    "EndOfMediaCenter",
    "FunctionsClient",
    "FunctionsError",
    "HeadlessMediaPlayer",
    "ListingError",
    "MediaItem",
    "MediaPlayer",
    "ObserverToken",
    "ProviderError",
    "ResolutionError",
]
