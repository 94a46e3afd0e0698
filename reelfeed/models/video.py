"""Video data models for the blob store and the local cache."""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class BlobEntry:
    """A listed object in the remote blob store.

    `name` is the last path component and identifies the video; `path` is
    the full object path used as the handle for later calls.
    """

    name: str
    path: str


@dataclass(frozen=True)
class BlobMetadata:
    """Metadata reported by the blob store for one object."""

    size: int  # bytes
    content_type: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class VideoRecord:
    """A video available in the local cache."""

    video_id: str  # remote blob name
    local_path: Path
    remote_url: str
    name: str
    size: int  # bytes
    content_type: str
    created_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        """Convert record to dictionary for API responses."""
        return {
            "video_id": self.video_id,
            "local_path": str(self.local_path),
            "remote_url": self.remote_url,
            "name": self.name,
            "size": self.size,
            "content_type": self.content_type,
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class SkippedItem:
    """A listed blob left out of the collection during a fetch pass."""

    name: str
    stage: str  # "resolve_url", "metadata", "download" or "store"
    error: str


@dataclass
class FetchResult:
    """Outcome of one fetch pass."""

    videos: List[VideoRecord] = field(default_factory=list)
    listed: int = 0
    cache_hits: int = 0
    downloaded: int = 0
    skipped: List[SkippedItem] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "count": len(self.videos),
            "listed": self.listed,
            "cache_hits": self.cache_hits,
            "downloaded": self.downloaded,
            "skipped": [
                {"name": s.name, "stage": s.stage, "error": s.error} for s in self.skipped
            ],
        }
