"""Abstract interfaces for the remote collaborators."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, List, Optional

from reelfeed.models.video import BlobEntry, BlobMetadata


class BlobStore(ABC):
    """Remote object storage holding the video files."""

    @abstractmethod
    async def list(self, container: str) -> List[BlobEntry]:
        """
        List every object directly under a container.

        Implementations drain all result pages before returning.

        Args:
            container: Container path, e.g. "videos"

        Returns:
            Entries in listing order

        Raises:
            ListingError: If the listing fails
        """
        pass

    @abstractmethod
    async def resolve_download_url(self, entry: BlobEntry) -> str:
        """
        Resolve a download URL for an object.

        Raises:
            ResolutionError: If the URL cannot be resolved
        """
        pass

    @abstractmethod
    async def get_metadata(self, entry: BlobEntry) -> BlobMetadata:
        """
        Fetch size, content type and creation time of an object.

        Raises:
            ResolutionError: If the metadata cannot be fetched
        """
        pass

    @abstractmethod
    async def download(self, url: str, directory: Path) -> Path:
        """
        Download a URL to a new temporary file inside `directory`.

        Args:
            url: Download URL from resolve_download_url
            directory: Directory that receives the temporary file

        Returns:
            Path of the temporary file, owned by the caller

        Raises:
            BlobDownloadError: If the download fails
        """
        pass

    def describe(self) -> Optional[str]:
        """Human readable target of this store, used by health checks."""
        return None


class FunctionsClient(ABC):
    """Remote serverless functions reachable by name."""

    @abstractmethod
    async def call(self, name: str, data: Optional[Any] = None) -> Any:
        """
        Invoke a function and return its result payload.

        Args:
            name: Function name, may carry a path suffix (e.g. "getTaskFunc/abc")
            data: JSON-serializable request payload

        Raises:
            FunctionsError: If the call fails or returns an error
        """
        pass
