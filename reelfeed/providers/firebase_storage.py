"""Firebase Storage blob store backed by google-cloud-storage.

Listing, metadata and URL resolution go through the synchronous Cloud
Storage client in worker threads; downloads stream over httpx.
"""

import asyncio
import os
import tempfile
from datetime import timedelta
from pathlib import Path
from typing import Any, List, Optional
from urllib.parse import quote

import httpx
import structlog
from google.api_core.exceptions import GoogleAPIError
from google.auth.exceptions import GoogleAuthError
from google.cloud import storage

from reelfeed.models.video import BlobEntry, BlobMetadata
from reelfeed.providers.base import BlobStore
from reelfeed.providers.exceptions import BlobDownloadError, ListingError, ResolutionError

logger = structlog.get_logger(__name__)

FIREBASE_DOWNLOAD_HOST = "https://firebasestorage.googleapis.com"
DOWNLOAD_TOKENS_KEY = "firebaseStorageDownloadTokens"
DOWNLOAD_CHUNK_SIZE = 1024 * 1024


class FirebaseBlobStore(BlobStore):
    """Blob store over a Firebase Storage (Cloud Storage) bucket."""

    def __init__(
        self,
        bucket_name: str,
        credentials_path: Optional[str] = None,
        signed_url_ttl: int = 3600,
        client: Optional[storage.Client] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """
        Initialize the blob store.

        Args:
            bucket_name: Bucket name, e.g. "my-app.appspot.com"
            credentials_path: Service account JSON; application default
                credentials are used when omitted
            signed_url_ttl: Lifetime of signed URLs in seconds, used for
                objects without a Firebase download token
            client: Pre-built Cloud Storage client
            http_client: Pre-built httpx client for downloads
        """
        self.bucket_name = bucket_name
        self.credentials_path = credentials_path
        self.signed_url_ttl = signed_url_ttl
        self._client = client
        self._http = http_client
        self._owns_http = http_client is None

    def describe(self) -> Optional[str]:
        return f"gs://{self.bucket_name}"

    def _get_client(self) -> storage.Client:
        if self._client is None:
            if self.credentials_path:
                self._client = storage.Client.from_service_account_json(self.credentials_path)
            else:
                self._client = storage.Client()
        return self._client

    def _get_http(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(follow_redirects=True, timeout=None)
        return self._http

    async def aclose(self) -> None:
        if self._http is not None and self._owns_http:
            await self._http.aclose()
            self._http = None

    def _list_sync(self, container: str) -> List[BlobEntry]:
        prefix = f"{container.strip('/')}/"
        client = self._get_client()
        # Iterating the HTTP iterator drains every page
        blobs = client.list_blobs(self.bucket_name, prefix=prefix, delimiter="/")
        entries = []
        for blob in blobs:
            name = blob.name[len(prefix) :]
            if not name:
                # Folder placeholder object
                continue
            entries.append(BlobEntry(name=name, path=blob.name))
        return entries

    async def list(self, container: str) -> List[BlobEntry]:
        try:
            entries = await asyncio.to_thread(self._list_sync, container)
        except (GoogleAPIError, GoogleAuthError, OSError) as e:
            raise ListingError(f"Failed to list '{container}' in {self.bucket_name}: {e}") from e

        logger.debug("blobs_listed", container=container, count=len(entries))
        return entries

    def _get_blob(self, entry: BlobEntry) -> Any:
        blob = self._get_client().bucket(self.bucket_name).get_blob(entry.path)
        if blob is None:
            raise ResolutionError(f"Object not found: {entry.path}")
        return blob

    def _resolve_url_sync(self, entry: BlobEntry) -> str:
        blob = self._get_blob(entry)
        custom = blob.metadata or {}
        tokens = custom.get(DOWNLOAD_TOKENS_KEY)
        if tokens:
            token = tokens.split(",")[0]
            return (
                f"{FIREBASE_DOWNLOAD_HOST}/v0/b/{self.bucket_name}/o/"
                f"{quote(entry.path, safe='')}?alt=media&token={token}"
            )
        return str(
            blob.generate_signed_url(
                version="v4",
                expiration=timedelta(seconds=self.signed_url_ttl),
                method="GET",
            )
        )

    async def resolve_download_url(self, entry: BlobEntry) -> str:
        try:
            return await asyncio.to_thread(self._resolve_url_sync, entry)
        except ResolutionError:
            raise
        except (GoogleAPIError, GoogleAuthError, AttributeError, ValueError, OSError) as e:
            # AttributeError: credentials that cannot sign URLs
            raise ResolutionError(f"Failed to resolve download URL for {entry.path}: {e}") from e

    def _metadata_sync(self, entry: BlobEntry) -> BlobMetadata:
        blob = self._get_blob(entry)
        return BlobMetadata(
            size=int(blob.size or 0),
            content_type=blob.content_type,
            created_at=blob.time_created,
        )

    async def get_metadata(self, entry: BlobEntry) -> BlobMetadata:
        try:
            return await asyncio.to_thread(self._metadata_sync, entry)
        except ResolutionError:
            raise
        except (GoogleAPIError, GoogleAuthError, OSError) as e:
            raise ResolutionError(f"Failed to fetch metadata for {entry.path}: {e}") from e

    async def download(self, url: str, directory: Path) -> Path:
        try:
            fd, tmp_name = tempfile.mkstemp(prefix=".download-", suffix=".part", dir=directory)
        except OSError as e:
            raise BlobDownloadError(f"Cannot create temporary file in {directory}: {e}") from e

        tmp_path = Path(tmp_name)
        completed = False
        try:
            with os.fdopen(fd, "wb") as f:
                async with self._get_http().stream("GET", url) as response:
                    response.raise_for_status()
                    async for chunk in response.aiter_bytes(DOWNLOAD_CHUNK_SIZE):
                        f.write(chunk)
            completed = True
            return tmp_path
        except (httpx.HTTPError, OSError) as e:
            raise BlobDownloadError(f"Download failed: {e}") from e
        finally:
            # Also covers cancellation by a timeout
            if not completed:
                tmp_path.unlink(missing_ok=True)
