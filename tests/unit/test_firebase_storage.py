"""Unit tests for the Firebase Storage blob store."""

from datetime import datetime, timezone
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Dict, Optional
from unittest.mock import MagicMock

import httpx
import pytest
from google.api_core.exceptions import NotFound, ServiceUnavailable
from google.cloud import storage

from reelfeed.models.video import BlobEntry
from reelfeed.providers.exceptions import BlobDownloadError, ListingError, ResolutionError
from reelfeed.providers.firebase_storage import FirebaseBlobStore

BUCKET = "reelai.appspot.com"


def _blob(
    name: str,
    size: int = 2048,
    content_type: Optional[str] = "video/mp4",
    metadata: Optional[Dict[str, str]] = None,
) -> MagicMock:
    blob = MagicMock()
    blob.name = name
    blob.size = size
    blob.content_type = content_type
    blob.time_created = datetime(2025, 2, 3, 18, 5, tzinfo=timezone.utc)
    blob.metadata = metadata
    blob.generate_signed_url.return_value = (
        f"https://storage.googleapis.com/{BUCKET}/{name}?X-Goog-Signature=abc"
    )
    return blob


@pytest.fixture
def client() -> MagicMock:
    return MagicMock()


@pytest.fixture
def store(client: MagicMock) -> FirebaseBlobStore:
    return FirebaseBlobStore(BUCKET, client=client)


class TestListing:
    """Tests for listing the video container."""

    @pytest.mark.asyncio
    async def test_list_strips_prefix(self, store: FirebaseBlobStore, client: MagicMock) -> None:
        client.list_blobs.return_value = [
            _blob("videos/a.mp4"),
            _blob("videos/b.mp4"),
        ]

        entries = await store.list("videos")

        assert entries == [
            BlobEntry(name="a.mp4", path="videos/a.mp4"),
            BlobEntry(name="b.mp4", path="videos/b.mp4"),
        ]
        client.list_blobs.assert_called_once_with(BUCKET, prefix="videos/", delimiter="/")

    @pytest.mark.asyncio
    async def test_list_skips_folder_placeholder(
        self, store: FirebaseBlobStore, client: MagicMock
    ) -> None:
        client.list_blobs.return_value = [_blob("videos/"), _blob("videos/a.mp4")]

        entries = await store.list("videos")

        assert [e.name for e in entries] == ["a.mp4"]

    @pytest.mark.asyncio
    async def test_list_failure(self, store: FirebaseBlobStore, client: MagicMock) -> None:
        client.list_blobs.side_effect = ServiceUnavailable("backend down")

        with pytest.raises(ListingError, match="backend down"):
            await store.list("videos")


class TestResolution:
    """Tests for download URLs and metadata."""

    @pytest.mark.asyncio
    async def test_download_token_url(self, store: FirebaseBlobStore, client: MagicMock) -> None:
        client.bucket.return_value.get_blob.return_value = _blob(
            "videos/a b.mp4", metadata={"firebaseStorageDownloadTokens": "tok1,tok2"}
        )

        url = await store.resolve_download_url(BlobEntry(name="a b.mp4", path="videos/a b.mp4"))

        assert url == (
            "https://firebasestorage.googleapis.com/v0/b/reelai.appspot.com/o/"
            "videos%2Fa%20b.mp4?alt=media&token=tok1"
        )

    @pytest.mark.asyncio
    async def test_signed_url_without_token(
        self, store: FirebaseBlobStore, client: MagicMock
    ) -> None:
        blob = _blob("videos/a.mp4")
        client.bucket.return_value.get_blob.return_value = blob

        url = await store.resolve_download_url(BlobEntry(name="a.mp4", path="videos/a.mp4"))

        assert "X-Goog-Signature" in url
        kwargs = blob.generate_signed_url.call_args.kwargs
        assert kwargs["version"] == "v4"
        assert kwargs["expiration"].total_seconds() == 3600

    @pytest.mark.asyncio
    async def test_missing_object(self, store: FirebaseBlobStore, client: MagicMock) -> None:
        client.bucket.return_value.get_blob.return_value = None

        with pytest.raises(ResolutionError, match="not found"):
            await store.resolve_download_url(BlobEntry(name="a.mp4", path="videos/a.mp4"))

    @pytest.mark.asyncio
    async def test_signing_failure(self, store: FirebaseBlobStore, client: MagicMock) -> None:
        blob = _blob("videos/a.mp4")
        blob.generate_signed_url.side_effect = AttributeError("no private key")
        client.bucket.return_value.get_blob.return_value = blob

        with pytest.raises(ResolutionError):
            await store.resolve_download_url(BlobEntry(name="a.mp4", path="videos/a.mp4"))

    @pytest.mark.asyncio
    async def test_get_metadata(self, store: FirebaseBlobStore, client: MagicMock) -> None:
        client.bucket.return_value.get_blob.return_value = _blob(
            "videos/a.mov", size=4096, content_type="video/quicktime"
        )

        metadata = await store.get_metadata(BlobEntry(name="a.mov", path="videos/a.mov"))

        assert metadata.size == 4096
        assert metadata.content_type == "video/quicktime"
        assert metadata.created_at == datetime(2025, 2, 3, 18, 5, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_metadata_failure(self, store: FirebaseBlobStore, client: MagicMock) -> None:
        client.bucket.return_value.get_blob.side_effect = NotFound("gone")

        with pytest.raises(ResolutionError):
            await store.get_metadata(BlobEntry(name="a.mp4", path="videos/a.mp4"))


class TestDownload:
    """Tests for streaming downloads."""

    def _store(self, handler: Any) -> FirebaseBlobStore:
        http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return FirebaseBlobStore(BUCKET, client=MagicMock(), http_client=http)

    @pytest.mark.asyncio
    async def test_download_to_temp_file(self, tmp_path: Path) -> None:
        store = self._store(lambda request: httpx.Response(200, content=b"video-bytes"))

        path = await store.download("https://example.com/a.mp4", tmp_path)

        assert path.parent == tmp_path
        assert path.suffix == ".part"
        assert path.read_bytes() == b"video-bytes"

    @pytest.mark.asyncio
    async def test_http_error_removes_temp_file(self, tmp_path: Path) -> None:
        store = self._store(lambda request: httpx.Response(403, content=b"denied"))

        with pytest.raises(BlobDownloadError):
            await store.download("https://example.com/a.mp4", tmp_path)

        assert list(tmp_path.iterdir()) == []

    @pytest.mark.asyncio
    async def test_missing_directory(self, tmp_path: Path) -> None:
        store = self._store(lambda request: httpx.Response(200, content=b"x"))

        with pytest.raises(BlobDownloadError):
            await store.download("https://example.com/a.mp4", tmp_path / "missing")

    @pytest.mark.asyncio
    async def test_aclose_keeps_injected_client(self) -> None:
        http = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        store = FirebaseBlobStore(BUCKET, client=MagicMock(), http_client=http)

        await store.aclose()

        assert not http.is_closed
        await http.aclose()


class TestClientCreation:
    """Tests for lazy storage client creation."""

    def test_service_account_credentials(self, monkeypatch: pytest.MonkeyPatch) -> None:
        from_json = MagicMock(return_value=SimpleNamespace())
        monkeypatch.setattr(storage.Client, "from_service_account_json", from_json)
        store = FirebaseBlobStore(BUCKET, credentials_path="/secrets/sa.json")

        store._get_client()
        store._get_client()

        from_json.assert_called_once_with("/secrets/sa.json")

    def test_describe(self, store: FirebaseBlobStore) -> None:
        assert store.describe() == "gs://reelai.appspot.com"
