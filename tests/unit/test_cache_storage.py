"""Unit tests for the local video cache directory."""

from pathlib import Path
from unittest.mock import patch

import pytest

from reelfeed.core.config import StorageConfig
from reelfeed.services.cache_storage import CacheDirectory, CacheStorageError, DiskUsage


class TestCacheDirectoryConfig:
    """Cache directory fixtures."""

    @pytest.fixture
    def storage_config(self, tmp_path: Path) -> StorageConfig:
        """Create a storage config with a nested temporary directory."""
        return StorageConfig(cache_dir=str(tmp_path / "cache" / "cached_videos"))

    @pytest.fixture
    def cache(self, storage_config: StorageConfig) -> CacheDirectory:
        cache = CacheDirectory(storage_config)
        cache.initialize()
        return cache


class TestCacheDirectoryInitialization(TestCacheDirectoryConfig):
    """Tests for CacheDirectory.initialize."""

    def test_initialize_creates_directory_with_parents(
        self, storage_config: StorageConfig
    ) -> None:
        cache = CacheDirectory(storage_config)

        assert not cache.path.exists()
        assert cache.initialize() is True
        assert cache.path.is_dir()

    def test_initialize_existing_directory(self, cache: CacheDirectory) -> None:
        assert cache.initialize() is True

    def test_initialize_failure_is_not_raised(self, storage_config: StorageConfig) -> None:
        cache = CacheDirectory(storage_config)

        with patch.object(Path, "mkdir", side_effect=PermissionError("Access denied")):
            assert cache.initialize() is False

    def test_expands_user_home(self) -> None:
        cache = CacheDirectory(StorageConfig(cache_dir="~/reelfeed-cache"))

        assert "~" not in str(cache.path)


class TestLocalPaths(TestCacheDirectoryConfig):
    """Tests for computing cache paths."""

    def test_local_path_for_blob_name(self, cache: CacheDirectory) -> None:
        assert cache.local_path_for("clip.mp4") == cache.path / "clip.mp4"

    def test_local_path_is_deterministic(self, cache: CacheDirectory) -> None:
        assert cache.local_path_for("clip.mp4") == cache.local_path_for("clip.mp4")

    @pytest.mark.parametrize("name", ["", ".", "..", "../escape.mp4", "nested/clip.mp4", "/abs.mp4"])
    def test_rejects_names_outside_cache(self, cache: CacheDirectory, name: str) -> None:
        with pytest.raises(CacheStorageError):
            cache.local_path_for(name)

    def test_exists(self, cache: CacheDirectory) -> None:
        path = cache.local_path_for("clip.mp4")
        assert cache.exists(path) is False

        path.write_bytes(b"data")
        assert cache.exists(path) is True

    def test_directory_does_not_count_as_cached(self, cache: CacheDirectory) -> None:
        path = cache.local_path_for("folder.mp4")
        path.mkdir()

        assert cache.exists(path) is False


class TestMoveIntoPlace(TestCacheDirectoryConfig):
    """Tests for moving downloads into the cache."""

    def test_moves_file(self, cache: CacheDirectory) -> None:
        source = cache.path / ".download-1.part"
        source.write_bytes(b"video")
        destination = cache.local_path_for("clip.mp4")

        result = cache.move_into_place(source, destination)

        assert result == destination
        assert destination.read_bytes() == b"video"
        assert not source.exists()

    def test_overwrites_existing_file(self, cache: CacheDirectory) -> None:
        destination = cache.local_path_for("clip.mp4")
        destination.write_bytes(b"old")
        source = cache.path / ".download-2.part"
        source.write_bytes(b"new")

        cache.move_into_place(source, destination)

        assert destination.read_bytes() == b"new"

    def test_failure_removes_source(self, cache: CacheDirectory) -> None:
        source = cache.path / ".download-3.part"
        source.write_bytes(b"video")
        destination = cache.local_path_for("clip.mp4")

        with patch("reelfeed.services.cache_storage.os.replace", side_effect=OSError("EXDEV")):
            with pytest.raises(CacheStorageError, match="clip.mp4"):
                cache.move_into_place(source, destination)

        assert not source.exists()
        assert not destination.exists()


class TestDiskUsage(TestCacheDirectoryConfig):
    """Tests for disk usage reporting."""

    def test_get_disk_usage(self, cache: CacheDirectory) -> None:
        usage = cache.get_disk_usage()

        assert isinstance(usage, DiskUsage)
        assert usage.total > 0
        assert 0 <= usage.percent_used <= 100

    def test_get_disk_usage_error(self, cache: CacheDirectory) -> None:
        with patch("shutil.disk_usage", side_effect=OSError("Disk error")):
            with pytest.raises(CacheStorageError, match="disk usage"):
                cache.get_disk_usage()
