"""E2E test configuration and fixtures.

These fixtures start the full application in test mode
(REELFEED_TESTING_TEST_MODE=true): the blob store and the generation
functions are in-memory fakes seeded with the demo videos, and the cache
lives in a temporary directory.
"""

import os
import tempfile
from typing import Generator

import pytest
from fastapi.testclient import TestClient

# Set test mode environment variable at module import time
# This ensures it's set before any app modules are imported
os.environ["REELFEED_TESTING_TEST_MODE"] = "true"


@pytest.fixture(scope="module")
def temp_cache_dir() -> Generator[str, None, None]:
    """Create a temporary directory for the video cache."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield os.path.join(tmpdir, "cached_videos")


@pytest.fixture(scope="module")
def e2e_env(temp_cache_dir: str) -> Generator[None, None, None]:
    """Set up environment variables for E2E testing."""
    original_env: dict[str, str | None] = {}
    env_vars = {
        "REELFEED_TESTING_TEST_MODE": "true",
        "REELFEED_CONFIG": os.path.join(temp_cache_dir, "missing-config.yaml"),
        "REELFEED_LOGGING_LEVEL": "WARNING",
        "REELFEED_STORAGE_CACHE_DIR": temp_cache_dir,
    }

    for key, value in env_vars.items():
        original_env[key] = os.environ.get(key)
        os.environ[key] = value

    yield

    # Restore original values
    for key in original_env:
        original_value = original_env[key]
        if original_value is None:
            os.environ.pop(key, None)
        else:
            os.environ[key] = original_value


@pytest.fixture(scope="module")
def e2e_client(e2e_env: None) -> Generator[TestClient, None, None]:
    """Create a test client running the full application lifespan.

    The feed is refreshed once before the client is handed out, which also
    waits for the initial fetch started at startup.
    """
    # Import after environment is set
    from reelfeed.main import create_app

    app = create_app()

    with TestClient(app) as client:
        response = client.post("/api/v1/videos/refresh")
        assert response.status_code == 200
        yield client
