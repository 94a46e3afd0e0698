"""Demo video fixtures for test mode.

These fixtures stand in for the remote "videos" container when
REELFEED_TESTING_TEST_MODE=true, so the feed can be exercised without a
Firebase project.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List

DEMO_VIDEOS: List[Dict[str, Any]] = [
    {
        "name": "sunset_timelapse.mp4",
        "content_type": "video/mp4",
        "created_at": datetime(2025, 2, 3, 18, 5, tzinfo=timezone.utc),
        "content": b"\x00\x00\x00\x18ftypmp42" + b"sunset" * 64,
    },
    {
        "name": "city_walk.mp4",
        "content_type": "video/mp4",
        "created_at": datetime(2025, 2, 4, 9, 30, tzinfo=timezone.utc),
        "content": b"\x00\x00\x00\x18ftypmp42" + b"city" * 96,
    },
    {
        "name": "ocean_waves.mov",
        "content_type": "video/quicktime",
        "created_at": datetime(2025, 2, 5, 7, 45, tzinfo=timezone.utc),
        "content": b"\x00\x00\x00\x14ftypqt  " + b"waves" * 80,
    },
    {
        # No content type reported, falls back to video/mp4
        "name": "untitled_clip.mp4",
        "content_type": None,
        "created_at": None,
        "content": b"\x00\x00\x00\x18ftypmp42" + b"clip" * 32,
    },
]


def get_demo_video(name: str) -> Dict[str, Any]:
    """Get a demo fixture by blob name.

    Raises:
        KeyError: If no fixture has that name.
    """
    for video in DEMO_VIDEOS:
        if video["name"] == name:
            return video
    raise KeyError(name)
