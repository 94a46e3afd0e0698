"""Testing module for test mode support."""

from reelfeed.testing.fixtures import DEMO_VIDEOS, get_demo_video
from reelfeed.testing.in_memory import InMemoryBlobStore, InMemoryFunctionsClient

__all__ = ["DEMO_VIDEOS", "get_demo_video", "InMemoryBlobStore", "InMemoryFunctionsClient"]
