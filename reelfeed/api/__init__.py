"""API endpoints."""

from reelfeed.api import feed, generation, health, metrics, player, videos

__all__ = [
    "feed",
    "generation",
    "health",
    "metrics",
    "player",
    "videos",
]
