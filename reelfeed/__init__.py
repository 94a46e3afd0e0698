"""Short-video feed backend with a local video cache and looping playback."""

__version__ = "0.1.0"
