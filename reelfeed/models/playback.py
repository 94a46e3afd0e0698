"""Playback state model."""

from enum import Enum


class PlaybackState(str, Enum):
    """State of the looping playback controller.

    State transitions:
    - IDLE -> LOADING: When the first item is bound
    - LOADING -> PLAYING: When the bound item starts playing
    - PLAYING <-> PAUSED: On toggle_play_pause
    - PLAYING/PAUSED -> LOADING: When a new item is bound
    - any -> IDLE: When the controller is closed
    """

    IDLE = "idle"
    LOADING = "loading"
    PLAYING = "playing"
    PAUSED = "paused"
