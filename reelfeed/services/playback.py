"""Looping playback controller.

The controller owns one media player and binds one item at a time. The bound
item and its end-of-media observer are held together as one resource: the
previous pair is released before the next pair is acquired, so an end event
from a replaced item never reaches the controller and the new item is always
observed.
"""

from typing import Optional

import structlog

from reelfeed.core.metrics import MetricsCollector
from reelfeed.models.playback import PlaybackState
from reelfeed.providers.media import MediaItem, MediaPlayer, ObserverToken
from reelfeed.services.observable import Published

logger = structlog.get_logger(__name__)


class NoVideoBoundError(Exception):
    """Raised when a playback command needs a bound item and none is bound."""

    pass


class _BoundItem:
    """A media item together with its end-of-media observer registration."""

    def __init__(self, player: MediaPlayer, item: MediaItem, token: ObserverToken) -> None:
        self.player = player
        self.item = item
        self.token = token
        self.released = False

    def release(self) -> None:
        if self.released:
            return
        self.player.notifications.remove_observer(self.token)
        self.released = True


class LoopingPlaybackController:
    """Plays the bound item in an endless loop.

    Published state:
        state: PlaybackState
        is_playing, is_muted, is_loading: bool flags
        current_url: URL of the bound item

    Command flags are updated optimistically together with the command sent
    to the player, not after the player confirms it.
    """

    def __init__(self, player: MediaPlayer, start_muted: bool = False) -> None:
        self.player = player
        self.state: Published[PlaybackState] = Published(PlaybackState.IDLE, name="state")
        self.is_playing: Published[bool] = Published(False, name="is_playing")
        self.is_muted: Published[bool] = Published(start_muted, name="is_muted")
        self.is_loading: Published[bool] = Published(False, name="is_loading")
        self.current_url: Published[Optional[str]] = Published(None, name="current_url")
        self.loop_count = 0

        self._bound: Optional[_BoundItem] = None
        self.player.muted = start_muted

    @property
    def bound_item(self) -> Optional[MediaItem]:
        return self._bound.item if self._bound else None

    def bind(self, local_url: str) -> None:
        """Bind a new item and start playing it from the beginning.

        Args:
            local_url: Local path or URL of the video to play.
        """
        self.is_loading.set(True)
        self.state.set(PlaybackState.LOADING)

        self._release_bound()

        item = MediaItem(local_url)
        token = self.player.notifications.add_observer(item, self._on_reach_end)
        self._bound = _BoundItem(self.player, item, token)

        self.player.replace_current_item(item)
        self.player.play()

        self.current_url.set(local_url)
        self.is_playing.set(True)
        self.is_loading.set(False)
        self.state.set(PlaybackState.PLAYING)

        MetricsCollector.record_playback_bind()
        logger.info("playback_bound", url=local_url)

    def _on_reach_end(self, item: MediaItem) -> None:
        if self._bound is None or self._bound.item is not item:
            logger.warning("stale_end_of_media_ignored", url=item.url)
            return

        self.player.seek(0.0)
        self.player.play()
        self.is_playing.set(True)
        self.state.set(PlaybackState.PLAYING)

        self.loop_count += 1
        MetricsCollector.record_playback_loop()
        logger.debug("playback_looped", url=item.url, loop_count=self.loop_count)

    def toggle_play_pause(self) -> bool:
        """Pause when playing, play otherwise.

        Returns:
            The new is_playing flag.
        """
        self._require_bound()
        if self.is_playing.value:
            self.player.pause()
            self.is_playing.set(False)
            self.state.set(PlaybackState.PAUSED)
        else:
            self.player.play()
            self.is_playing.set(True)
            self.state.set(PlaybackState.PLAYING)
        return self.is_playing.value

    def toggle_mute(self) -> bool:
        """Flip the mute flag on the player. Works without a bound item.

        Returns:
            The new is_muted flag.
        """
        muted = not self.is_muted.value
        self.player.muted = muted
        self.is_muted.set(muted)
        return muted

    def seek(self, position: float) -> None:
        """Seek the bound item to `position` seconds."""
        self._require_bound()
        if position < 0:
            raise ValueError("position must not be negative")
        self.player.seek(position)

    def replay(self) -> None:
        """Restart the bound item from the beginning."""
        self._require_bound()
        self.player.seek(0.0)
        self.player.play()
        self.is_playing.set(True)
        self.state.set(PlaybackState.PLAYING)

    def close(self) -> None:
        """Release the bound item and stop playback."""
        if self._bound is None:
            return
        self.player.pause()
        self._release_bound()
        self.player.replace_current_item(None)
        self.current_url.set(None)
        self.is_playing.set(False)
        self.state.set(PlaybackState.IDLE)
        logger.info("playback_closed")

    def _release_bound(self) -> None:
        if self._bound is not None:
            self._bound.release()
            self._bound = None

    def _require_bound(self) -> None:
        if self._bound is None:
            raise NoVideoBoundError("No video is bound to the player")
