"""Feed selection: the cursor into the published video collection."""

from typing import Optional, Tuple

import structlog

from reelfeed.models.video import VideoRecord
from reelfeed.services.observable import Published, PublishedList, Unsubscribe
from reelfeed.services.playback import LoopingPlaybackController

logger = structlog.get_logger(__name__)


class FeedSelection:
    """Tracks the selected video and keeps the player bound to it.

    The index is None while the collection is empty and stays in
    [0, len) otherwise. Advancing and retreating wrap around.

    The selected video is remembered by id across refreshes: when a refill
    publishes it again, the selection moves back to it.
    """

    def __init__(
        self,
        videos: PublishedList[VideoRecord],
        controller: Optional[LoopingPlaybackController] = None,
    ) -> None:
        self.videos = videos
        self.controller = controller
        self.index: Published[Optional[int]] = Published(None, name="selected_index")
        self._selected_id: Optional[str] = None
        self._unsubscribe: Optional[Unsubscribe] = videos.subscribe(self._on_videos_changed)
        self._on_videos_changed(videos.value)

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def current(self) -> Optional[VideoRecord]:
        index = self.index.value
        if index is None or index >= len(self.videos):
            return None
        return self.videos[index]

    def advance(self) -> Optional[int]:
        """Select the next video, wrapping to the first. No-op when empty."""
        return self._step(1)

    def retreat(self) -> Optional[int]:
        """Select the previous video, wrapping to the last. No-op when empty."""
        return self._step(-1)

    def select(self, index: int) -> int:
        """Select a video by position.

        Raises:
            IndexError: If index is outside the collection.
        """
        count = len(self.videos)
        if not 0 <= index < count:
            raise IndexError(f"Index {index} out of range for {count} videos")
        self._set_index(index)
        return index

    def _step(self, delta: int) -> Optional[int]:
        count = len(self.videos)
        if count == 0:
            return None
        current = self.index.value or 0
        new_index = (current + delta) % count
        self._set_index(new_index)
        logger.debug("feed_selection_moved", index=new_index, count=count)
        return new_index

    def _on_videos_changed(self, videos: Tuple[VideoRecord, ...]) -> None:
        index = self.index.value
        if not videos:
            if index is not None:
                self.index.set(None)
            return

        position = self._position_of_selected(videos)
        if position is not None:
            if position != index:
                self._set_index(position)
        elif index is None:
            # Placeholder until the remembered video is published again
            self._set_index(0, remember=self._selected_id is None)
        elif index >= len(videos):
            self._set_index(len(videos) - 1)

    def _position_of_selected(self, videos: Tuple[VideoRecord, ...]) -> Optional[int]:
        if self._selected_id is None:
            return None
        for position, record in enumerate(videos):
            if record.video_id == self._selected_id:
                return position
        return None

    def _set_index(self, index: int, remember: bool = True) -> None:
        self.index.set(index)
        record = self.videos[index]
        if remember:
            self._selected_id = record.video_id
        if self.controller is None:
            return
        url = str(record.local_path)
        if self.controller.current_url.value != url:
            self.controller.bind(url)
