"""Media player interface and the headless player used by the API.

The player does not decode video itself: it mirrors playback state for a
remote renderer, which reports end-of-media back through the API.
"""

import itertools
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

import structlog

logger = structlog.get_logger(__name__)

EndOfMediaCallback = Callable[["MediaItem"], None]


class MediaItem:
    """A playable item bound to one URL.

    End-of-media notifications are keyed by item instance, so two items
    created for the same URL are observed independently.
    """

    def __init__(self, url: str) -> None:
        self.url = url
        self.position = 0.0

    def __repr__(self) -> str:
        return f"MediaItem(url={self.url!r}, id={id(self):#x})"


@dataclass(frozen=True)
class ObserverToken:
    """Registration handle returned by EndOfMediaCenter.add_observer."""

    token_id: int
    item: MediaItem


class EndOfMediaCenter:
    """Notification channel for end-of-media events, keyed by item instance."""

    def __init__(self) -> None:
        self._observers: Dict[int, Tuple[MediaItem, EndOfMediaCallback]] = {}
        self._ids = itertools.count(1)

    def add_observer(self, item: MediaItem, callback: EndOfMediaCallback) -> ObserverToken:
        token = ObserverToken(token_id=next(self._ids), item=item)
        self._observers[token.token_id] = (item, callback)
        return token

    def remove_observer(self, token: ObserverToken) -> None:
        """Remove a registration. Removing twice is a no-op."""
        self._observers.pop(token.token_id, None)

    def observer_count(self, item: Optional[MediaItem] = None) -> int:
        if item is None:
            return len(self._observers)
        return sum(1 for observed, _ in self._observers.values() if observed is item)

    def post_end_of_media(self, item: MediaItem) -> int:
        """Deliver an end-of-media event to the observers of `item`.

        Returns:
            Number of observers notified.
        """
        callbacks: List[EndOfMediaCallback] = [
            callback for observed, callback in list(self._observers.values()) if observed is item
        ]
        for callback in callbacks:
            callback(item)
        return len(callbacks)


class MediaPlayer(ABC):
    """Single-item media player."""

    notifications: EndOfMediaCenter

    @property
    @abstractmethod
    def current_item(self) -> Optional[MediaItem]:
        pass

    @property
    @abstractmethod
    def muted(self) -> bool:
        pass

    @muted.setter
    @abstractmethod
    def muted(self, value: bool) -> None:
        pass

    @abstractmethod
    def play(self) -> None:
        pass

    @abstractmethod
    def pause(self) -> None:
        pass

    @abstractmethod
    def seek(self, position: float) -> None:
        """Move the current item to `position` seconds."""
        pass

    @abstractmethod
    def replace_current_item(self, item: Optional[MediaItem]) -> None:
        pass


class HeadlessMediaPlayer(MediaPlayer):
    """Player that keeps playback state without rendering.

    A remote renderer follows this state and reports the end of the current
    item through finish_current_item().
    """

    def __init__(self) -> None:
        self.notifications = EndOfMediaCenter()
        self._current_item: Optional[MediaItem] = None
        self._muted = False
        self.rate = 0.0

    @property
    def current_item(self) -> Optional[MediaItem]:
        return self._current_item

    @property
    def muted(self) -> bool:
        return self._muted

    @muted.setter
    def muted(self, value: bool) -> None:
        self._muted = value

    @property
    def position(self) -> float:
        return self._current_item.position if self._current_item else 0.0

    def play(self) -> None:
        self.rate = 1.0

    def pause(self) -> None:
        self.rate = 0.0

    def seek(self, position: float) -> None:
        if self._current_item is not None:
            self._current_item.position = max(0.0, position)

    def replace_current_item(self, item: Optional[MediaItem]) -> None:
        self._current_item = item
        logger.debug("player_item_replaced", url=item.url if item else None)

    def finish_current_item(self) -> int:
        """Mark the current item as played to the end and notify its observers.

        Returns:
            Number of observers notified, 0 when nothing is loaded.
        """
        item = self._current_item
        if item is None:
            return 0
        return self.notifications.post_end_of_media(item)
