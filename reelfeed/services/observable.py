"""Observable state containers.

Published values hold state that presentation code reads and subscribes to.
All mutations are applied on the owning event loop: when a container is bound
to a loop and mutated from another thread, the mutation is handed off with
loop.call_soon_threadsafe instead of being applied in place.
"""

import asyncio
from typing import Callable, Generic, List, Optional, Sequence, Tuple, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")
V = TypeVar("V")

Subscriber = Callable[[T], None]
Unsubscribe = Callable[[], None]


class Published(Generic[T]):
    """A value with change subscribers."""

    def __init__(
        self,
        value: T,
        name: str = "",
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        """
        Args:
            value: Initial value.
            name: Name used in log entries.
            loop: Owning event loop. Mutations from other threads are
                scheduled onto it.
        """
        self.name = name
        self._value = value
        self._loop = loop
        self._subscribers: List[Subscriber[T]] = []

    @property
    def value(self) -> T:
        return self._value

    def bind_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    def subscribe(self, callback: Subscriber[T]) -> Unsubscribe:
        """Register a callback invoked with the new value after each change.

        Returns:
            A function that removes the subscription.
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def set(self, value: T) -> None:
        self._mutate(lambda _: value)

    def _mutate(self, update: Callable[[T], T]) -> None:
        loop = self._loop
        if loop is not None and self._needs_handoff():
            loop.call_soon_threadsafe(self._apply, update)
            return
        self._apply(update)

    def _needs_handoff(self) -> bool:
        if self._loop is None or self._loop.is_closed() or not self._loop.is_running():
            return False
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        return running is not self._loop

    def _apply(self, update: Callable[[T], T]) -> None:
        self._value = update(self._value)
        for callback in list(self._subscribers):
            try:
                callback(self._value)
            except Exception:
                logger.exception("subscriber_failed", published=self.name)


class PublishedList(Published[Tuple[V, ...]]):
    """An ordered collection published as immutable tuple snapshots."""

    def __init__(
        self,
        items: Sequence[V] = (),
        name: str = "",
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        super().__init__(tuple(items), name=name, loop=loop)

    def append(self, item: V) -> None:
        self._mutate(lambda current: current + (item,))

    def clear(self) -> None:
        self._mutate(lambda _: ())

    def replace(self, items: Sequence[V]) -> None:
        snapshot = tuple(items)
        self._mutate(lambda _: snapshot)

    def __len__(self) -> int:
        return len(self._value)

    def __getitem__(self, index: int) -> V:
        return self._value[index]
