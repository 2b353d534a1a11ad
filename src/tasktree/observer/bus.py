# src/tasktree/observer/bus.py

from __future__ import annotations

import contextlib
import logging
from typing import Callable, Generic, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


class ChangeBus(Generic[T]):
    """
    Synchronous publish/subscribe channel.

    Subscribers are called in subscription order. A failing subscriber is
    logged and skipped; it never stops the others and never reaches the
    publisher. The list only shrinks on explicit unsubscribe.
    """

    def __init__(self) -> None:
        self._subscribers: list[Callable[[T], None]] = []

    def subscribe(self, fn: Callable[[T], None]) -> Callable[[], None]:
        self._subscribers.append(fn)

        def _unsubscribe() -> None:
            self.unsubscribe(fn)

        return _unsubscribe

    def unsubscribe(self, fn: Callable[[T], None]) -> None:
        with contextlib.suppress(ValueError):
            self._subscribers.remove(fn)

    def _notify(self, payload: T) -> None:
        # Snapshot: a subscriber may unsubscribe itself during dispatch.
        for fn in list(self._subscribers):
            try:
                fn(payload)
            except Exception:
                logger.exception("Subscriber %r failed", fn)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def clear_subscribers(self) -> None:
        self._subscribers = []
