"""Synchronous in-process publish/subscribe bus.

Subscribers are keyed by topic (the tracker uses operation ids) and invoked
on the publisher's call stack in registration order. A failing subscriber is
logged and skipped; it never affects other subscribers or the publisher.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Callback = Callable[[T], None]
Unsubscribe = Callable[[], None]


class EventBus(Generic[T]):
    def __init__(self) -> None:
        self._subscribers: dict[str, list[Callback[T]]] = {}
        self._lock = threading.Lock()

    def subscribe(self, topic: str, callback: Callback[T]) -> Unsubscribe:
        with self._lock:
            self._subscribers.setdefault(topic, []).append(callback)

        def _unsubscribe() -> None:
            self.unsubscribe(topic, callback)

        return _unsubscribe

    def unsubscribe(self, topic: str, callback: Callback[T]) -> None:
        with self._lock:
            callbacks = self._subscribers.get(topic)
            if not callbacks:
                return
            for index, registered in enumerate(callbacks):
                if registered is callback:
                    del callbacks[index]
                    break
            if not callbacks:
                del self._subscribers[topic]

    def subscriber_count(self, topic: str) -> int:
        with self._lock:
            return len(self._subscribers.get(topic, ()))

    def publish(
        self, topic: str, payload: T, copy: Callable[[T], T] | None = None
    ) -> None:
        """Deliver ``payload`` to every subscriber of ``topic``.

        With ``copy`` each subscriber receives its own copy, so one
        subscriber mutating its payload is invisible to the next.
        """
        with self._lock:
            callbacks = list(self._subscribers.get(topic, ()))
        for callback in callbacks:
            self.deliver(topic, callback, copy(payload) if copy is not None else payload)

    @staticmethod
    def deliver(topic: str, callback: Callback[T], payload: T) -> None:
        try:
            callback(payload)
        except Exception:
            logger.exception("Subscriber for %s raised; skipping it", topic)
