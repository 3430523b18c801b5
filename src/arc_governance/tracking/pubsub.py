from __future__ import annotations

import itertools
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from arc_governance.observability.logging import get_logger

Callback = Callable[[str, Any], None]


def topic_matches(pattern: str, topic: str) -> bool:
    """Hierarchical match: `TxTracking.GenesisProtocol` covers every topic below it."""
    return topic == pattern or topic.startswith(f"{pattern}.")


@dataclass(slots=True)
class Subscription:
    bus: EventBus
    key: int
    topics: tuple[str, ...]
    _closed: bool = False

    @property
    def closed(self) -> bool:
        return self._closed

    def unsubscribe(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.bus._remove(self.key)


@dataclass(slots=True)
class EventBus:
    _subscribers: dict[int, tuple[tuple[str, ...], Callback]] = field(default_factory=dict)
    _keys: itertools.count = field(default_factory=itertools.count)

    def subscribe(self, topics: str | Iterable[str], callback: Callback) -> Subscription:
        topic_list = (topics,) if isinstance(topics, str) else tuple(topics)
        if not topic_list:
            raise ValueError("at least one topic is required")
        key = next(self._keys)
        self._subscribers[key] = (topic_list, callback)
        return Subscription(bus=self, key=key, topics=topic_list)

    def publish(self, topic: str, info: Any) -> int:
        """Deliver synchronously; returns the number of callbacks invoked."""
        logger = get_logger("event_bus")
        delivered = 0
        for key, (patterns, callback) in list(self._subscribers.items()):
            # a callback earlier in this loop may have unsubscribed this one
            if key not in self._subscribers:
                continue
            if not any(topic_matches(pattern, topic) for pattern in patterns):
                continue
            try:
                callback(topic, info)
            except Exception:
                logger.exception("subscriber_callback_failed", topic=topic, subscription=key)
            delivered += 1
        return delivered

    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def _remove(self, key: int) -> None:
        self._subscribers.pop(key, None)
