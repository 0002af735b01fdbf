"""In-process change feed for table mutations.

The repository publishes one ``ChangeEvent`` per committed write. Viewers
subscribe per table and get every insert/update/delete; there is no finer
filtering, so subscribers re-fetch whatever they display.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable

logger = logging.getLogger(__name__)

INSERT = "INSERT"
UPDATE = "UPDATE"
DELETE = "DELETE"
ALL_EVENTS = frozenset({INSERT, UPDATE, DELETE})


@dataclass(frozen=True)
class ChangeEvent:
    table: str
    event: str
    row_ids: tuple = field(default_factory=tuple)


class Subscription:
    """Handle returned by ``ChangeFeed.subscribe``.

    ``unsubscribe()`` is idempotent; once it returns, the callback is not
    invoked again.
    """

    def __init__(self, feed: "ChangeFeed", table: str,
                 callback: Callable[[ChangeEvent], None],
                 events: frozenset):
        self._feed = feed
        self.table = table
        self.callback = callback
        self.events = events
        self.active = True

    def unsubscribe(self):
        if self.active:
            self._feed._remove(self)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.unsubscribe()
        return False


class ChangeFeed:
    """Thread-safe publish/subscribe hub keyed by table name."""

    def __init__(self):
        self._lock = threading.RLock()
        self._subscriptions: dict[str, list[Subscription]] = {}

    def subscribe(self, table: str,
                  callback: Callable[[ChangeEvent], None],
                  events=ALL_EVENTS) -> Subscription:
        events = frozenset(events)
        unknown = events - ALL_EVENTS
        if unknown:
            raise ValueError(f"Unknown change events: {sorted(unknown)}")
        sub = Subscription(self, table, callback, events)
        with self._lock:
            self._subscriptions.setdefault(table, []).append(sub)
        logger.debug("Subscribed to %s (%s)", table, ", ".join(sorted(events)))
        return sub

    def _remove(self, sub: Subscription):
        with self._lock:
            sub.active = False
            subs = self._subscriptions.get(sub.table, [])
            if sub in subs:
                subs.remove(sub)
        logger.debug("Unsubscribed from %s", sub.table)

    def subscriber_count(self, table: str | None = None) -> int:
        with self._lock:
            if table is not None:
                return len(self._subscriptions.get(table, []))
            return sum(len(s) for s in self._subscriptions.values())

    def publish(self, event: ChangeEvent) -> int:
        """Deliver ``event`` to every matching subscriber.

        A subscriber that raises is logged and skipped; the rest still
        receive the event. Returns how many callbacks ran.
        """
        with self._lock:
            targets = [
                s for s in self._subscriptions.get(event.table, [])
                if event.event in s.events
            ]
        delivered = 0
        for sub in targets:
            # Unsubscribed while an earlier callback was running
            if not sub.active:
                continue
            try:
                sub.callback(event)
                delivered += 1
            except Exception:
                logger.exception(
                    "Change subscriber failed for %s %s",
                    event.table, event.event,
                )
        return delivered
