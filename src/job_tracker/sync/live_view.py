"""LiveJobView: one user's dashboard data, kept fresh from the change feed.

The view owns exactly one subscription to the ``jobs`` table for as long as
it is open. Any insert, update or delete triggers a full re-fetch of what
the user may see, plus the report for users who can view reports::

    with LiveJobView(lifecycle, feed, user_id) as view:
        view.add_listener(redraw)
        ...
    # closed: no further refreshes or listener calls
"""

import logging
import threading
from typing import Callable, Optional

from job_tracker.errors import TransientIOError
from job_tracker.reporting.aggregator import JobReport, aggregate
from job_tracker.sync.feed import ChangeEvent, ChangeFeed, Subscription
from job_tracker.workflow.lifecycle import JobLifecycle, JobListing

logger = logging.getLogger(__name__)


class LiveJobView:
    """Per-session job listing and report, refreshed on every change."""

    TABLE = "jobs"

    def __init__(self, lifecycle: JobLifecycle, feed: ChangeFeed,
                 user_id: int):
        self.lifecycle = lifecycle
        self.feed = feed
        self.user_id = user_id
        self.listing = JobListing()
        self.report: Optional[JobReport] = None
        self.last_error: Optional[TransientIOError] = None
        self.refresh_count = 0
        self._subscription: Optional[Subscription] = None
        self._listeners: list[Callable[["LiveJobView"], None]] = []
        self._lock = threading.RLock()

    @property
    def is_open(self) -> bool:
        return self._subscription is not None and self._subscription.active

    def open(self) -> "LiveJobView":
        """Subscribe to job changes and load the initial data."""
        with self._lock:
            if self.is_open:
                return self
            self._subscription = self.feed.subscribe(
                self.TABLE, self._on_change
            )
        logger.debug("Live view opened for user %s", self.user_id)
        self.refresh()
        return self

    def close(self):
        """Unsubscribe. Safe to call more than once."""
        with self._lock:
            if self._subscription is None:
                return
            self._subscription.unsubscribe()
            self._subscription = None
            self._listeners.clear()
        logger.debug("Live view closed for user %s", self.user_id)

    def __enter__(self):
        return self.open()

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def add_listener(self, callback: Callable[["LiveJobView"], None]):
        """Call ``callback(view)`` after each successful refresh."""
        with self._lock:
            self._listeners.append(callback)

    def _on_change(self, event: ChangeEvent):
        logger.debug("Live view for user %s got %s on %s",
                     self.user_id, event.event, event.table)
        self.refresh()

    def refresh(self) -> bool:
        """Re-fetch the listing (and report). Returns False on a store error.

        On failure the previous listing and report are kept.
        """
        with self._lock:
            if not self.is_open:
                return False
            try:
                listing = self.lifecycle.list_for(self.user_id)
                report = None
                if self.lifecycle.roles.has_capability(
                    self.user_id, "reports_view"
                ):
                    report = aggregate(self.lifecycle.repo.list_jobs())
            except TransientIOError as e:
                self.last_error = e
                logger.warning("Live view refresh failed for user %s: %s",
                               self.user_id, e)
                return False

            self.listing = listing
            self.report = report
            self.last_error = None
            self.refresh_count += 1
            listeners = list(self._listeners)

        for callback in listeners:
            if not self.is_open:
                break
            callback(self)
        return True
