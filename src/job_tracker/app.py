"""Application entry point: wires the store, change feed and services."""

import logging
import sys
from dataclasses import dataclass
from pathlib import Path

from job_tracker.auth.provider import LocalAuthProvider
from job_tracker.config import Config
from job_tracker.database.connection import DatabaseConnection
from job_tracker.database.repository import Repository
from job_tracker.database.schema import initialize_database
from job_tracker.sync.feed import ChangeFeed
from job_tracker.sync.live_view import LiveJobView
from job_tracker.utils.constants import APP_NAME, APP_VERSION, JOB_STATUS_LABELS
from job_tracker.workflow.lifecycle import JobLifecycle
from job_tracker.workflow.profiles import ProfileDirectory
from job_tracker.workflow.roles import RoleRegistry

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def configure_logging(level: str | None = None):
    """Configure root logging from ``level`` or ``Config.LOG_LEVEL``."""
    level = (level or Config.LOG_LEVEL or "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format=LOG_FORMAT,
        force=True,
    )


@dataclass
class AppServices:
    db: DatabaseConnection
    feed: ChangeFeed
    repo: Repository
    roles: RoleRegistry
    profiles: ProfileDirectory
    lifecycle: JobLifecycle
    auth: LocalAuthProvider

    def open_view(self, user_id: int) -> LiveJobView:
        """Open a live job view; close it (or use ``with``) when done."""
        return LiveJobView(self.lifecycle, self.feed, user_id).open()


def create_app(db_path: str | Path | None = None) -> AppServices:
    """Initialize the database and build the service graph."""
    db = DatabaseConnection(db_path or Config.DATABASE_PATH)
    initialize_database(db)

    feed = ChangeFeed()
    repo = Repository(db, feed=feed)
    roles = RoleRegistry(repo)
    return AppServices(
        db=db,
        feed=feed,
        repo=repo,
        roles=roles,
        profiles=ProfileDirectory(repo, roles),
        lifecycle=JobLifecycle(repo, roles),
        auth=LocalAuthProvider(repo),
    )


def main():
    """Initialize the database and print a status summary."""
    configure_logging()
    app = create_app()

    from job_tracker.reporting.aggregator import aggregate

    report = aggregate(app.repo.list_jobs())
    print(f"{APP_NAME} {APP_VERSION}")
    print(f"Database: {app.db.db_path}")
    print(f"Users:    {app.repo.profile_count()}")
    print(f"Jobs:     {report.total} "
          f"({report.completion_percent}% complete)")
    for status, count in report.counts.items():
        print(f"  {JOB_STATUS_LABELS[status]:<12} {count}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
