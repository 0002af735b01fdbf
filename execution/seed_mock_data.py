"""Seed the database with realistic mock data for development and demos.

Creates:
  - 6 users (all password "password123") across the four roles
  - 12 jobs in every status, some unallocated

Run:
    python -m execution.seed_mock_data          (from project root)
    python execution/seed_mock_data.py          (direct)

WARNING: This script INSERTS data. Run against a fresh DB; delete
data/job_tracker.db first for a clean start.
"""

import os
import sys

# Ensure project src is on the path
_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, os.path.join(_ROOT, "src"))

from job_tracker.app import AppServices, configure_logging, create_app

PASSWORD = "password123"

USERS = [
    # (employee_id, full_name, roles)
    ("EMP-001", "Grace Mensah", ["admin"]),
    ("EMP-002", "Tom Whitaker", ["manager"]),
    ("EMP-003", "Priya Nair", ["allocater"]),
    ("EMP-004", "Daniel Okafor", ["declarant"]),
    ("EMP-005", "Lucy Brennan", ["declarant"]),
    ("EMP-006", "Sam Patel", ["allocater", "declarant"]),
]

JOBS = [
    # (job_ref, importer, etd, assignee employee_id, status, query)
    ("JR-1001", "Acme Ltd", "2026-03-02", None, "pending", None),
    ("JR-1002", "Baltic Freight", "2026-03-04", None, "pending", None),
    ("JR-1003", "Coastal Imports", None, None, "pending", None),
    ("JR-1004", "Delta Textiles", "2026-03-05", "EMP-004", "processing", None),
    ("JR-1005", "Eastern Spice Co", "2026-03-06", "EMP-004", "query",
     "Commercial invoice missing HS codes"),
    ("JR-1006", "Fjord Seafood", "2026-03-06", "EMP-004", "complete", None),
    ("JR-1007", "Granite Works", "2026-03-07", "EMP-005", "processing", None),
    ("JR-1008", "Harbour Autos", "2026-03-09", "EMP-005", "complete", None),
    ("JR-1009", "Island Coffee", None, "EMP-005", "complete", None),
    ("JR-1010", "Jade Electronics", "2026-03-10", "EMP-006", "query",
     "Certificate of origin unsigned"),
    ("JR-1011", "Kestrel Pharma", "2026-03-12", "EMP-006", "pending", None),
    ("JR-1012", "Lumen Lighting", "2026-03-13", None, "pending", None),
]


def seed(app: AppServices):
    """Populate the database with mock data."""

    # ── 1. Users ──────────────────────────────────────────────────
    print("Creating users...")
    ids = {}
    for employee_id, full_name, roles in USERS:
        session = app.auth.sign_up(employee_id, PASSWORD, full_name)
        ids[employee_id] = session.user_id
        for role in roles:
            app.repo.add_role(session.user_id, role)
    app.auth.sign_out()
    print(f"  {len(ids)} users")

    # ── 2. Jobs ───────────────────────────────────────────────────
    print("Creating jobs...")
    allocater = ids["EMP-003"]
    admin = ids["EMP-001"]
    for job_ref, importer, etd, assignee, status, query in JOBS:
        assignee_id = ids[assignee] if assignee else None
        job = app.lifecycle.create(
            allocater, job_ref, importer, etd=etd, allocated_to=assignee_id,
        )
        if status != "pending":
            app.lifecycle.update_status(admin, job.id, status, query)
    print(f"  {len(JOBS)} jobs")


def main():
    configure_logging("WARNING")
    app = create_app()
    if app.repo.profile_count():
        print("Database already has users; delete it first for a clean seed.")
        sys.exit(1)
    seed(app)
    print(f"\nDone. All users sign in with password '{PASSWORD}'.")


if __name__ == "__main__":
    main()
