"""Standalone job export script: write all jobs to Excel or CSV."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from job_tracker.app import configure_logging, create_app
from job_tracker.errors import JobTrackerError


def main():
    if len(sys.argv) < 3:
        print("Usage: python export_jobs.py <output.xlsx|output.csv> <employee_id>")
        sys.exit(1)

    filepath = sys.argv[1]
    employee_id = sys.argv[2]

    configure_logging()
    app = create_app()
    actor = app.repo.get_profile_by_employee_id(employee_id)
    if actor is None:
        print(f"Unknown employee ID: {employee_id}")
        sys.exit(1)

    try:
        count = app.lifecycle.export(actor.id, filepath)
    except JobTrackerError as e:
        print(f"Export failed: {e.user_message}")
        sys.exit(1)

    print(f"Exported {count} jobs to {filepath}")


if __name__ == "__main__":
    main()
