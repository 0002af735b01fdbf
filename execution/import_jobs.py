"""Standalone job import script: load jobs from an Excel or CSV file."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from job_tracker.app import configure_logging, create_app
from job_tracker.errors import JobTrackerError
from job_tracker.io.bulk_import import import_job_file


def main():
    if len(sys.argv) < 3:
        print("Usage: python import_jobs.py <jobs.xlsx|jobs.csv> <employee_id>")
        sys.exit(1)

    filepath = sys.argv[1]
    employee_id = sys.argv[2]

    configure_logging()
    app = create_app()
    actor = app.repo.get_profile_by_employee_id(employee_id)
    if actor is None:
        print(f"Unknown employee ID: {employee_id}")
        sys.exit(1)

    print(f"Importing from: {filepath}")
    try:
        result = import_job_file(app.lifecycle, actor.id, filepath)
    except JobTrackerError as e:
        print(f"Import failed: {e.user_message}")
        sys.exit(1)

    print("\nResults:")
    print(f"  Imported: {result.inserted}")
    print(f"  Dropped:  {result.dropped}")


if __name__ == "__main__":
    main()
