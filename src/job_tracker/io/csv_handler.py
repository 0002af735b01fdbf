"""CSV import and export for jobs."""

import csv
import io
from pathlib import Path

from job_tracker.database.repository import Repository
from job_tracker.errors import UnreadableFile
from job_tracker.utils.constants import JOB_EXPORT_HEADERS, JOB_STATUS_LABELS


def read_jobs_csv(source: str | Path | bytes) -> list[dict]:
    """Decode CSV into a list of ``{header: value}`` dicts.

    Accepts a path or raw bytes (UTF-8, with or without BOM). Rows whose
    cells are all blank are skipped.
    """
    try:
        if isinstance(source, (bytes, bytearray)):
            text = bytes(source).decode("utf-8-sig")
        else:
            text = Path(source).read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as e:
        raise UnreadableFile() from e

    reader = csv.DictReader(io.StringIO(text))
    records = []
    for row in reader:
        record = {
            key.strip(): value for key, value in row.items()
            if key and key.strip()
        }
        if not any((v or "").strip() for v in record.values()
                   if isinstance(v, str)):
            continue
        records.append(record)
    return records


def export_jobs_csv(repo: Repository, filepath: str | Path) -> int:
    """Export all jobs to CSV. Returns the number of rows written."""
    jobs = repo.list_jobs()
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    with open(filepath, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(JOB_EXPORT_HEADERS)
        for job in jobs:
            writer.writerow([
                job.job_ref,
                job.importer_name,
                job.etd or "",
                JOB_STATUS_LABELS.get(job.status, job.status),
                job.query_details or "",
                job.allocated_by_name,
                job.assignee_label,
                job.received_at or "",
            ])
    return len(jobs)
