"""Excel (XLSX) import and export for jobs."""

import zipfile
from io import BytesIO
from pathlib import Path

from openpyxl import Workbook, load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from job_tracker.database.repository import Repository
from job_tracker.errors import UnreadableFile
from job_tracker.io.validators import cell_text
from job_tracker.utils.constants import JOB_EXPORT_HEADERS, JOB_STATUS_LABELS


def read_jobs_excel(source: str | Path | bytes) -> list[dict]:
    """Decode the first sheet into a list of ``{header: value}`` dicts.

    The first row is the header. Blank rows are skipped; blank cells come
    through as None. Dates stay ``datetime`` objects.
    """
    if isinstance(source, (bytes, bytearray)):
        source = BytesIO(source)
    try:
        wb = load_workbook(source, read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, OSError, KeyError) as e:
        raise UnreadableFile() from e

    try:
        ws = wb.worksheets[0]
        rows = list(ws.iter_rows(values_only=True))
    finally:
        wb.close()

    if not rows:
        return []

    header = [cell_text(h) for h in rows[0]]
    records = []
    for values in rows[1:]:
        if all(cell_text(v) == "" for v in values):
            continue
        records.append({
            name: value for name, value in zip(header, values) if name
        })
    return records


def export_jobs_excel(repo: Repository, filepath: str | Path) -> int:
    """Export all jobs to an Excel workbook. Returns row count."""
    jobs = repo.list_jobs()
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    wb = Workbook()
    ws = wb.active
    ws.title = "Jobs"
    ws.append(JOB_EXPORT_HEADERS)

    for job in jobs:
        ws.append([
            job.job_ref,
            job.importer_name,
            job.etd_date,
            JOB_STATUS_LABELS.get(job.status, job.status),
            job.query_details or "",
            job.allocated_by_name,
            job.assignee_label,
            str(job.received_at or ""),
        ])

    # Auto-fit column widths (approximate)
    for col in ws.columns:
        max_len = max(len(str(cell.value or "")) for cell in col)
        ws.column_dimensions[col[0].column_letter].width = min(max_len + 2, 40)

    wb.save(filepath)
    return len(jobs)
