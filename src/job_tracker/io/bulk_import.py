"""Bulk job import: header aliasing, row filtering and batch insert.

Accepted headers (first non-empty alias wins):

* reference: ``Job Ref`` or ``job_ref``
* importer: ``Importer/Exporter``, ``Importer Name`` or ``importer_name``
* ETD (optional): ``ETD`` or ``etd``

Rows without a reference or importer are dropped and only counted. Any
other bad row fails the whole batch before anything is written, and the
insert itself is a single transaction.
"""

from pathlib import Path

from job_tracker.database.models import Job
from job_tracker.errors import (
    EmptyFile,
    MissingColumns,
    NoValidRows,
    UnreadableFile,
    ValidationError,
)
from job_tracker.io.csv_handler import read_jobs_csv
from job_tracker.io.excel_handler import read_jobs_excel
from job_tracker.io.validators import (
    cell_text,
    clean_importer_name,
    clean_job_ref,
    parse_etd,
    validate_job_row,
)
from job_tracker.utils.constants import (
    ETD_COLUMNS,
    IMPORTER_NAME_COLUMNS,
    JOB_REF_COLUMNS,
)

# Errors listed in a failed-batch message before truncating
_MAX_REPORTED_ERRORS = 5


def _first_value(row: dict, aliases):
    for alias in aliases:
        value = row.get(alias)
        if cell_text(value):
            return value
    return None


def missing_columns(first_row: dict) -> list[str]:
    """Required fields with no header alias present in ``first_row``."""
    missing = []
    if not any(alias in first_row for alias in JOB_REF_COLUMNS):
        missing.append(JOB_REF_COLUMNS[0])
    if not any(alias in first_row for alias in IMPORTER_NAME_COLUMNS):
        missing.append(IMPORTER_NAME_COLUMNS[0])
    return missing


def normalize_rows(rows, allocated_by: int) -> tuple[list[Job], int]:
    """Map decoded rows onto new pending jobs.

    Returns ``(jobs, dropped)``. Raises EmptyFile, MissingColumns,
    ValidationError (bad ETD or over-long field, with row numbers) or
    NoValidRows.
    """
    rows = list(rows)
    if not rows:
        raise EmptyFile()
    missing = missing_columns(rows[0])
    if missing:
        raise MissingColumns(missing)

    jobs: list[Job] = []
    errors: list[str] = []
    dropped = 0
    # Row 1 is the header
    for row_num, row in enumerate(rows, start=2):
        normalised = {
            "job_ref": _first_value(row, JOB_REF_COLUMNS),
            "importer_name": _first_value(row, IMPORTER_NAME_COLUMNS),
            "etd": _first_value(row, ETD_COLUMNS),
        }
        if normalised["job_ref"] is None or normalised["importer_name"] is None:
            dropped += 1
            continue

        row_errors = validate_job_row(normalised, row_num)
        if row_errors:
            errors.extend(row_errors)
            continue

        jobs.append(Job(
            job_ref=clean_job_ref(normalised["job_ref"]),
            importer_name=clean_importer_name(normalised["importer_name"]),
            etd=parse_etd(normalised["etd"]),
            status="pending",
            allocated_by=allocated_by,
        ))

    if errors:
        shown = "; ".join(errors[:_MAX_REPORTED_ERRORS])
        if len(errors) > _MAX_REPORTED_ERRORS:
            shown += f" (+{len(errors) - _MAX_REPORTED_ERRORS} more)"
        raise ValidationError("rows", shown)
    if not jobs:
        raise NoValidRows()
    return jobs, dropped


def read_job_rows(filepath: str | Path) -> list[dict]:
    """Decode a spreadsheet into row dicts, picking the reader by suffix."""
    filepath = Path(filepath)
    suffix = filepath.suffix.lower()
    if suffix in (".xlsx", ".xlsm"):
        return read_jobs_excel(filepath)
    if suffix == ".csv":
        return read_jobs_csv(filepath)
    raise UnreadableFile(f"Unsupported file type '{suffix or filepath.name}'")


def import_job_file(lifecycle, actor_id: int, filepath: str | Path):
    """Decode ``filepath`` and import it as ``actor_id``."""
    rows = read_job_rows(filepath)
    return lifecycle.import_rows(actor_id, rows)
