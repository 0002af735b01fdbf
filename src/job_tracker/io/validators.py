"""Validation rules for job fields, sign-up data and import rows.

Each ``clean_*`` function returns the normalised value or raises
``ValidationError`` naming the offending field.
"""

from datetime import date, datetime

from job_tracker.errors import ValidationError
from job_tracker.utils.constants import (
    EMPLOYEE_ID_MAX_LENGTH,
    ETD_DATE_FORMATS,
    FULL_NAME_MAX_LENGTH,
    IMPORTER_NAME_MAX_LENGTH,
    JOB_REF_MAX_LENGTH,
    JOB_STATUSES,
    PASSWORD_MAX_LENGTH,
    PASSWORD_MIN_LENGTH,
    QUERY_DETAILS_MAX_LENGTH,
)


def cell_text(value) -> str:
    """Render a raw cell value as trimmed text ('' for empty)."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def _clean_required(value, field: str, label: str, max_length: int) -> str:
    text = cell_text(value)
    if not text:
        raise ValidationError(field, f"{label} is required")
    if len(text) > max_length:
        raise ValidationError(
            field, f"{label} must be at most {max_length} characters"
        )
    return text


def clean_job_ref(value) -> str:
    return _clean_required(
        value, "job_ref", "Job reference", JOB_REF_MAX_LENGTH
    )


def clean_importer_name(value) -> str:
    return _clean_required(
        value, "importer_name", "Importer/Exporter name",
        IMPORTER_NAME_MAX_LENGTH,
    )


def clean_query_details(value) -> str:
    return _clean_required(
        value, "query_details", "Query details", QUERY_DETAILS_MAX_LENGTH
    )


def clean_status(value) -> str:
    status = cell_text(value).lower()
    if status not in JOB_STATUSES:
        raise ValidationError("status", f"Unknown status '{value}'")
    return status


def parse_etd(value) -> str | None:
    """Normalise an ETD to an ISO date string, or None when blank.

    Accepts ``date``/``datetime`` objects (as openpyxl returns them) and
    text in any of ETD_DATE_FORMATS.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    text = cell_text(value)
    if not text:
        return None
    # Tolerate a trailing time part, e.g. '2026-03-01 00:00:00'
    candidate = text.split("T")[0].split(" ")[0]
    for fmt in ETD_DATE_FORMATS:
        try:
            return datetime.strptime(candidate, fmt).date().isoformat()
        except ValueError:
            continue
    raise ValidationError("etd", f"ETD '{text}' is not a valid date")


def clean_employee_id(value) -> str:
    return _clean_required(
        value, "employee_id", "Employee ID", EMPLOYEE_ID_MAX_LENGTH
    )


def clean_full_name(value) -> str:
    return _clean_required(
        value, "full_name", "Full name", FULL_NAME_MAX_LENGTH
    )


def check_password(password: str, confirm_password: str | None = None):
    """Length rules for a new password; optional confirmation match."""
    password = password or ""
    if len(password) < PASSWORD_MIN_LENGTH:
        raise ValidationError(
            "password",
            f"Password must be at least {PASSWORD_MIN_LENGTH} characters",
        )
    if len(password) > PASSWORD_MAX_LENGTH:
        raise ValidationError(
            "password",
            f"Password must be at most {PASSWORD_MAX_LENGTH} characters",
        )
    if confirm_password is not None and confirm_password != password:
        raise ValidationError("confirm_password", "Passwords do not match")


def validate_job_row(row: dict, row_num: int) -> list[str]:
    """Validate a normalised import row. Returns list of error strings."""
    errors = []
    for key, cleaner in (
        ("job_ref", clean_job_ref),
        ("importer_name", clean_importer_name),
        ("etd", parse_etd),
    ):
        try:
            cleaner(row.get(key))
        except ValidationError as e:
            errors.append(f"Row {row_num}: {e}")
    return errors
