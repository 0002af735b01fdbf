"""Exception taxonomy shared by the store, workflow, import and auth layers.

Every error carries a short message that is safe to show to the user.
None of them is fatal to a session: the failed operation simply does not
happen and the previous state is kept.
"""


class JobTrackerError(Exception):
    """Base exception for all job tracker errors."""

    default_message = "An error occurred. Please try again."

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)

    @property
    def user_message(self) -> str:
        return str(self)


class ValidationError(JobTrackerError, ValueError):
    """Bad input shape or length, tied to a single field."""

    default_message = "Invalid input."

    def __init__(self, field: str, message: str | None = None):
        self.field = field
        super().__init__(message)


# ── Constraint violations ───────────────────────────────────────


class DuplicateKey(JobTrackerError):
    """A unique constraint in the store rejected the write."""

    default_message = "This record already exists."


class DuplicateReference(DuplicateKey):
    """A job with the same job_ref already exists."""

    default_message = "This job reference already exists."


class DuplicateRoleAssignment(DuplicateKey):
    """The user already holds the role."""

    default_message = "User already has this role."


# Role registry contract name
AlreadyAssigned = DuplicateRoleAssignment


class DuplicateEmployeeId(DuplicateKey):
    default_message = "This Employee ID is already registered."


class NotAssigned(JobTrackerError):
    """Revoking a role the user does not hold."""

    default_message = "User does not have this role."


# ── Access & lookup ─────────────────────────────────────────────


class PermissionDenied(JobTrackerError):
    default_message = "You do not have permission to do that."


class NotFound(JobTrackerError, LookupError):
    default_message = "The requested record was not found."


class AlreadyAllocated(JobTrackerError):
    """Another declarant claimed the job first."""

    default_message = "This job has already been taken."


class TransientIOError(JobTrackerError):
    """Store unavailable or busy; safe to retry by hand."""

    default_message = "The database is busy or unavailable. Please try again."


# ── Auth ────────────────────────────────────────────────────────


class AuthError(JobTrackerError):
    default_message = "Authentication failed."


class InvalidCredentials(AuthError):
    default_message = "Invalid Employee ID or Password"


# ── Bulk import ─────────────────────────────────────────────────


class BulkImportError(JobTrackerError):
    default_message = "Failed to import jobs."


class EmptyFile(BulkImportError):
    default_message = "The Excel file is empty"


class MissingColumns(BulkImportError):
    default_message = (
        "Excel file must contain 'Job Ref' and 'Importer/Exporter' columns"
    )

    def __init__(self, missing: list[str], message: str | None = None):
        self.missing = list(missing)
        super().__init__(message)


class NoValidRows(BulkImportError):
    default_message = "No valid job data found in the Excel file"


class UnreadableFile(BulkImportError):
    default_message = (
        "Failed to parse Excel file. Please check the file format."
    )
