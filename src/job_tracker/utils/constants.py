"""Application-wide constants."""

APP_NAME = "Job Tracker"
APP_VERSION = "1.0.0"

# Job statuses, in workflow order
JOB_STATUSES = ["pending", "processing", "query", "complete"]

JOB_STATUS_LABELS = {
    "pending": "Pending",
    "processing": "Processing",
    "query": "Query",
    "complete": "Complete",
}

# Field limits
JOB_REF_MAX_LENGTH = 100
IMPORTER_NAME_MAX_LENGTH = 200
QUERY_DETAILS_MAX_LENGTH = 1000
EMPLOYEE_ID_MAX_LENGTH = 50
FULL_NAME_MAX_LENGTH = 100
PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 100

# ── Roles (capability sets) ──────────────────────────────────────
ROLE_NAMES = [
    "admin",
    "manager",
    "allocater",
    "declarant",
]

# Admin & manager are equivalent; both listed explicitly below
FULL_ACCESS_ROLES = ["admin", "manager"]

# Capability keys: each maps to an action in the app
CAPABILITY_KEYS = [
    # Job actions
    "jobs_view_all",
    "jobs_add",
    "jobs_edit",
    "jobs_delete",
    "jobs_allocate",
    "jobs_import",
    "jobs_export",
    "jobs_update_any_status",
    # Declarant actions
    "jobs_claim",
    "jobs_update_own_status",
    "jobs_view_own",
    "jobs_view_unallocated",
    # Reporting & administration
    "reports_view",
    "roles_manage",
    "profiles_manage",
]

CAPABILITY_LABELS = {
    "jobs_view_all": "View All Jobs",
    "jobs_add": "Add Jobs",
    "jobs_edit": "Edit Jobs",
    "jobs_delete": "Delete Jobs",
    "jobs_allocate": "Allocate Jobs to Declarants",
    "jobs_import": "Import Jobs from Excel",
    "jobs_export": "Export Jobs",
    "jobs_update_any_status": "Update Status of Any Job",
    "jobs_claim": "Take Unallocated Jobs",
    "jobs_update_own_status": "Update Status of Own Jobs",
    "jobs_view_own": "View Own Jobs",
    "jobs_view_unallocated": "View Unallocated Jobs",
    "reports_view": "View Reports",
    "roles_manage": "Manage User Roles",
    "profiles_manage": "Manage User Profiles",
}

ROLE_CAPABILITIES: dict[str, list[str]] = {
    "admin": list(CAPABILITY_KEYS),
    "manager": list(CAPABILITY_KEYS),
    "allocater": [
        "jobs_view_all", "jobs_add", "jobs_edit", "jobs_allocate",
        "jobs_import", "jobs_export",
    ],
    "declarant": [
        "jobs_claim", "jobs_update_own_status",
        "jobs_view_own", "jobs_view_unallocated",
    ],
}

# ── Bulk import header aliases (first match wins) ────────────────
JOB_REF_COLUMNS = ("Job Ref", "job_ref")
IMPORTER_NAME_COLUMNS = ("Importer/Exporter", "Importer Name", "importer_name")
ETD_COLUMNS = ("ETD", "etd")

# Export headers mirror the import aliases so exports re-import cleanly
JOB_EXPORT_HEADERS = [
    "Job Ref", "Importer/Exporter", "ETD", "Status", "Query Details",
    "Allocated By", "Allocated To", "Received",
]

# Accepted ETD text formats (ISO first)
ETD_DATE_FORMATS = ["%Y-%m-%d", "%d/%m/%Y", "%d-%m-%Y", "%Y/%m/%d"]
