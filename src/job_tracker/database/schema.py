"""Database schema definition, initialization, and migrations."""

SCHEMA_VERSION = 1

# Each statement is a separate string to avoid executescript issues
_SCHEMA_STATEMENTS = [
    # Profiles (one per authenticated employee)
    """CREATE TABLE IF NOT EXISTS profiles (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        employee_id TEXT NOT NULL UNIQUE,
        full_name TEXT NOT NULL,
        email TEXT NOT NULL UNIQUE,
        password_hash TEXT NOT NULL,
        is_active INTEGER NOT NULL DEFAULT 1,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )""",

    # Role assignments: a user may hold several roles, each once
    """CREATE TABLE IF NOT EXISTS user_roles (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER NOT NULL,
        role TEXT NOT NULL
            CHECK (role IN ('admin', 'manager', 'allocater', 'declarant')),
        assigned_by INTEGER,
        assigned_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (user_id) REFERENCES profiles(id) ON DELETE CASCADE,
        FOREIGN KEY (assigned_by) REFERENCES profiles(id) ON DELETE SET NULL,
        UNIQUE(user_id, role)
    )""",

    # Jobs table
    """CREATE TABLE IF NOT EXISTS jobs (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        job_ref TEXT NOT NULL UNIQUE,
        importer_name TEXT NOT NULL,
        etd DATE,
        status TEXT NOT NULL DEFAULT 'pending'
            CHECK (status IN ('pending', 'processing', 'query', 'complete')),
        query_details TEXT,
        allocated_by INTEGER NOT NULL,
        allocated_to INTEGER,
        received_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (allocated_by) REFERENCES profiles(id) ON DELETE RESTRICT,
        FOREIGN KEY (allocated_to) REFERENCES profiles(id) ON DELETE SET NULL,
        CHECK (
            (status = 'query') =
            (query_details IS NOT NULL AND length(trim(query_details)) > 0)
        )
    )""",

    # Audit trail
    """CREATE TABLE IF NOT EXISTS activity_log (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER,
        action TEXT NOT NULL,
        entity_type TEXT NOT NULL,
        entity_id INTEGER,
        entity_label TEXT,
        details TEXT,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (user_id) REFERENCES profiles(id) ON DELETE SET NULL
    )""",

    # Schema version tracking
    """CREATE TABLE IF NOT EXISTS schema_version (
        version INTEGER PRIMARY KEY,
        applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )""",

    # Indexes
    "CREATE INDEX IF NOT EXISTS idx_jobs_status ON jobs(status)",
    "CREATE INDEX IF NOT EXISTS idx_jobs_allocated_to ON jobs(allocated_to)",
    "CREATE INDEX IF NOT EXISTS idx_user_roles_role ON user_roles(role)",
    "CREATE INDEX IF NOT EXISTS idx_activity_entity "
    "ON activity_log(entity_type, entity_id)",

    # Timestamps
    """CREATE TRIGGER IF NOT EXISTS update_jobs_timestamp AFTER UPDATE ON jobs
    WHEN NEW.updated_at = OLD.updated_at BEGIN
        UPDATE jobs SET updated_at = CURRENT_TIMESTAMP WHERE id = NEW.id;
    END""",

    """CREATE TRIGGER IF NOT EXISTS update_profiles_timestamp
    AFTER UPDATE ON profiles
    WHEN NEW.updated_at = OLD.updated_at BEGIN
        UPDATE profiles SET updated_at = CURRENT_TIMESTAMP WHERE id = NEW.id;
    END""",

    # received_at and allocated_by are fixed at creation
    """CREATE TRIGGER IF NOT EXISTS jobs_immutable_fields
    BEFORE UPDATE OF received_at, allocated_by ON jobs
    WHEN NEW.received_at IS NOT OLD.received_at
      OR NEW.allocated_by IS NOT OLD.allocated_by BEGIN
        SELECT RAISE(ABORT, 'received_at and allocated_by are immutable');
    END""",

    "INSERT OR REPLACE INTO schema_version (version) VALUES (1)",
]


def _get_schema_version(conn) -> int:
    """Get the current schema version, or 0 if no schema exists."""
    try:
        row = conn.execute(
            "SELECT MAX(version) as v FROM schema_version"
        ).fetchone()
        return row["v"] if row and row["v"] else 0
    except Exception:
        return 0


def initialize_database(db_connection):
    """Create all tables, indexes and triggers.

    Safe to call on every start: a database already at SCHEMA_VERSION
    is left untouched.
    """
    with db_connection.get_connection() as conn:
        conn.execute("PRAGMA foreign_keys = ON")

        version = _get_schema_version(conn)
        if version < SCHEMA_VERSION:
            for stmt in _SCHEMA_STATEMENTS:
                conn.execute(stmt)
