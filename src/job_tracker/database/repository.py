"""Repository layer: all CRUD operations and queries.

The repository is the only reader and writer of the tables. Constraint
violations are translated into the errors in ``job_tracker.errors`` and
every committed change to ``jobs`` is published on the change feed.
"""

import logging
import sqlite3
from contextlib import contextmanager
from typing import Optional

from job_tracker.errors import (
    DuplicateEmployeeId,
    DuplicateReference,
    DuplicateRoleAssignment,
    JobTrackerError,
    NotFound,
    ValidationError,
)

from job_tracker.sync.feed import ChangeEvent

from .connection import DatabaseConnection
from .models import ActivityLogEntry, Job, Profile, RoleAssignment

logger = logging.getLogger(__name__)

# Columns a job edit may touch; status goes through set_job_status/claim_job
JOB_PATCH_FIELDS = ("job_ref", "importer_name", "etd", "allocated_to")


def _translate_integrity_error(exc: sqlite3.IntegrityError) -> JobTrackerError:
    """Map an SQLite constraint failure onto the error taxonomy."""
    msg = str(exc)
    if "NOT NULL" in msg:
        column = msg.rsplit(".", 1)[-1].strip()
        return ValidationError(column, f"{column} is required")
    if "UNIQUE" in msg:
        if "jobs.job_ref" in msg:
            return DuplicateReference()
        if "user_roles.user_id" in msg:
            return DuplicateRoleAssignment()
        if "profiles.employee_id" in msg or "profiles.email" in msg:
            return DuplicateEmployeeId()
    if "FOREIGN KEY" in msg:
        return NotFound("Referenced user does not exist.")
    if "immutable" in msg:
        return ValidationError(
            "job", "Received date and allocating user cannot be changed."
        )
    if "CHECK" in msg:
        if "query_details" in msg:
            return ValidationError(
                "query_details",
                "Query details are required for query status only",
            )
        if "role" in msg:
            return ValidationError("role", "Unknown role")
        return ValidationError("status", "Invalid job status")
    return JobTrackerError("Failed to save. Please try again.")


class Repository:
    """Provides all database operations for the application."""

    def __init__(self, db: DatabaseConnection, feed=None):
        self.db = db
        self.feed = feed

    @contextmanager
    def _writing(self):
        """Connection for a write; constraint errors come out typed."""
        try:
            with self.db.get_connection() as conn:
                yield conn
        except sqlite3.IntegrityError as e:
            raise _translate_integrity_error(e) from e

    @staticmethod
    def _log_activity(conn, entry: Optional[ActivityLogEntry]):
        """Write ``entry`` inside the caller's transaction."""
        if entry is None:
            return None
        cursor = conn.execute(
            "INSERT INTO activity_log "
            "(user_id, action, entity_type, entity_id, "
            "entity_label, details) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (entry.user_id, entry.action, entry.entity_type,
             entry.entity_id, entry.entity_label, entry.details),
        )
        return cursor.lastrowid

    def _publish(self, table: str, event: str, row_ids):
        """Tell subscribers about a committed change."""
        if self.feed is None:
            return
        self.feed.publish(ChangeEvent(
            table=table, event=event, row_ids=tuple(row_ids),
        ))

    # ── Profiles ────────────────────────────────────────────────

    def create_profile(self, profile: Profile,
                       activity: Optional[ActivityLogEntry] = None) -> int:
        """Insert a profile and return its id.

        An ``activity`` with no actor or entity is attributed to the new
        profile (self sign-up).
        """
        with self._writing() as conn:
            cursor = conn.execute("""
                INSERT INTO profiles
                    (employee_id, full_name, email, password_hash, is_active)
                VALUES (?, ?, ?, ?, ?)
            """, (
                profile.employee_id, profile.full_name, profile.email,
                profile.password_hash, profile.is_active,
            ))
            profile_id = cursor.lastrowid
            if activity is not None:
                if activity.user_id is None:
                    activity.user_id = profile_id
                if activity.entity_id is None:
                    activity.entity_id = profile_id
            self._log_activity(conn, activity)
        return profile_id

    def get_profile_by_id(self, user_id: int) -> Optional[Profile]:
        rows = self.db.execute(
            "SELECT * FROM profiles WHERE id = ?", (user_id,)
        )
        return Profile(**dict(rows[0])) if rows else None

    def get_profile_by_employee_id(self, employee_id: str) -> Optional[Profile]:
        rows = self.db.execute(
            "SELECT * FROM profiles WHERE employee_id = ?", (employee_id,)
        )
        return Profile(**dict(rows[0])) if rows else None

    def get_profile_by_email(self, email: str) -> Optional[Profile]:
        rows = self.db.execute(
            "SELECT * FROM profiles WHERE email = ?", (email,)
        )
        return Profile(**dict(rows[0])) if rows else None

    def get_all_profiles(self, active_only: bool = True) -> list[Profile]:
        if active_only:
            rows = self.db.execute(
                "SELECT * FROM profiles WHERE is_active = 1 "
                "ORDER BY full_name"
            )
        else:
            rows = self.db.execute(
                "SELECT * FROM profiles ORDER BY full_name"
            )
        return [Profile(**dict(r)) for r in rows]

    def update_profile(self, profile: Profile,
                       activity: Optional[ActivityLogEntry] = None):
        with self._writing() as conn:
            conn.execute("""
                UPDATE profiles SET
                    full_name = ?, password_hash = ?, is_active = ?
                WHERE id = ?
            """, (
                profile.full_name, profile.password_hash,
                profile.is_active, profile.id,
            ))
            self._log_activity(conn, activity)

    def deactivate_profile(self, user_id: int,
                           activity: Optional[ActivityLogEntry] = None):
        with self._writing() as conn:
            conn.execute(
                "UPDATE profiles SET is_active = 0 WHERE id = ?", (user_id,)
            )
            self._log_activity(conn, activity)

    def profile_count(self) -> int:
        rows = self.db.execute("SELECT COUNT(*) as cnt FROM profiles")
        return rows[0]["cnt"] if rows else 0

    # ── Role Assignments ────────────────────────────────────────

    def get_user_roles(self, user_id: int) -> list[str]:
        rows = self.db.execute(
            "SELECT role FROM user_roles WHERE user_id = ? ORDER BY id",
            (user_id,),
        )
        return [r["role"] for r in rows]

    def get_role_assignments(self, user_id: int) -> list[RoleAssignment]:
        rows = self.db.execute("""
            SELECT ur.*, p.full_name AS user_name,
                   COALESCE(ab.full_name, '') AS assigned_by_name
            FROM user_roles ur
            JOIN profiles p ON ur.user_id = p.id
            LEFT JOIN profiles ab ON ur.assigned_by = ab.id
            WHERE ur.user_id = ?
            ORDER BY ur.id
        """, (user_id,))
        return [RoleAssignment(**dict(r)) for r in rows]

    def add_role(self, user_id: int, role: str,
                 assigned_by: int = None,
                 activity: Optional[ActivityLogEntry] = None) -> int:
        """Insert a role assignment.

        A plain INSERT: the UNIQUE(user_id, role) constraint rejects a
        duplicate with DuplicateRoleAssignment instead of merging it.
        """
        with self._writing() as conn:
            cursor = conn.execute(
                "INSERT INTO user_roles (user_id, role, assigned_by) "
                "VALUES (?, ?, ?)",
                (user_id, role, assigned_by),
            )
            self._log_activity(conn, activity)
            return cursor.lastrowid

    def remove_role(self, user_id: int, role: str,
                    activity: Optional[ActivityLogEntry] = None) -> bool:
        """Delete a role assignment. Returns False if it did not exist."""
        with self._writing() as conn:
            removed = conn.execute(
                "DELETE FROM user_roles WHERE user_id = ? AND role = ?",
                (user_id, role),
            ).rowcount > 0
            if removed:
                self._log_activity(conn, activity)
        return removed

    def get_users_with_role(self, role: str,
                            active_only: bool = True) -> list[Profile]:
        sql = """
            SELECT p.* FROM profiles p
            JOIN user_roles ur ON ur.user_id = p.id
            WHERE ur.role = ?
        """
        if active_only:
            sql += " AND p.is_active = 1"
        rows = self.db.execute(sql + " ORDER BY p.full_name", (role,))
        return [Profile(**dict(r)) for r in rows]

    def count_users_with_roles(self, roles: list[str]) -> int:
        if not roles:
            return 0
        placeholders = ", ".join("?" for _ in roles)
        rows = self.db.execute(
            "SELECT COUNT(DISTINCT user_id) AS cnt FROM user_roles "
            f"WHERE role IN ({placeholders})",
            tuple(roles),
        )
        return rows[0]["cnt"] if rows else 0

    # ── Jobs ────────────────────────────────────────────────────

    _JOBS_SELECT = """
        SELECT j.*,
               COALESCE(pb.full_name, '') AS allocated_by_name,
               COALESCE(pb.employee_id, '') AS allocated_by_employee_id,
               COALESCE(pt.full_name, '') AS allocated_to_name,
               COALESCE(pt.employee_id, '') AS allocated_to_employee_id
        FROM jobs j
        LEFT JOIN profiles pb ON j.allocated_by = pb.id
        LEFT JOIN profiles pt ON j.allocated_to = pt.id
    """

    def list_jobs(self, assigned_to: Optional[int] = None,
                  unallocated: bool = False,
                  status: Optional[str] = None) -> list[Job]:
        """List jobs, newest first.

        ``assigned_to`` and ``unallocated`` are mutually exclusive; with
        neither, every job is returned.
        """
        if assigned_to is not None and unallocated:
            raise ValueError("assigned_to and unallocated cannot be combined")

        clauses = []
        params: list = []
        if assigned_to is not None:
            clauses.append("j.allocated_to = ?")
            params.append(assigned_to)
        if unallocated:
            clauses.append("j.allocated_to IS NULL")
        if status and status != "all":
            clauses.append("j.status = ?")
            params.append(status)

        where = " AND ".join(clauses) if clauses else "1=1"
        rows = self.db.execute(
            f"{self._JOBS_SELECT} WHERE {where} "
            "ORDER BY j.created_at DESC, j.id DESC",
            tuple(params),
        )
        return [Job(**dict(r)) for r in rows]

    def get_job_by_id(self, job_id: int) -> Optional[Job]:
        rows = self.db.execute(
            f"{self._JOBS_SELECT} WHERE j.id = ?", (job_id,)
        )
        return Job(**dict(rows[0])) if rows else None

    def get_job_by_ref(self, job_ref: str) -> Optional[Job]:
        rows = self.db.execute(
            f"{self._JOBS_SELECT} WHERE j.job_ref = ?", (job_ref,)
        )
        return Job(**dict(rows[0])) if rows else None

    @staticmethod
    def _insert_job(conn, job: Job) -> int:
        cursor = conn.execute("""
            INSERT INTO jobs
                (job_ref, importer_name, etd, status, query_details,
                 allocated_by, allocated_to)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """, (
            job.job_ref, job.importer_name, job.etd, job.status,
            job.query_details, job.allocated_by, job.allocated_to,
        ))
        return cursor.lastrowid

    def create_job(self, job: Job,
                   activity: Optional[ActivityLogEntry] = None) -> int:
        """Insert one job. ``activity`` is logged against the new id."""
        with self._writing() as conn:
            job_id = self._insert_job(conn, job)
            if activity is not None and activity.entity_id is None:
                activity.entity_id = job_id
            self._log_activity(conn, activity)
        self._publish("jobs", "INSERT", [job_id])
        return job_id

    def insert_jobs(self, jobs: list[Job],
                    activity: Optional[ActivityLogEntry] = None) -> int:
        """Insert a batch of jobs in one transaction.

        Any constraint violation rolls back the whole batch. Returns the
        number of rows inserted.
        """
        if not jobs:
            return 0
        with self._writing() as conn:
            ids = [self._insert_job(conn, job) for job in jobs]
            self._log_activity(conn, activity)
        self._publish("jobs", "INSERT", ids)
        return len(ids)

    def update_job(self, job_id: int,
                   activity: Optional[ActivityLogEntry] = None,
                   **patch) -> bool:
        """Apply a partial update. Returns False if the job is gone."""
        unknown = set(patch) - set(JOB_PATCH_FIELDS)
        if unknown:
            raise ValueError(f"Cannot patch job fields: {sorted(unknown)}")
        if not patch:
            return self.get_job_by_id(job_id) is not None

        columns = [f for f in JOB_PATCH_FIELDS if f in patch]
        assignments = ", ".join(f"{c} = ?" for c in columns)
        params = tuple(patch[c] for c in columns) + (job_id,)
        with self._writing() as conn:
            cursor = conn.execute(
                f"UPDATE jobs SET {assignments} WHERE id = ?", params,
            )
            changed = cursor.rowcount > 0
            if changed:
                self._log_activity(conn, activity)
        if changed:
            self._publish("jobs", "UPDATE", [job_id])
        return changed

    def claim_job(self, job_id: int, user_id: int,
                  activity: Optional[ActivityLogEntry] = None) -> bool:
        """Allocate an unallocated job to ``user_id`` and start it.

        Compare-and-set on ``allocated_to IS NULL``: when two claims
        race, SQLite's write lock lets exactly one UPDATE match.
        """
        with self._writing() as conn:
            cursor = conn.execute("""
                UPDATE jobs SET
                    allocated_to = ?, status = 'processing',
                    query_details = NULL
                WHERE id = ? AND allocated_to IS NULL
            """, (user_id, job_id))
            claimed = cursor.rowcount == 1
            if claimed:
                self._log_activity(conn, activity)
        if claimed:
            self._publish("jobs", "UPDATE", [job_id])
        return claimed

    def set_job_status(self, job_id: int, status: str,
                       query_details: Optional[str] = None,
                       only_if_allocated_to: Optional[int] = None,
                       activity: Optional[ActivityLogEntry] = None) -> bool:
        """Set status and query details together in one statement.

        With ``only_if_allocated_to`` the row only changes while the job
        is still allocated to that user. Returns whether a row changed.
        """
        sql = "UPDATE jobs SET status = ?, query_details = ? WHERE id = ?"
        params: tuple = (status, query_details, job_id)
        if only_if_allocated_to is not None:
            sql += " AND allocated_to = ?"
            params += (only_if_allocated_to,)
        with self._writing() as conn:
            changed = conn.execute(sql, params).rowcount > 0
            if changed:
                self._log_activity(conn, activity)
        if changed:
            self._publish("jobs", "UPDATE", [job_id])
        return changed

    def delete_job(self, job_id: int,
                   activity: Optional[ActivityLogEntry] = None) -> bool:
        with self._writing() as conn:
            deleted = conn.execute(
                "DELETE FROM jobs WHERE id = ?", (job_id,)
            ).rowcount > 0
            if deleted:
                self._log_activity(conn, activity)
        if deleted:
            self._publish("jobs", "DELETE", [job_id])
        return deleted

    def job_count(self) -> int:
        rows = self.db.execute("SELECT COUNT(*) as cnt FROM jobs")
        return rows[0]["cnt"] if rows else 0

    # ── Activity Log ───────────────────────────────────────────

    def log_activity(
        self, user_id: int | None, action: str, entity_type: str,
        entity_id: int | None = None, entity_label: str = "",
        details: str = "",
    ) -> int:
        """Record an activity log entry in its own transaction.

        Writes that change a table pass ``activity=`` instead, so the
        entry commits or rolls back with the change it describes.

        Args:
            user_id: User who performed the action (None for system actions).
            action: Verb, e.g. 'created', 'edited', 'allocated', 'claimed',
                    'status_changed', 'deleted', 'imported', 'granted',
                    'revoked', etc.
            entity_type: 'job', 'role', 'profile' or 'import'.
            entity_id: Primary key of the affected entity.
            entity_label: Human-readable label, e.g. "JR-100".
            details: Optional text with extra context.

        Returns:
            The id of the created log entry.
        """
        entry = ActivityLogEntry(
            user_id=user_id, action=action, entity_type=entity_type,
            entity_id=entity_id, entity_label=entity_label, details=details,
        )
        with self._writing() as conn:
            return self._log_activity(conn, entry)

    def get_activity_log(
        self, entity_type: str | None = None,
        entity_id: int | None = None,
        user_id: int | None = None,
        limit: int = 50,
    ) -> list[ActivityLogEntry]:
        """Retrieve activity log entries, newest first."""
        clauses = []
        params: list = []
        if entity_type:
            clauses.append("al.entity_type = ?")
            params.append(entity_type)
        if entity_id is not None:
            clauses.append("al.entity_id = ?")
            params.append(entity_id)
        if user_id is not None:
            clauses.append("al.user_id = ?")
            params.append(user_id)

        where = " AND ".join(clauses) if clauses else "1=1"
        params.append(limit)

        rows = self.db.execute(f"""
            SELECT al.*,
                   COALESCE(p.full_name, '') AS user_name
            FROM activity_log al
            LEFT JOIN profiles p ON al.user_id = p.id
            WHERE {where}
            ORDER BY al.id DESC
            LIMIT ?
        """, tuple(params))
        return [ActivityLogEntry(**dict(r)) for r in rows]

    def get_entity_activity(
        self, entity_type: str, entity_id: int, limit: int = 20
    ) -> list[ActivityLogEntry]:
        """Get activity log for a specific entity (e.g. a job)."""
        return self.get_activity_log(
            entity_type=entity_type, entity_id=entity_id, limit=limit
        )
