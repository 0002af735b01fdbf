"""Data models for the database layer."""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional


@dataclass
class Profile:
    id: Optional[int] = None
    employee_id: str = ""
    full_name: str = ""
    email: str = ""
    password_hash: str = field(default="", repr=False)
    is_active: int = 1
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def label(self) -> str:
        """Display form used in job tables: 'Full Name (EMP-1)'."""
        return f"{self.full_name} ({self.employee_id})"


@dataclass
class RoleAssignment:
    id: Optional[int] = None
    user_id: int = 0
    role: str = ""
    assigned_by: Optional[int] = None
    assigned_at: Optional[datetime] = None
    # Joined fields
    user_name: str = field(default="", repr=False)
    assigned_by_name: str = field(default="", repr=False)


@dataclass
class Job:
    id: Optional[int] = None
    job_ref: str = ""
    importer_name: str = ""
    etd: Optional[str] = None          # ISO date 'YYYY-MM-DD'
    status: str = "pending"
    query_details: Optional[str] = None
    allocated_by: Optional[int] = None
    allocated_to: Optional[int] = None
    received_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    # Joined fields (not stored directly)
    allocated_by_name: str = field(default="", repr=False)
    allocated_by_employee_id: str = field(default="", repr=False)
    allocated_to_name: str = field(default="", repr=False)
    allocated_to_employee_id: str = field(default="", repr=False)

    @property
    def is_allocated(self) -> bool:
        return self.allocated_to is not None

    @property
    def is_query(self) -> bool:
        return self.status == "query"

    @property
    def is_complete(self) -> bool:
        return self.status == "complete"

    @property
    def etd_date(self) -> Optional[date]:
        if not self.etd:
            return None
        try:
            return date.fromisoformat(str(self.etd)[:10])
        except ValueError:
            return None

    @property
    def assignee_label(self) -> str:
        """Name shown for the assignee, falling back to the employee ID."""
        if not self.is_allocated:
            return ""
        return (
            self.allocated_to_name
            or self.allocated_to_employee_id
            or f"User {self.allocated_to}"
        )


@dataclass
class ActivityLogEntry:
    """Audit trail entry tracking job and role actions."""
    id: Optional[int] = None
    user_id: Optional[int] = None
    action: str = ""            # 'created', 'allocated', 'claimed', 'status_changed', ...
    entity_type: str = ""       # 'job', 'role', 'profile', 'import'
    entity_id: Optional[int] = None
    entity_label: str = ""      # Human-readable, e.g. "JR-100"
    details: str = ""
    created_at: Optional[datetime] = None
    # Joined fields
    user_name: str = field(default="", repr=False)
