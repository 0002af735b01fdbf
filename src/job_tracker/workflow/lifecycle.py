"""Job lifecycle engine: creation, allocation, claiming and status changes.

Nominal workflow::

    pending -> processing -> query | complete
    query   -> processing | complete

Any status may be set again later. Leaving ``complete`` is allowed unless
``Config.ALLOW_REOPEN_COMPLETE`` is off.

Invariants kept on every write:

* ``query_details`` is non-empty exactly when ``status == 'query'``.
* ``allocated_by`` and ``received_at`` never change after creation.
* a status change never touches ``allocated_to``.

Every operation checks the actor's capabilities here, whatever the caller
already hid from view.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path

from job_tracker.config import Config
from job_tracker.database.models import ActivityLogEntry, Job
from job_tracker.database.repository import Repository
from job_tracker.errors import (
    AlreadyAllocated,
    NotFound,
    PermissionDenied,
    ValidationError,
)
from job_tracker.io.bulk_import import normalize_rows
from job_tracker.io.csv_handler import export_jobs_csv
from job_tracker.io.excel_handler import export_jobs_excel
from job_tracker.io.validators import (
    clean_importer_name,
    clean_job_ref,
    clean_query_details,
    clean_status,
    parse_etd,
)
from job_tracker.workflow.roles import RoleRegistry

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("job_ref", "importer_name", "etd", "allocated_to")


@dataclass
class JobListing:
    """The jobs one user is allowed to see, split by dashboard section."""
    all_jobs: list[Job] | None = None    # None unless jobs_view_all
    my_jobs: list[Job] = field(default_factory=list)
    available_jobs: list[Job] = field(default_factory=list)


@dataclass
class ImportResult:
    inserted: int = 0
    dropped: int = 0


class JobLifecycle:
    def __init__(self, repo: Repository, roles: RoleRegistry):
        self.repo = repo
        self.roles = roles

    # ── Queries ─────────────────────────────────────────────────

    def get(self, job_id: int) -> Job:
        job = self.repo.get_job_by_id(job_id)
        if job is None:
            raise NotFound(f"Job {job_id} not found")
        return job

    def list_for(self, actor_id: int) -> JobListing:
        """Role-appropriate view: everything, or own + unallocated jobs."""
        caps = self.roles.capabilities_of(actor_id)
        listing = JobListing()
        if "jobs_view_all" in caps:
            listing.all_jobs = self.repo.list_jobs()
        if "jobs_view_own" in caps:
            listing.my_jobs = self.repo.list_jobs(assigned_to=actor_id)
        if "jobs_view_unallocated" in caps:
            listing.available_jobs = self.repo.list_jobs(unallocated=True)
        return listing

    def history(self, job_id: int, limit: int = 20) -> list[ActivityLogEntry]:
        return self.repo.get_entity_activity("job", job_id, limit=limit)

    # ── Commands ────────────────────────────────────────────────

    def _check_declarant(self, user_id: int):
        profile = self.repo.get_profile_by_id(user_id)
        if profile is None or not profile.is_active:
            raise NotFound(f"User {user_id} not found")
        if "declarant" not in self.roles.roles_of(user_id):
            raise ValidationError(
                "allocated_to", f"{profile.full_name} is not a declarant"
            )

    def create(self, actor_id: int, job_ref: str, importer_name: str,
               etd=None, allocated_to: int | None = None) -> Job:
        """Create a pending job allocated by ``actor_id``.

        The job_ref UNIQUE constraint is the only duplicate check, so two
        concurrent creates cannot both succeed.
        """
        self.roles.require(actor_id, "jobs_add")
        job = Job(
            job_ref=clean_job_ref(job_ref),
            importer_name=clean_importer_name(importer_name),
            etd=parse_etd(etd),
            status="pending",
            allocated_by=actor_id,
        )
        if allocated_to is not None:
            self._check_declarant(allocated_to)
            job.allocated_to = allocated_to

        job.id = self.repo.create_job(job, activity=ActivityLogEntry(
            user_id=actor_id, action="created", entity_type="job",
            entity_label=job.job_ref,
        ))
        logger.info("Job %s created by user %s", job.job_ref, actor_id)
        return self.get(job.id)

    def allocate(self, actor_id: int, job_id: int, to_user_id: int) -> Job:
        """Assign a job to a declarant. Status is left alone."""
        self.roles.require(actor_id, "jobs_allocate")
        job = self.get(job_id)
        self._check_declarant(to_user_id)
        allocated = self.repo.update_job(
            job_id, allocated_to=to_user_id, activity=ActivityLogEntry(
                user_id=actor_id, action="allocated", entity_type="job",
                entity_id=job_id, entity_label=job.job_ref,
                details=f"to user {to_user_id}",
            ),
        )
        if not allocated:
            raise NotFound(f"Job {job_id} not found")
        logger.info("Job %s allocated to user %s by user %s",
                    job.job_ref, to_user_id, actor_id)
        return self.get(job_id)

    def claim(self, actor_id: int, job_id: int) -> Job:
        """Declarant takes an unallocated job and starts processing it.

        Allocation and status change in one conditional UPDATE. Of two
        racing claims exactly one wins; the other gets AlreadyAllocated.
        """
        self.roles.require(actor_id, "jobs_claim")
        job = self.get(job_id)
        activity = ActivityLogEntry(
            user_id=actor_id, action="claimed", entity_type="job",
            entity_id=job_id, entity_label=job.job_ref,
        )
        if not self.repo.claim_job(job_id, actor_id, activity=activity):
            current = self.repo.get_job_by_id(job_id)
            if current is None:
                raise NotFound(f"Job {job_id} not found")
            logger.info("Claim of job %s by user %s lost: allocated to %s",
                        current.job_ref, actor_id, current.allocated_to)
            raise AlreadyAllocated()
        job = self.get(job_id)
        logger.info("Job %s claimed by user %s", job.job_ref, actor_id)
        return job

    def update_status(self, actor_id: int, job_id: int, new_status: str,
                      query_details: str | None = None) -> Job:
        """Move a job to ``new_status``.

        Query status needs 1-1000 characters of details; every other
        status clears them. Allowed for admins/managers on any job and
        for a declarant on jobs allocated to them.
        """
        caps = self.roles.capabilities_of(actor_id)
        any_job = "jobs_update_any_status" in caps
        if not any_job and "jobs_update_own_status" not in caps:
            raise PermissionDenied(
                "You do not have permission to update job status"
            )

        status = clean_status(new_status)
        details = clean_query_details(query_details) if status == "query" else None

        job = self.get(job_id)
        if not any_job and job.allocated_to != actor_id:
            raise PermissionDenied("You can only update jobs allocated to you")
        if (job.is_complete and status != "complete"
                and not Config.ALLOW_REOPEN_COMPLETE):
            raise ValidationError("status", "Completed jobs cannot be reopened")

        changed = self.repo.set_job_status(
            job_id, status, details,
            only_if_allocated_to=None if any_job else actor_id,
            activity=ActivityLogEntry(
                user_id=actor_id, action="status_changed", entity_type="job",
                entity_id=job_id, entity_label=job.job_ref,
                details=f"{job.status} -> {status}",
            ),
        )
        if not changed:
            # Deleted or reallocated between the read and the write
            if self.repo.get_job_by_id(job_id) is None:
                raise NotFound(f"Job {job_id} not found")
            raise PermissionDenied("You can only update jobs allocated to you")
        logger.info("Job %s status %s -> %s by user %s",
                    job.job_ref, job.status, status, actor_id)
        return self.get(job_id)

    def edit(self, actor_id: int, job_id: int, **fields) -> Job:
        """Change reference, importer, ETD or assignee.

        Passing ``allocated_to=None`` returns the job to the unallocated
        pool; status changes go through update_status.
        """
        self.roles.require(actor_id, "jobs_edit")
        unknown = set(fields) - set(EDITABLE_FIELDS)
        if unknown:
            name = sorted(unknown)[0]
            raise ValidationError(name, f"{name} cannot be edited")

        patch = {}
        if "job_ref" in fields:
            patch["job_ref"] = clean_job_ref(fields["job_ref"])
        if "importer_name" in fields:
            patch["importer_name"] = clean_importer_name(fields["importer_name"])
        if "etd" in fields:
            patch["etd"] = parse_etd(fields["etd"])
        if "allocated_to" in fields:
            if fields["allocated_to"] is not None:
                self._check_declarant(fields["allocated_to"])
            patch["allocated_to"] = fields["allocated_to"]

        job = self.get(job_id)
        activity = ActivityLogEntry(
            user_id=actor_id, action="edited", entity_type="job",
            entity_id=job_id, entity_label=patch.get("job_ref", job.job_ref),
            details=", ".join(sorted(patch)),
        )
        if not self.repo.update_job(job_id, activity=activity, **patch):
            raise NotFound(f"Job {job_id} not found")
        logger.info("Job %s edited by user %s", job.job_ref, actor_id)
        return self.get(job_id)

    def delete(self, actor_id: int, job_id: int):
        self.roles.require(actor_id, "jobs_delete")
        job = self.get(job_id)
        deleted = self.repo.delete_job(job_id, activity=ActivityLogEntry(
            user_id=actor_id, action="deleted", entity_type="job",
            entity_id=job_id, entity_label=job.job_ref,
        ))
        if not deleted:
            raise NotFound(f"Job {job_id} not found")
        logger.info("Job %s deleted by user %s", job.job_ref, actor_id)

    def import_rows(self, actor_id: int, rows) -> ImportResult:
        """Bulk-create jobs from decoded spreadsheet rows.

        All-or-nothing: a duplicate reference anywhere in the batch
        raises DuplicateReference and nothing is written.
        """
        self.roles.require(actor_id, "jobs_import")
        jobs, dropped = normalize_rows(rows, allocated_by=actor_id)
        inserted = self.repo.insert_jobs(jobs, activity=ActivityLogEntry(
            user_id=actor_id, action="imported", entity_type="import",
            entity_label=f"{len(jobs)} job(s)",
            details=f"dropped {dropped} incomplete row(s)",
        ))
        logger.info("User %s imported %d job(s), dropped %d row(s)",
                    actor_id, inserted, dropped)
        return ImportResult(inserted=inserted, dropped=dropped)

    def export(self, actor_id: int, filepath) -> int:
        """Write every job to ``filepath`` (.xlsx or .csv). Returns row count."""
        self.roles.require(actor_id, "jobs_export")
        filepath = Path(filepath)
        if filepath.suffix.lower() == ".csv":
            count = export_jobs_csv(self.repo, filepath)
        elif filepath.suffix.lower() == ".xlsx":
            count = export_jobs_excel(self.repo, filepath)
        else:
            raise ValidationError(
                "filepath", f"Unsupported export type '{filepath.suffix}'"
            )
        self.repo.log_activity(
            actor_id, "exported", "export",
            entity_label=f"{count} job(s)", details=filepath.name,
        )
        logger.info("User %s exported %d job(s) to %s",
                    actor_id, count, filepath)
        return count
