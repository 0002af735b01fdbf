"""Job statistics for the reports dashboard.

Recomputed from the full job list on every change; there are no cached
counters to drift.
"""

from dataclasses import dataclass, field

from job_tracker.database.models import Job
from job_tracker.utils.constants import JOB_STATUSES


@dataclass
class AssigneeStats:
    total: int = 0
    completed: int = 0

    @property
    def completion_rate(self) -> float:
        return self.completed / self.total if self.total else 0.0


@dataclass
class JobReport:
    total: int = 0
    counts: dict[str, int] = field(
        default_factory=lambda: {s: 0 for s in JOB_STATUSES}
    )
    completion_rate: float = 0.0
    per_assignee: dict[str, AssigneeStats] = field(default_factory=dict)

    @property
    def completion_percent(self) -> int:
        """Completion rate rounded to a whole percentage."""
        return round(self.completion_rate * 100)

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "counts": dict(self.counts),
            "completion_rate": self.completion_rate,
            "per_assignee": {
                name: {"total": s.total, "completed": s.completed}
                for name, s in self.per_assignee.items()
            },
        }


def aggregate(jobs: list[Job]) -> JobReport:
    """Status counts, overall completion rate and per-assignee totals.

    Unallocated jobs count towards the totals but not towards any
    assignee. An empty list gives a zero report.
    """
    report = JobReport()
    for job in jobs:
        report.total += 1
        report.counts[job.status] = report.counts.get(job.status, 0) + 1
        if not job.is_allocated:
            continue
        stats = report.per_assignee.setdefault(
            job.assignee_label, AssigneeStats()
        )
        stats.total += 1
        if job.is_complete:
            stats.completed += 1

    if report.total:
        report.completion_rate = report.counts["complete"] / report.total
    return report
