"""Profile directory: user lookups for allocation dropdowns and admin pages."""

import logging
from dataclasses import dataclass, field

from job_tracker.database.models import ActivityLogEntry, Profile
from job_tracker.database.repository import Repository
from job_tracker.errors import NotFound, PermissionDenied
from job_tracker.io.validators import clean_full_name
from job_tracker.workflow.roles import RoleRegistry

logger = logging.getLogger(__name__)


@dataclass
class ProfileWithRoles:
    profile: Profile
    roles: list[str] = field(default_factory=list)


class ProfileDirectory:
    def __init__(self, repo: Repository, roles: RoleRegistry):
        self.repo = repo
        self.roles = roles

    def get(self, user_id: int) -> Profile:
        profile = self.repo.get_profile_by_id(user_id)
        if profile is None:
            raise NotFound(f"User {user_id} not found")
        return profile

    def list_with_roles(self, active_only: bool = True) -> list[ProfileWithRoles]:
        return [
            ProfileWithRoles(p, self.repo.get_user_roles(p.id))
            for p in self.repo.get_all_profiles(active_only=active_only)
        ]

    def list_declarants(self) -> list[Profile]:
        """Active users a job can be allocated to."""
        return self.repo.get_users_with_role("declarant")

    def update_full_name(self, actor_id: int, user_id: int,
                         full_name: str) -> Profile:
        """Rename a user. Allowed for the user themself or a profile admin."""
        if actor_id != user_id:
            self.roles.require(actor_id, "profiles_manage")
        profile = self.get(user_id)
        profile.full_name = clean_full_name(full_name)
        self.repo.update_profile(profile, activity=ActivityLogEntry(
            user_id=actor_id, action="edited", entity_type="profile",
            entity_id=user_id, entity_label=profile.employee_id,
        ))
        return self.get(user_id)

    def deactivate(self, actor_id: int, user_id: int):
        """Block sign-in. Jobs keep their references to the user."""
        self.roles.require(actor_id, "profiles_manage")
        if actor_id == user_id:
            raise PermissionDenied("You cannot deactivate your own account")
        profile = self.get(user_id)
        self.repo.deactivate_profile(user_id, activity=ActivityLogEntry(
            user_id=actor_id, action="deactivated", entity_type="profile",
            entity_id=user_id, entity_label=profile.employee_id,
        ))
        logger.info("User %s deactivated by user %s", user_id, actor_id)
