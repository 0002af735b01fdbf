"""Role registry: which roles a user holds and what they may do.

A user's capabilities are the union of the capability lists of every role
they hold. There is no hierarchy: ``admin`` and ``manager`` simply list
every capability.
"""

import logging

from job_tracker.database.models import ActivityLogEntry
from job_tracker.database.repository import Repository
from job_tracker.errors import (
    NotAssigned,
    NotFound,
    PermissionDenied,
    ValidationError,
)
from job_tracker.utils.constants import (
    CAPABILITY_LABELS,
    FULL_ACCESS_ROLES,
    ROLE_CAPABILITIES,
    ROLE_NAMES,
)

logger = logging.getLogger(__name__)


def capabilities_for_roles(roles) -> set[str]:
    """Union of the capability sets of ``roles``. Unknown roles add nothing."""
    capabilities: set[str] = set()
    for role in roles:
        capabilities.update(ROLE_CAPABILITIES.get(role, []))
    return capabilities


class RoleRegistry:
    def __init__(self, repo: Repository):
        self.repo = repo

    def roles_of(self, user_id: int) -> set[str]:
        return set(self.repo.get_user_roles(user_id))

    def capabilities_of(self, user_id: int) -> set[str]:
        return capabilities_for_roles(self.roles_of(user_id))

    def has_capability(self, user_id: int, capability: str) -> bool:
        return capability in self.capabilities_of(user_id)

    def has_any_role(self, user_id: int) -> bool:
        return bool(self.roles_of(user_id))

    def require(self, user_id: int, capability: str):
        """Raise PermissionDenied unless the user has ``capability``."""
        if not self.has_capability(user_id, capability):
            label = CAPABILITY_LABELS.get(capability, capability)
            logger.info(
                "Permission denied: user %s lacks %s", user_id, capability
            )
            raise PermissionDenied(f"You do not have permission to: {label}")

    def _check_role(self, role: str):
        if role not in ROLE_NAMES:
            raise ValidationError("role", f"Unknown role '{role}'")

    def _check_user(self, user_id: int):
        if self.repo.get_profile_by_id(user_id) is None:
            raise NotFound(f"User {user_id} not found")

    def grant(self, actor_id: int, user_id: int, role: str):
        """Give ``role`` to a user.

        Raises DuplicateRoleAssignment (AlreadyAssigned) if the user
        already holds it; the existing assignment is left as it was.
        """
        self.require(actor_id, "roles_manage")
        self._check_role(role)
        self._check_user(user_id)
        self.repo.add_role(
            user_id, role, assigned_by=actor_id, activity=ActivityLogEntry(
                user_id=actor_id, action="granted", entity_type="role",
                entity_id=user_id, entity_label=role,
            ),
        )
        logger.info("User %s granted role %s to user %s",
                    actor_id, role, user_id)

    def revoke(self, actor_id: int, user_id: int, role: str):
        """Take ``role`` away. Raises NotAssigned if it was not held."""
        self.require(actor_id, "roles_manage")
        self._check_role(role)
        activity = ActivityLogEntry(
            user_id=actor_id, action="revoked", entity_type="role",
            entity_id=user_id, entity_label=role,
        )
        if not self.repo.remove_role(user_id, role, activity=activity):
            raise NotAssigned()
        logger.info("User %s revoked role %s from user %s",
                    actor_id, role, user_id)

    def bootstrap_admin(self, user_id: int):
        """First-run setup: make ``user_id`` an admin.

        Only allowed while nobody holds a full-access role.
        """
        if self.repo.count_users_with_roles(FULL_ACCESS_ROLES) > 0:
            raise PermissionDenied("An administrator already exists.")
        self._check_user(user_id)
        self.repo.add_role(user_id, "admin", activity=ActivityLogEntry(
            user_id=user_id, action="granted", entity_type="role",
            entity_id=user_id, entity_label="admin",
            details="first-run setup",
        ))
        logger.info("User %s bootstrapped as admin", user_id)
