"""Tests for the role registry and capability union."""

import sqlite3

import pytest

from job_tracker.errors import (
    AlreadyAssigned,
    NotAssigned,
    NotFound,
    PermissionDenied,
    TransientIOError,
    ValidationError,
)
from job_tracker.utils.constants import CAPABILITY_KEYS, ROLE_CAPABILITIES
from job_tracker.workflow.roles import capabilities_for_roles


class TestCapabilityUnion:
    def test_admin_and_manager_equivalent(self):
        assert (capabilities_for_roles(["admin"])
                == capabilities_for_roles(["manager"])
                == set(CAPABILITY_KEYS))

    def test_union_of_roles(self):
        caps = capabilities_for_roles(["allocater", "declarant"])
        assert caps == (set(ROLE_CAPABILITIES["allocater"])
                        | set(ROLE_CAPABILITIES["declarant"]))
        assert "jobs_claim" in caps
        assert "jobs_allocate" in caps
        assert "jobs_delete" not in caps

    def test_no_roles_no_capabilities(self):
        assert capabilities_for_roles([]) == set()

    def test_unknown_role_adds_nothing(self):
        assert capabilities_for_roles(["superuser"]) == set()

    def test_declarant_cannot_manage(self):
        caps = capabilities_for_roles(["declarant"])
        assert "jobs_view_all" not in caps
        assert "reports_view" not in caps


class TestRegistryQueries:
    def test_roles_of(self, roles, make_user):
        user = make_user("E-10", "Both", "allocater", "declarant")
        assert roles.roles_of(user.id) == {"allocater", "declarant"}

    def test_has_capability(self, roles, declarant_user):
        assert roles.has_capability(declarant_user.id, "jobs_claim")
        assert not roles.has_capability(declarant_user.id, "jobs_add")

    def test_has_any_role(self, roles, declarant_user, no_role_user):
        assert roles.has_any_role(declarant_user.id)
        assert not roles.has_any_role(no_role_user.id)

    def test_require_raises_with_label(self, roles, declarant_user):
        with pytest.raises(PermissionDenied) as exc:
            roles.require(declarant_user.id, "jobs_delete")
        assert "Delete Jobs" in exc.value.user_message


class TestGrantRevoke:
    def test_grant(self, roles, repo, admin_user, no_role_user):
        roles.grant(admin_user.id, no_role_user.id, "declarant")
        assert roles.roles_of(no_role_user.id) == {"declarant"}
        (entry,) = repo.get_activity_log(entity_type="role")
        assert entry.action == "granted"
        assert entry.entity_label == "declarant"

    def test_grant_held_role_rejected(self, roles, repo, admin_user,
                                      declarant_user):
        with pytest.raises(AlreadyAssigned):
            roles.grant(admin_user.id, declarant_user.id, "declarant")
        assert repo.get_user_roles(declarant_user.id) == ["declarant"]

    def test_manager_can_grant(self, roles, manager_user, no_role_user):
        roles.grant(manager_user.id, no_role_user.id, "allocater")
        assert roles.roles_of(no_role_user.id) == {"allocater"}

    def test_allocater_cannot_grant(self, roles, allocater_user, no_role_user):
        with pytest.raises(PermissionDenied):
            roles.grant(allocater_user.id, no_role_user.id, "declarant")
        assert roles.roles_of(no_role_user.id) == set()

    def test_grant_unknown_role(self, roles, admin_user, no_role_user):
        with pytest.raises(ValidationError):
            roles.grant(admin_user.id, no_role_user.id, "superuser")

    def test_grant_unknown_user(self, roles, admin_user):
        with pytest.raises(NotFound):
            roles.grant(admin_user.id, 999, "declarant")

    def test_revoke(self, roles, admin_user, declarant_user):
        roles.revoke(admin_user.id, declarant_user.id, "declarant")
        assert roles.roles_of(declarant_user.id) == set()

    def test_revoke_not_held(self, roles, admin_user, declarant_user):
        with pytest.raises(NotAssigned):
            roles.revoke(admin_user.id, declarant_user.id, "allocater")

    def test_revoke_keeps_other_roles(self, roles, admin_user, make_user):
        user = make_user("E-11", "Both", "allocater", "declarant")
        roles.revoke(admin_user.id, user.id, "allocater")
        assert roles.roles_of(user.id) == {"declarant"}

    def test_failed_log_write_keeps_roles(self, roles, repo, admin_user,
                                          declarant_user, monkeypatch):
        def locked(conn, entry):
            raise sqlite3.OperationalError("database is locked")
        monkeypatch.setattr(repo, "_log_activity", locked)
        with pytest.raises(TransientIOError):
            roles.revoke(admin_user.id, declarant_user.id, "declarant")
        assert roles.roles_of(declarant_user.id) == {"declarant"}


class TestBootstrapAdmin:
    def test_first_admin(self, roles, no_role_user):
        roles.bootstrap_admin(no_role_user.id)
        assert roles.roles_of(no_role_user.id) == {"admin"}

    def test_only_once(self, roles, admin_user, no_role_user):
        with pytest.raises(PermissionDenied):
            roles.bootstrap_admin(no_role_user.id)

    def test_manager_counts_as_admin(self, roles, manager_user, no_role_user):
        with pytest.raises(PermissionDenied):
            roles.bootstrap_admin(no_role_user.id)
