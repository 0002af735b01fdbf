"""Tests for the profile directory."""

import pytest

from job_tracker.errors import NotFound, PermissionDenied, ValidationError
from job_tracker.workflow.profiles import ProfileDirectory


@pytest.fixture
def profiles(repo, roles):
    return ProfileDirectory(repo, roles)


class TestLookups:
    def test_get(self, profiles, declarant_user):
        assert profiles.get(declarant_user.id).employee_id == "EMP-004"

    def test_get_missing(self, profiles):
        with pytest.raises(NotFound):
            profiles.get(999)

    def test_list_declarants(self, profiles, declarant_user, other_declarant,
                             allocater_user):
        names = [p.full_name for p in profiles.list_declarants()]
        assert names == ["Daniel Declarant", "Lucy Declarant"]

    def test_list_with_roles(self, profiles, admin_user, make_user):
        make_user("E-30", "Both", "allocater", "declarant")
        entries = {e.profile.employee_id: e.roles
                   for e in profiles.list_with_roles()}
        assert entries["EMP-001"] == ["admin"]
        assert entries["E-30"] == ["allocater", "declarant"]


class TestUpdateFullName:
    def test_owner_can_rename(self, profiles, declarant_user):
        updated = profiles.update_full_name(
            declarant_user.id, declarant_user.id, "  Dan Declarant "
        )
        assert updated.full_name == "Dan Declarant"

    def test_admin_can_rename_others(self, profiles, admin_user,
                                     declarant_user):
        updated = profiles.update_full_name(
            admin_user.id, declarant_user.id, "Renamed"
        )
        assert updated.full_name == "Renamed"

    def test_others_cannot_rename(self, profiles, declarant_user,
                                  other_declarant):
        with pytest.raises(PermissionDenied):
            profiles.update_full_name(
                other_declarant.id, declarant_user.id, "Hijacked"
            )
        assert profiles.get(declarant_user.id).full_name == "Daniel Declarant"

    def test_blank_name(self, profiles, declarant_user):
        with pytest.raises(ValidationError):
            profiles.update_full_name(declarant_user.id, declarant_user.id, " ")


class TestDeactivate:
    def test_admin_deactivates(self, profiles, admin_user, declarant_user,
                               other_declarant):
        profiles.deactivate(admin_user.id, declarant_user.id)
        assert profiles.get(declarant_user.id).is_active == 0
        assert [p.id for p in profiles.list_declarants()] == [other_declarant.id]

    def test_cannot_deactivate_self(self, profiles, admin_user):
        with pytest.raises(PermissionDenied):
            profiles.deactivate(admin_user.id, admin_user.id)

    def test_declarant_cannot_deactivate(self, profiles, declarant_user,
                                         other_declarant):
        with pytest.raises(PermissionDenied):
            profiles.deactivate(declarant_user.id, other_declarant.id)

    def test_jobs_keep_reference(self, profiles, lifecycle, admin_user,
                                 pending_job, declarant_user):
        lifecycle.claim(declarant_user.id, pending_job.id)
        profiles.deactivate(admin_user.id, declarant_user.id)
        job = lifecycle.get(pending_job.id)
        assert job.allocated_to == declarant_user.id
        assert job.assignee_label == "Daniel Declarant"
