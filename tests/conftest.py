"""Shared test fixtures."""

import pytest

from job_tracker.config import Config
from job_tracker.database.connection import DatabaseConnection
from job_tracker.database.models import Job, Profile
from job_tracker.database.repository import Repository
from job_tracker.database.schema import initialize_database
from job_tracker.sync.feed import ChangeFeed
from job_tracker.workflow.lifecycle import JobLifecycle
from job_tracker.workflow.roles import RoleRegistry


@pytest.fixture(autouse=True)
def default_workflow_settings(monkeypatch, tmp_path):
    """Keep tests independent of any local .env or settings.json."""
    import job_tracker.config as config_mod
    monkeypatch.setattr(config_mod, "_SETTINGS_FILE", tmp_path / "settings.json")
    monkeypatch.setattr(Config, "ALLOW_REOPEN_COMPLETE", True)
    monkeypatch.setattr(Config, "AUTH_EMAIL_DOMAIN", "company.internal")


@pytest.fixture
def db_path(tmp_path):
    """Provide a temporary database path."""
    return tmp_path / "test.db"


@pytest.fixture
def db(db_path):
    """Provide an initialized database connection."""
    conn = DatabaseConnection(db_path)
    initialize_database(conn)
    return conn


@pytest.fixture
def feed():
    return ChangeFeed()


@pytest.fixture
def repo(db, feed):
    """Provide a repository with an initialized database."""
    return Repository(db, feed=feed)


@pytest.fixture
def roles(repo):
    return RoleRegistry(repo)


@pytest.fixture
def lifecycle(repo, roles):
    return JobLifecycle(repo, roles)


@pytest.fixture
def make_user(repo):
    """Factory: create a profile holding the given roles."""
    def _make(employee_id, full_name, *role_names):
        profile = Profile(
            employee_id=employee_id,
            full_name=full_name,
            email=f"{employee_id}@company.internal",
            password_hash="unused",
        )
        profile.id = repo.create_profile(profile)
        for role in role_names:
            repo.add_role(profile.id, role)
        return profile
    return _make


@pytest.fixture
def admin_user(make_user):
    return make_user("EMP-001", "Grace Admin", "admin")


@pytest.fixture
def manager_user(make_user):
    return make_user("EMP-002", "Tom Manager", "manager")


@pytest.fixture
def allocater_user(make_user):
    return make_user("EMP-003", "Priya Allocater", "allocater")


@pytest.fixture
def declarant_user(make_user):
    return make_user("EMP-004", "Daniel Declarant", "declarant")


@pytest.fixture
def other_declarant(make_user):
    return make_user("EMP-005", "Lucy Declarant", "declarant")


@pytest.fixture
def no_role_user(make_user):
    return make_user("EMP-009", "New Starter")


@pytest.fixture
def pending_job(lifecycle, allocater_user) -> Job:
    """Unallocated JR-100 for Acme Ltd."""
    return lifecycle.create(allocater_user.id, "JR-100", "Acme Ltd")
