"""Tests for the local auth provider."""

import pytest

from job_tracker.auth.provider import (
    LocalAuthProvider,
    hash_password,
    verify_password,
)
from job_tracker.errors import (
    DuplicateEmployeeId,
    InvalidCredentials,
    ValidationError,
)

PASSWORD = "password123"


@pytest.fixture
def auth(repo):
    return LocalAuthProvider(repo)


@pytest.fixture
def registered(auth):
    session = auth.sign_up("EMP-100", PASSWORD, "Ama Owusu")
    auth.sign_out()
    return session


class TestPasswordHashing:
    def test_round_trip(self):
        stored = hash_password(PASSWORD)
        assert stored.startswith("pbkdf2_sha256$")
        assert verify_password(PASSWORD, stored)
        assert not verify_password("wrong-password", stored)

    def test_salted(self):
        assert hash_password(PASSWORD) != hash_password(PASSWORD)

    @pytest.mark.parametrize("stored", ["", "plain", "md5$1$aa$bb",
                                        "pbkdf2_sha256$x$zz$00"])
    def test_malformed_hash(self, stored):
        assert not verify_password(PASSWORD, stored)


class TestSignUp:
    def test_creates_profile_without_roles(self, auth, repo):
        session = auth.sign_up(" EMP-100 ", PASSWORD, "Ama Owusu", PASSWORD)
        assert session.employee_id == "EMP-100"
        assert session.email == "EMP-100@company.internal"
        profile = repo.get_profile_by_id(session.user_id)
        assert profile.full_name == "Ama Owusu"
        assert profile.password_hash != PASSWORD
        assert repo.get_user_roles(session.user_id) == []
        assert auth.current_session() == session

    def test_duplicate_employee_id(self, auth, registered):
        with pytest.raises(DuplicateEmployeeId):
            auth.sign_up("EMP-100", PASSWORD, "Someone Else")

    @pytest.mark.parametrize("employee_id,password,name,confirm", [
        ("", PASSWORD, "Name", None),
        ("EMP-1", "short", "Name", None),
        ("EMP-1", PASSWORD, "", None),
        ("EMP-1", PASSWORD, "Name", "different1"),
    ])
    def test_validation(self, auth, repo, employee_id, password, name,
                        confirm):
        with pytest.raises(ValidationError):
            auth.sign_up(employee_id, password, name, confirm)
        assert repo.profile_count() == 0
        assert auth.current_session() is None


class TestSignIn:
    def test_success(self, auth, registered):
        session = auth.sign_in("EMP-100", PASSWORD)
        assert session.user_id == registered.user_id
        assert auth.current_session() is session

    def test_wrong_password(self, auth, registered):
        with pytest.raises(InvalidCredentials) as exc:
            auth.sign_in("EMP-100", "wrong-password")
        assert exc.value.user_message == "Invalid Employee ID or Password"
        assert auth.current_session() is None

    def test_unknown_employee(self, auth):
        with pytest.raises(InvalidCredentials):
            auth.sign_in("EMP-404", PASSWORD)

    def test_inactive_account(self, auth, repo, registered):
        repo.deactivate_profile(registered.user_id)
        with pytest.raises(InvalidCredentials):
            auth.sign_in("EMP-100", PASSWORD)

    def test_sign_out(self, auth, registered):
        auth.sign_in("EMP-100", PASSWORD)
        auth.sign_out()
        assert auth.current_session() is None

    def test_change_password(self, auth, registered):
        auth.change_password(registered.user_id, PASSWORD, "newpassword1")
        with pytest.raises(InvalidCredentials):
            auth.sign_in("EMP-100", PASSWORD)
        assert auth.sign_in("EMP-100", "newpassword1")

    def test_change_password_needs_old(self, auth, registered):
        with pytest.raises(InvalidCredentials):
            auth.change_password(registered.user_id, "nope", "newpassword1")


class TestSessionChange:
    def test_callbacks(self, auth, registered):
        seen = []
        auth.on_session_change(seen.append)
        auth.sign_in("EMP-100", PASSWORD)
        auth.sign_out()
        assert [s.employee_id if s else None for s in seen] == [
            "EMP-100", None,
        ]

    def test_unsubscribe(self, auth, registered):
        seen = []
        listener = auth.on_session_change(seen.append)
        listener.unsubscribe()
        listener.unsubscribe()
        auth.sign_in("EMP-100", PASSWORD)
        assert seen == []

    def test_failing_listener_does_not_block_sign_in(self, auth, registered):
        def broken(session):
            raise RuntimeError("ui gone")

        auth.on_session_change(broken)
        assert auth.sign_in("EMP-100", PASSWORD) is not None

    def test_sign_out_without_session_is_silent(self, auth):
        seen = []
        auth.on_session_change(seen.append)
        auth.sign_out()
        assert seen == []
