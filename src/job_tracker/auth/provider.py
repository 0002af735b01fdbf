"""Local auth provider: employee-ID sign-in against the profiles table.

Employees type their employee ID; internally the account is keyed by the
address ``<employee_id>@<Config.AUTH_EMAIL_DOMAIN>``. Passwords are stored
as ``pbkdf2_sha256$<iterations>$<salt hex>$<hash hex>``.
"""

import hashlib
import hmac
import logging
import secrets
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional

from job_tracker.config import Config
from job_tracker.database.models import ActivityLogEntry, Profile
from job_tracker.database.repository import Repository
from job_tracker.errors import InvalidCredentials
from job_tracker.io.validators import (
    check_password,
    clean_employee_id,
    clean_full_name,
)

logger = logging.getLogger(__name__)

PBKDF2_ITERATIONS = 200_000


def hash_password(password: str, salt: bytes | None = None,
                  iterations: int = PBKDF2_ITERATIONS) -> str:
    salt = salt or secrets.token_bytes(16)
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), salt, iterations
    )
    return f"pbkdf2_sha256${iterations}${salt.hex()}${digest.hex()}"


def verify_password(password: str, stored: str) -> bool:
    try:
        algorithm, iterations, salt_hex, digest_hex = stored.split("$")
        salt, iterations = bytes.fromhex(salt_hex), int(iterations)
    except (AttributeError, ValueError):
        return False
    if algorithm != "pbkdf2_sha256":
        return False
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), salt, iterations
    )
    return hmac.compare_digest(digest.hex(), digest_hex)


@dataclass
class Session:
    user_id: int
    employee_id: str
    email: str
    full_name: str
    started_at: datetime = field(default_factory=datetime.now)


class SessionListener:
    """Handle returned by ``on_session_change``; call ``unsubscribe()``."""

    def __init__(self, provider: "LocalAuthProvider",
                 callback: Callable[[Optional[Session]], None]):
        self._provider = provider
        self.callback = callback
        self.active = True

    def unsubscribe(self):
        if self.active:
            self.active = False
            self._provider._remove_listener(self)


class LocalAuthProvider:
    def __init__(self, repo: Repository):
        self.repo = repo
        self._session: Optional[Session] = None
        self._listeners: list[SessionListener] = []
        self._lock = threading.Lock()

    # ── Session state ───────────────────────────────────────────

    def current_session(self) -> Optional[Session]:
        return self._session

    def on_session_change(
        self, callback: Callable[[Optional[Session]], None]
    ) -> SessionListener:
        """Call ``callback(session_or_None)`` on sign-in and sign-out."""
        listener = SessionListener(self, callback)
        with self._lock:
            self._listeners.append(listener)
        return listener

    def _remove_listener(self, listener: SessionListener):
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def _set_session(self, session: Optional[Session]):
        self._session = session
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            if not listener.active:
                continue
            try:
                listener.callback(session)
            except Exception:
                logger.exception("Session listener failed")

    @staticmethod
    def _session_for(profile: Profile) -> Session:
        return Session(
            user_id=profile.id,
            employee_id=profile.employee_id,
            email=profile.email,
            full_name=profile.full_name,
        )

    # ── Commands ────────────────────────────────────────────────

    def sign_in(self, employee_id: str, password: str) -> Session:
        """Start a session. Any mismatch raises InvalidCredentials."""
        email = Config.employee_address(employee_id or "")
        profile = self.repo.get_profile_by_email(email)
        if (profile is None or not profile.is_active
                or not verify_password(password or "", profile.password_hash)):
            logger.info("Failed sign-in for %s", email)
            raise InvalidCredentials()

        session = self._session_for(profile)
        self._set_session(session)
        logger.info("User %s signed in", profile.employee_id)
        return session

    def sign_up(self, employee_id: str, password: str, full_name: str,
                confirm_password: str | None = None) -> Session:
        """Register a profile with no roles and sign it in.

        Raises DuplicateEmployeeId if the employee ID is taken.
        """
        employee_id = clean_employee_id(employee_id)
        full_name = clean_full_name(full_name)
        check_password(password, confirm_password)

        profile = Profile(
            employee_id=employee_id,
            full_name=full_name,
            email=Config.employee_address(employee_id),
            password_hash=hash_password(password),
        )
        signed_up = ActivityLogEntry(
            action="signed_up", entity_type="profile", entity_label=employee_id,
        )
        profile.id = self.repo.create_profile(profile, activity=signed_up)
        logger.info("User %s signed up", employee_id)

        session = self._session_for(profile)
        self._set_session(session)
        return session

    def change_password(self, user_id: int, old_password: str,
                        new_password: str,
                        confirm_password: str | None = None):
        profile = self.repo.get_profile_by_id(user_id)
        if profile is None or not verify_password(
            old_password or "", profile.password_hash
        ):
            raise InvalidCredentials()
        check_password(new_password, confirm_password)
        profile.password_hash = hash_password(new_password)
        self.repo.update_profile(profile)

    def sign_out(self):
        if self._session is None:
            return
        logger.info("User %s signed out", self._session.employee_id)
        self._set_session(None)
