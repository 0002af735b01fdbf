"""Application configuration: loads .env, then overrides from settings.json."""

import json
import os
from pathlib import Path

from dotenv import load_dotenv

# Find the project root (where .env lives)
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

# Runtime settings file for in-app configuration
_SETTINGS_FILE = _PROJECT_ROOT / "data" / "settings.json"


def _load_settings() -> dict:
    """Load saved runtime settings from JSON file."""
    if _SETTINGS_FILE.exists():
        try:
            return json.loads(_SETTINGS_FILE.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            pass
    return {}


def _save_settings(settings: dict):
    """Persist runtime settings to JSON file."""
    _SETTINGS_FILE.parent.mkdir(parents=True, exist_ok=True)
    _SETTINGS_FILE.write_text(
        json.dumps(settings, indent=2), encoding="utf-8"
    )


def _as_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


# Load saved settings once at import time
_runtime = _load_settings()


class Config:
    """Central configuration: .env defaults, settings.json overrides."""

    # Paths
    PROJECT_ROOT: Path = _PROJECT_ROOT
    DATABASE_PATH: Path = Path(
        os.getenv("DATABASE_PATH", str(_PROJECT_ROOT / "data" / "job_tracker.db"))
    )
    BACKUP_PATH: Path = Path(
        os.getenv("DATABASE_BACKUP_PATH", str(_PROJECT_ROOT / "data" / "backups"))
    )

    # Seconds a writer waits on a locked database before giving up
    DB_TIMEOUT: float = float(os.getenv("DB_TIMEOUT", "5.0"))

    # Auth: employee IDs map to <employee_id>@<domain>
    AUTH_EMAIL_DOMAIN: str = _runtime.get(
        "auth_email_domain",
        os.getenv("AUTH_EMAIL_DOMAIN", "company.internal"),
    )

    # Workflow (settings.json overrides .env)
    ALLOW_REOPEN_COMPLETE: bool = _as_bool(_runtime.get(
        "allow_reopen_complete",
        os.getenv("ALLOW_REOPEN_COMPLETE", "true"),
    ))

    LOG_LEVEL: str = _runtime.get(
        "log_level",
        os.getenv("LOG_LEVEL", "INFO"),
    )

    @classmethod
    def update_workflow_settings(cls, allow_reopen_complete: bool):
        """Update workflow rules at runtime and persist to disk."""
        cls.ALLOW_REOPEN_COMPLETE = allow_reopen_complete

        settings = _load_settings()
        settings["allow_reopen_complete"] = allow_reopen_complete
        _save_settings(settings)

    @classmethod
    def update_auth_domain(cls, domain: str):
        """Change the internal address domain used for sign-in."""
        cls.AUTH_EMAIL_DOMAIN = domain
        settings = _load_settings()
        settings["auth_email_domain"] = domain
        _save_settings(settings)

    @classmethod
    def update_log_level(cls, level: str):
        """Update the log level and persist."""
        cls.LOG_LEVEL = level.upper()
        settings = _load_settings()
        settings["log_level"] = cls.LOG_LEVEL
        _save_settings(settings)

    @classmethod
    def employee_address(cls, employee_id: str) -> str:
        """Map an employee ID to the internal sign-in address."""
        return f"{employee_id.strip()}@{cls.AUTH_EMAIL_DOMAIN}"
