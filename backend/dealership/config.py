# backend/dealership/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/dealership.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///dealership.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Unknown part ids are ignored by the ledger unless this is set
    STRICT_PART_LOOKUP = _env_flag("STRICT_PART_LOOKUP", False)

    # Archive the previous business day on the first request after a date change
    AUTO_CLOSE_ON_STARTUP = _env_flag("AUTO_CLOSE_ON_STARTUP", True)

    SESSION_TTL_HOURS = int(os.environ.get("SESSION_TTL_HOURS", "24"))

    # Name recorded on ledger entries written without an authenticated user
    SYSTEM_ACTOR_NAME = os.environ.get("SYSTEM_ACTOR_NAME", "System")

    # bcrypt cost factor for staff passwords
    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))
