# stockroom/config.py
from __future__ import annotations
import os
from datetime import timedelta


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def parse_lockout_schedule(raw: str) -> tuple[tuple[int, int], ...]:
    """
    Parse "3:60,5:300" into ((3, 60), (5, 300)).

    Each pair is (failed attempts, lockout seconds); the pair with the largest
    attempt count not exceeding the current failures wins.
    """
    steps = []
    for chunk in raw.split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        attempts, _, seconds = chunk.partition(":")
        steps.append((int(attempts), int(seconds)))
    if not steps:
        raise ValueError("LOGIN_LOCKOUT_SCHEDULE must define at least one step")
    return tuple(sorted(steps))


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in instance/stockroom.sqlite3 unless DATABASE_URL is set
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///stockroom.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Sessions
    SESSION_LIFETIME = timedelta(hours=int(os.environ.get("SESSION_LIFETIME_HOURS", "24")))
    STOCKROOM_SESSION_COOKIE = "sessionId"
    SESSION_COOKIE_SECURE = _env_bool("SESSION_COOKIE_SECURE", False)
    SESSION_COOKIE_SAMESITE = os.environ.get("SESSION_COOKIE_SAMESITE", "Lax")

    # Passwords
    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))

    # Login throttling: 60s cooldown from the 3rd failure, 5min from the 5th
    LOGIN_LOCKOUT_SCHEDULE = parse_lockout_schedule(
        os.environ.get("LOGIN_LOCKOUT_SCHEDULE", "3:60,5:300")
    )

    # Registration policy
    FIRST_USER_IS_ADMIN = _env_bool("FIRST_USER_IS_ADMIN", True)
    SELF_REGISTRATION_ROLE = os.environ.get("SELF_REGISTRATION_ROLE", "staff")

    CORS_ALLOWED_ORIGINS = {
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173",
        ).split(",")
        if origin.strip()
    }


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    BCRYPT_ROUNDS = 4
    LOGIN_LOCKOUT_SCHEDULE = ((3, 60), (5, 300))
    FIRST_USER_IS_ADMIN = True
    SELF_REGISTRATION_ROLE = "staff"
