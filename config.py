"""
Configuration defaults for the prayer tracker.

Values are read from environment variables when the module is imported, so a
deployment only needs to export ``SECRET_KEY`` and ``DATABASE_URL``.
``create_app`` loads this class with ``app.config.from_object`` and then applies
any overrides passed in (the test-suite uses that to swap in an in-memory
database).
"""

from __future__ import annotations

import os


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


class Config:
    # SQLite by default; point DATABASE_URL at Postgres in production
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///prayer_tracker.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # IMPORTANT: set SECRET_KEY in a real deployment
    SECRET_KEY = os.getenv("SECRET_KEY", "change-me-secret-key")

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Minutes after the scheduled time that still count as on time
    ON_TIME_GRACE_MINUTES = _int_env("ON_TIME_GRACE_MINUTES", 30)

    LEADERBOARD_PAGE_SIZE = _int_env("LEADERBOARD_PAGE_SIZE", 20)
    LEADERBOARD_MAX_PAGE_SIZE = _int_env("LEADERBOARD_MAX_PAGE_SIZE", 100)
