# backend/storelend/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/storelend.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///storelend.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # How notification/audit work runs after a borrow transition commits:
    # "inline" (same thread, after commit) or "background" (thread pool)
    BORROW_SIDE_EFFECTS_MODE = os.environ.get("BORROW_SIDE_EFFECTS_MODE", "background")
    BORROW_SIDE_EFFECTS_WORKERS = int(os.environ.get("BORROW_SIDE_EFFECTS_WORKERS", "4"))

    # "database", "log" or "memory"
    BORROW_NOTIFICATION_BACKEND = os.environ.get("BORROW_NOTIFICATION_BACKEND", "database")
    BORROW_AUDIT_BACKEND = os.environ.get("BORROW_AUDIT_BACKEND", "database")

    BORROW_LIST_MAX_LIMIT = 500

    # Retry policy for lock errors on conditional writes
    DB_RETRY_ATTEMPTS = int(os.environ.get("DB_RETRY_ATTEMPTS", "3"))
    DB_RETRY_BACKOFF_SECONDS = float(os.environ.get("DB_RETRY_BACKOFF_SECONDS", "0.1"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    # "console" or "json"
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "console")


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = "test"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    BORROW_SIDE_EFFECTS_MODE = "inline"
    BORROW_NOTIFICATION_BACKEND = "memory"
    BORROW_AUDIT_BACKEND = "memory"
    DB_RETRY_BACKOFF_SECONDS = 0.01
    LOG_LEVEL = "WARNING"
