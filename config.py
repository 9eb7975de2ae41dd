"""
Application configuration.

Settings for the GatePal Super Admin console: database connection, secret key,
the directory backend that owns society records, and logging. Sensitive values
come from environment variables; the defaults are for development only.
"""

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent


class Config:
    """Base configuration shared by all environments."""

    # IMPORTANT: change this in production
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-change-me-please")

    # Database: SQLite for development (simple file in project folder)
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        f"sqlite:///{BASE_DIR / 'gatepal.db'}"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # CSRF protection for forms
    WTF_CSRF_ENABLED = True

    # App UI name (used in templates)
    APP_NAME = "GatePal Super Admin"

    # Where society records live:
    # - "database": this console's own database is the source of truth
    # - "remote": the GatePal backend REST API
    DIRECTORY_BACKEND = os.environ.get("DIRECTORY_BACKEND", "database")
    DIRECTORY_API_BASE_URL = os.environ.get("DIRECTORY_API_BASE_URL", "http://localhost:3003/api")
    DIRECTORY_API_TOKEN = os.environ.get("DIRECTORY_API_TOKEN")
    DIRECTORY_API_TIMEOUT = float(os.environ.get("DIRECTORY_API_TIMEOUT", "15"))

    SOCIETIES_PER_PAGE = int(os.environ.get("SOCIETIES_PER_PAGE", "10"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


class TestingConfig(Config):
    """Configuration used by the test suite."""

    TESTING = True
    SECRET_KEY = "test-secret-key"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    WTF_CSRF_ENABLED = False
    DIRECTORY_BACKEND = "database"
    LOG_LEVEL = "DEBUG"
