"""
Application configuration.

Settings are read from environment variables. SECRET_KEY has no default: it signs the
access tokens, and create_app() refuses to start without it.
"""

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    """Base configuration shared by all environments."""

    SECRET_KEY = os.environ.get("SECRET_KEY", "")

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        f"sqlite:///{BASE_DIR / 'pricecompare.db'}"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
    }

    # Access tokens (JWT, HS256 signed with SECRET_KEY)
    JWT_ALGORITHM = "HS256"
    TOKEN_EXPIRES_MINUTES = int(os.environ.get("TOKEN_EXPIRES_MINUTES", str(7 * 24 * 60)))
    TOKEN_COOKIE_NAME = "token"
    TOKEN_COOKIE_SECURE = _env_bool("TOKEN_COOKIE_SECURE", False)

    # Startup seeding (default admin + settings row)
    SEED_ON_STARTUP = _env_bool("SEED_ON_STARTUP", True)
    ADMIN_USERNAME = os.environ.get("ADMIN_USERNAME", "admin")
    ADMIN_PASSWORD = os.environ.get("ADMIN_PASSWORD", "")
    ADMIN_NAME = os.environ.get("ADMIN_NAME", "System Administrator")

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    JSON_SORT_KEYS = False


class TestConfig(Config):
    """In-memory database, fixed secret, no seeding."""

    TESTING = True
    SECRET_KEY = "test-secret-key"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SQLALCHEMY_ENGINE_OPTIONS = {}
    TOKEN_COOKIE_SECURE = False
    SEED_ON_STARTUP = False
    ADMIN_USERNAME = "admin"
    ADMIN_PASSWORD = "admin-password"
    LOG_LEVEL = "WARNING"
