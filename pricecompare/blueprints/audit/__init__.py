"""Audit log blueprint (read-only)."""

from .routes import audit_bp  # noqa: F401
