"""
pricecompare/seed.py

Startup / CLI seeding.

Rules:
- Safe to run multiple times (idempotent).
- Default admin is created only when NO admin exists, and only when an admin
  password is configured. There is no built-in fallback password.
- Default settings row is created only when the table is empty.
- reset_comparisons() wipes workflow data but keeps users, vendors, items and settings.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from flask import current_app

from .extensions import db
from .models import Attachment, Comparison, ComparisonRow, ComparisonVendor, Settings, User
from .permissions import Role

logger = logging.getLogger(__name__)


DEFAULT_SETTINGS = {
    "company_name": "Your Company Name",
    "company_address": "Your Company Address",
    "company_phone": "+1234567890",
    "company_email": "info@company.com",
    "default_vat": Decimal("15"),
}


def ensure_default_admin() -> User | None:
    """
    Create the first admin from ADMIN_USERNAME / ADMIN_PASSWORD / ADMIN_NAME.

    Returns the created user, or None when nothing was created.
    """
    if User.query.filter_by(role=Role.ADMIN.value).first():
        return None

    config = current_app.config
    username = (config.get("ADMIN_USERNAME") or "").strip()
    password = config.get("ADMIN_PASSWORD") or ""

    if not username or not password:
        logger.warning("No admin account exists and ADMIN_USERNAME/ADMIN_PASSWORD are not set; skipping admin seed.")
        return None

    if User.query.filter_by(username=username).first():
        logger.warning("Cannot seed admin: username %r is already taken by a non-admin account.", username)
        return None

    admin = User(
        username=username,
        role=Role.ADMIN.value,
        name=config.get("ADMIN_NAME") or "System Administrator",
        is_active=True,
    )
    admin.set_password(password)
    db.session.add(admin)
    db.session.commit()

    logger.info("Admin user %r created", username)
    return admin


def get_or_create_settings() -> Settings:
    """
    Return the singleton settings row, creating it with defaults if absent.

    Only flushes: the calling request decides when to commit.
    """
    record = Settings.query.order_by(Settings.id.asc()).first()
    if record is not None:
        return record

    record = Settings(**DEFAULT_SETTINGS)
    db.session.add(record)
    db.session.flush()
    return record


def ensure_default_settings() -> Settings:
    record = get_or_create_settings()
    db.session.commit()
    return record


def reset_comparisons() -> dict[str, int]:
    """Delete every comparison with its rows, vendor links and attachments."""
    counts = {
        "attachments": Attachment.query.filter(Attachment.comparison_id.isnot(None)).delete(synchronize_session=False),
        "rows": ComparisonRow.query.delete(synchronize_session=False),
        "vendors": ComparisonVendor.query.delete(synchronize_session=False),
        "comparisons": Comparison.query.delete(synchronize_session=False),
    }
    db.session.commit()
    logger.info("Comparison data reset: %s", counts)
    return counts
