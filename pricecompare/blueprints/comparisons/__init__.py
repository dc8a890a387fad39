"""
pricecompare/blueprints/comparisons/__init__.py

Blueprint package export.

IMPORTANT:
- Must expose comparisons_bp for app factory registration.
- Keep import minimal to avoid side effects.
"""

from __future__ import annotations

from .routes import comparisons_bp  # noqa: F401
