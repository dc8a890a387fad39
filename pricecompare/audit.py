"""
pricecompare/audit.py

Audit logging helpers.

- Capture WHO did WHAT to WHICH entity, with BEFORE/AFTER snapshots.
- Store a username snapshot so the trail survives renames and deletions.
- Store the IP address for traceability.

IMPORTANT:
- log_action() only ADDS an AuditLog to the current session. The calling
  handler owns the transaction, so the audit entry commits (or rolls back)
  together with the change it describes.
- Password hashes are never written to a snapshot.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Optional

from flask import request
from flask_login import current_user

from .extensions import db
from .models import AuditLog

SNAPSHOT_EXCLUDED_COLUMNS = frozenset({"password_hash"})


def _safe_str(value: Any) -> Optional[str]:
    """Stable string form for JSON storage (Decimal, datetime, lists...)."""
    if value is None:
        return None
    if isinstance(value, (list, dict)):
        return json.dumps(value, ensure_ascii=False, default=str)
    return str(value)


def serialize_model(instance: Any) -> Dict[str, Optional[str]]:
    """
    Snapshot of the scalar columns of a model instance.

    Relationships are not followed.
    """
    data: Dict[str, Optional[str]] = {}
    for column in instance.__table__.columns:
        if column.name in SNAPSHOT_EXCLUDED_COLUMNS:
            continue
        data[column.name] = _safe_str(getattr(instance, column.name))
    return data


def log_action(
    entity: Any,
    action: str,
    *,
    before: Optional[Dict[str, Any]] = None,
    after: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """
    Add an AuditLog entry to the current db session.

    entity: model instance with an id (flush first for new rows)
    action: CREATE / UPDATE / DELETE / SUBMIT / APPROVE / REJECT
    """
    entity_id = getattr(entity, "id", None)
    if entity_id is None:
        raise ValueError("log_action entity must have an 'id' attribute (after flush).")

    authenticated = current_user.is_authenticated
    entry = AuditLog(
        user_id=current_user.id if authenticated else None,
        username_snapshot=current_user.username if authenticated else None,
        entity_type=entity.__class__.__name__,
        entity_id=str(entity_id),
        action=str(action),
        before_data=json.dumps(before, ensure_ascii=False) if before else None,
        after_data=json.dumps(after, ensure_ascii=False) if after else None,
        ip_address=request.remote_addr,
    )
    db.session.add(entry)
    return entry
