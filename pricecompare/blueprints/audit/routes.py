"""
Audit trail (read-only).

GET /audit-logs?entityType=&entityId=
Checker / admin only. Newest first, capped at AUDIT_LOG_LIMIT entries.
"""

from flask import Blueprint, jsonify, request
from flask_login import login_required

from ...models import AuditLog
from ...permissions import Role
from ...security import roles_required

audit_bp = Blueprint("audit", __name__, url_prefix="/audit-logs")

AUDIT_LOG_LIMIT = 500


@audit_bp.get("")
@login_required
@roles_required(Role.CHECKER, Role.ADMIN)
def list_audit_logs():
    query = AuditLog.query

    entity_type = (request.args.get("entityType") or "").strip()
    if entity_type:
        query = query.filter(AuditLog.entity_type == entity_type)

    entity_id = (request.args.get("entityId") or "").strip()
    if entity_id:
        query = query.filter(AuditLog.entity_id == entity_id)

    entries = (
        query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .limit(AUDIT_LOG_LIMIT)
        .all()
    )
    return jsonify([e.to_dict() for e in entries])
