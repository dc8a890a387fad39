"""
Company settings (singleton).

- GET: any authenticated user; the default record is created on first read.
- PUT: checker / admin; partial update, upsert in one transaction.
"""

import logging

from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from ...audit import log_action, serialize_model
from ...extensions import db
from ...models import utcnow
from ...permissions import Role
from ...security import roles_required
from ...seed import get_or_create_settings
from ...utils import get_json_payload, parse_decimal, parse_str

logger = logging.getLogger(__name__)

settings_bp = Blueprint("settings", __name__, url_prefix="/settings")

# payload key -> column
TEXT_FIELDS = {
    "companyName": "company_name",
    "companyAddress": "company_address",
    "companyPhone": "company_phone",
    "companyEmail": "company_email",
}


@settings_bp.get("")
@login_required
def get_settings():
    record = get_or_create_settings()
    db.session.commit()
    return jsonify(record.to_dict())


@settings_bp.put("")
@login_required
@roles_required(Role.CHECKER, Role.ADMIN)
def update_settings():
    data = get_json_payload()
    record = get_or_create_settings()
    before_snapshot = serialize_model(record)

    for key, column in TEXT_FIELDS.items():
        if data.get(key) is not None:
            setattr(record, column, parse_str(data, key, required=True))

    if data.get("defaultVat") is not None:
        record.default_vat = parse_decimal(data["defaultVat"], "defaultVat")

    # Signature may be cleared with null.
    if "checkerSignature" in data:
        record.checker_signature = parse_str(data, "checkerSignature") or None

    record.updated_at = utcnow()
    record.updated_by = current_user.id

    log_action(record, "UPDATE", before=before_snapshot, after=serialize_model(record))
    db.session.commit()

    logger.info("Settings updated by %s", current_user.username)
    return jsonify(record.to_dict())
