"""
Vendors (master data).

Every authenticated role may manage vendors.
A vendor linked to any comparison cannot be deleted.

Audit:
- CREATE / UPDATE / DELETE logged
"""

import logging

from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from ...audit import log_action, serialize_model
from ...errors import ConflictError
from ...extensions import db
from ...models import ComparisonVendor, Vendor
from ...utils import get_json_payload, get_or_404, parse_bool, parse_decimal, parse_str, require_fields

logger = logging.getLogger(__name__)

vendors_bp = Blueprint("vendors", __name__, url_prefix="/vendors")

REQUIRED_FIELDS = ("name", "contactPerson", "email", "phone", "address")

# payload key -> column
TEXT_FIELDS = {
    "name": "name",
    "contactPerson": "contact_person",
    "email": "email",
    "phone": "phone",
    "address": "address",
}


def _apply_payload(vendor: Vendor, data: dict, *, partial: bool) -> None:
    for key, column in TEXT_FIELDS.items():
        if partial and data.get(key) is None:
            continue
        setattr(vendor, column, parse_str(data, key, required=True))

    if data.get("vat") is not None:
        vendor.vat = parse_decimal(data["vat"], "vat")

    if data.get("isActive") is not None:
        vendor.is_active = parse_bool(data, "isActive")


@vendors_bp.get("")
@login_required
def list_vendors():
    vendors = Vendor.query.order_by(Vendor.name.asc()).all()
    return jsonify([v.to_dict() for v in vendors])


@vendors_bp.get("/<vendor_id>")
@login_required
def get_vendor(vendor_id):
    return jsonify(get_or_404(Vendor, vendor_id, "Vendor").to_dict())


@vendors_bp.post("")
@login_required
def create_vendor():
    data = get_json_payload()
    require_fields(data, REQUIRED_FIELDS)

    vendor = Vendor()
    _apply_payload(vendor, data, partial=False)

    db.session.add(vendor)
    db.session.flush()

    log_action(vendor, "CREATE", after=serialize_model(vendor))
    db.session.commit()

    logger.info("Vendor %r created by %s", vendor.name, current_user.username)
    return jsonify(vendor.to_dict()), 201


@vendors_bp.put("/<vendor_id>")
@login_required
def update_vendor(vendor_id):
    vendor = get_or_404(Vendor, vendor_id, "Vendor")
    data = get_json_payload()

    before_snapshot = serialize_model(vendor)
    _apply_payload(vendor, data, partial=True)

    log_action(vendor, "UPDATE", before=before_snapshot, after=serialize_model(vendor))
    db.session.commit()

    return jsonify(vendor.to_dict())


@vendors_bp.delete("/<vendor_id>")
@login_required
def delete_vendor(vendor_id):
    vendor = get_or_404(Vendor, vendor_id, "Vendor")

    if ComparisonVendor.query.filter_by(vendor_id=vendor.id).first() is not None:
        raise ConflictError("Vendor is used in comparisons and cannot be deleted")

    log_action(vendor, "DELETE", before=serialize_model(vendor))
    db.session.delete(vendor)
    db.session.commit()

    logger.info("Vendor %r deleted by %s", vendor.name, current_user.username)
    return jsonify({"message": "Vendor deleted successfully"})
