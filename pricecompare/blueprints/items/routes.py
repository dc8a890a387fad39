"""
Items (master data).

- unit must be one of UNITS_OF_MEASURE (case-insensitive, stored canonical)
- isVatable defaults to true
- an item used by any comparison row cannot be deleted
"""

import logging

from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from ...audit import log_action, serialize_model
from ...errors import ConflictError, ValidationError
from ...extensions import db
from ...models import UNITS_OF_MEASURE, ComparisonRow, Item
from ...utils import get_json_payload, get_or_404, parse_bool, parse_str, require_fields

logger = logging.getLogger(__name__)

items_bp = Blueprint("items", __name__, url_prefix="/items")

REQUIRED_FIELDS = ("name", "description", "specification", "unit", "category")

_UNITS_BY_KEY = {u.lower(): u for u in UNITS_OF_MEASURE}


def _parse_unit(data: dict) -> str:
    raw = parse_str(data, "unit", required=True)
    unit = _UNITS_BY_KEY.get(raw.lower())
    if unit is None:
        raise ValidationError(f"Invalid unit of measure: {raw}")
    return unit


def _apply_payload(item: Item, data: dict, *, partial: bool) -> None:
    for key in ("name", "description", "specification", "category"):
        if partial and data.get(key) is None:
            continue
        setattr(item, key, parse_str(data, key, required=True))

    if not partial or data.get("unit") is not None:
        item.unit = _parse_unit(data)

    if data.get("isVatable") is not None:
        item.is_vatable = parse_bool(data, "isVatable")
    elif not partial:
        item.is_vatable = True

    if data.get("isActive") is not None:
        item.is_active = parse_bool(data, "isActive")


@items_bp.get("")
@login_required
def list_items():
    items = Item.query.order_by(Item.name.asc()).all()
    return jsonify([i.to_dict() for i in items])


@items_bp.get("/units")
@login_required
def list_units():
    return jsonify(UNITS_OF_MEASURE)


@items_bp.get("/<item_id>")
@login_required
def get_item(item_id):
    return jsonify(get_or_404(Item, item_id, "Item").to_dict())


@items_bp.post("")
@login_required
def create_item():
    data = get_json_payload()
    require_fields(data, REQUIRED_FIELDS)

    item = Item()
    _apply_payload(item, data, partial=False)

    db.session.add(item)
    db.session.flush()

    log_action(item, "CREATE", after=serialize_model(item))
    db.session.commit()

    logger.info("Item %r created by %s", item.name, current_user.username)
    return jsonify(item.to_dict()), 201


@items_bp.put("/<item_id>")
@login_required
def update_item(item_id):
    item = get_or_404(Item, item_id, "Item")
    data = get_json_payload()

    before_snapshot = serialize_model(item)
    _apply_payload(item, data, partial=True)

    log_action(item, "UPDATE", before=before_snapshot, after=serialize_model(item))
    db.session.commit()

    return jsonify(item.to_dict())


@items_bp.delete("/<item_id>")
@login_required
def delete_item(item_id):
    item = get_or_404(Item, item_id, "Item")

    if ComparisonRow.query.filter_by(item_id=item.id).first() is not None:
        raise ConflictError("Item is used in comparisons and cannot be deleted")

    log_action(item, "DELETE", before=serialize_model(item))
    db.session.delete(item)
    db.session.commit()

    logger.info("Item %r deleted by %s", item.name, current_user.username)
    return jsonify({"message": "Item deleted successfully"})
