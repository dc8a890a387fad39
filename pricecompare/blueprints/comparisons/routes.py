"""
Price-comparison sheets.

Provides:
- CRUD for comparisons with their rows and linked vendors
- Workflow actions: submit / approve / reject
- Per-vendor totals summary

Rules:
- Checkers and admins see every comparison; makers only their own.
- Only drafts can be edited.
- Rows and vendor links are replaced wholesale when supplied, inside the same
  transaction as the rest of the change.
- status in a payload is ignored; it only moves through the workflow actions.

Audit:
- CREATE / UPDATE / DELETE / SUBMIT / APPROVE / REJECT logged
"""

import logging
import time

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from ... import permissions, workflow
from ...audit import log_action, serialize_model
from ...calculations import summarize
from ...errors import AuthorizationError, ValidationError
from ...extensions import db
from ...models import (
    COMPARISON_STATUSES,
    DEFAULT_COMPARISON_TITLE,
    DEFAULT_ROW_UOM,
    STATUS_DRAFT,
    Comparison,
    ComparisonRow,
    ComparisonVendor,
    Item,
    Vendor,
    utcnow,
)
from ...security import ensure_comparison_access
from ...utils import (
    get_json_payload,
    get_or_404,
    is_blank,
    parse_decimal,
    parse_number_list,
    parse_optional_int,
    parse_str,
)

logger = logging.getLogger(__name__)

comparisons_bp = Blueprint("comparisons", __name__, url_prefix="/comparisons")


def _generate_request_number() -> str:
    return f"REQ-{int(time.time() * 1000)}"


def _load_accessible(comparison_id: str) -> Comparison:
    comparison = get_or_404(Comparison, comparison_id, "Comparison")
    ensure_comparison_access(comparison)
    return comparison


def _snapshot(comparison: Comparison) -> dict:
    data = serialize_model(comparison)
    data["vendor_ids"] = [link.vendor_id for link in comparison.vendor_links]
    data["row_count"] = len(comparison.rows)
    return data


def _fit(values: list, size: int) -> list:
    """Pad with zeros or truncate to exactly `size` entries."""
    return (list(values) + [0.0] * size)[:size]


# ---------------------------------------------------------------------
# Rows / vendor links
# ---------------------------------------------------------------------

def _replace_vendors(comparison: Comparison, vendor_ids) -> None:
    if not isinstance(vendor_ids, list):
        raise ValidationError("selectedVendors must be a list of vendor ids")

    vendors = []
    for vendor_id in vendor_ids:
        if is_blank(vendor_id) or not isinstance(vendor_id, str):
            raise ValidationError("selectedVendors must be a list of vendor ids")
        vendor = db.session.get(Vendor, vendor_id)
        if vendor is None:
            raise ValidationError(f"Vendor not found: {vendor_id}")
        if vendor in vendors:
            raise ValidationError(f"Vendor selected more than once: {vendor.name}")
        vendors.append(vendor)

    # Old links must be gone before new positions are inserted.
    comparison.vendor_links.clear()
    db.session.flush()

    for index, vendor in enumerate(vendors):
        comparison.vendor_links.append(ComparisonVendor(vendor=vendor, position=index + 1))


def _build_row(data, srl: int, vendor_count: int) -> ComparisonRow:
    item_id = data.get("itemId")
    item = db.session.get(Item, item_id) if isinstance(item_id, str) else None
    if item is None:
        raise ValidationError(f"Item not found: {item_id}")

    quantities = parse_number_list(data.get("quantities"), "quantities")
    prices = parse_number_list(data.get("prices"), "prices")
    if vendor_count > 0:
        quantities = _fit(quantities, vendor_count)
        prices = _fit(prices, vendor_count)

    if data.get("qty") is not None:
        qty = parse_decimal(data["qty"], "qty")
    else:
        qty = parse_decimal(quantities[0] if quantities else 0, "qty")

    selected = parse_optional_int(data.get("selectedVendorIndex"), "selectedVendorIndex")
    if selected is not None and not 0 <= selected < vendor_count:
        raise ValidationError("selectedVendorIndex does not match a selected vendor")

    return ComparisonRow(
        srl=srl,
        item=item,
        description=parse_str(data, "description") or "",
        qty=qty,
        uom=parse_str(data, "uom") or DEFAULT_ROW_UOM,
        quantities=quantities,
        prices=prices,
        selected_vendor_index=selected,
        remarks=parse_str(data, "remarks") or "",
        comment=parse_str(data, "comment") or "",
    )


def _replace_rows(comparison: Comparison, rows) -> None:
    """Rows with a blank itemId are dropped; srl is renumbered over the kept rows."""
    if not isinstance(rows, list):
        raise ValidationError("rows must be a list")

    vendor_count = comparison.vendor_count
    built = []
    for data in rows:
        if not isinstance(data, dict):
            raise ValidationError("Each row must be an object")
        if is_blank(data.get("itemId")):
            continue
        built.append(_build_row(data, len(built) + 1, vendor_count))

    comparison.rows.clear()
    db.session.flush()
    comparison.rows.extend(built)


def _refit_rows(comparison: Comparison) -> None:
    """Existing rows follow a new vendor selection."""
    vendor_count = comparison.vendor_count
    if vendor_count == 0:
        return
    for row in comparison.rows:
        row.quantities = _fit(row.quantities or [], vendor_count)
        row.prices = _fit(row.prices or [], vendor_count)
        if row.selected_vendor_index is not None and row.selected_vendor_index >= vendor_count:
            row.selected_vendor_index = None


def _apply_payload(comparison: Comparison, data: dict) -> None:
    if data.get("title") is not None:
        comparison.title = parse_str(data, "title", max_length=255) or DEFAULT_COMPARISON_TITLE
    if data.get("requestNumber") is not None:
        comparison.request_number = parse_str(data, "requestNumber", max_length=100) or comparison.request_number
    if "generalComments" in data:
        comparison.general_comments = parse_str(data, "generalComments") or ""
    if "purpose" in data:
        comparison.purpose = parse_str(data, "purpose", max_length=255) or None

    if data.get("selectedVendors") is not None:
        _replace_vendors(comparison, data["selectedVendors"])
        if data.get("rows") is None:
            _refit_rows(comparison)

    if data.get("rows") is not None:
        _replace_rows(comparison, data["rows"])


# ---------------------------------------------------------------------
# LIST / GET
# ---------------------------------------------------------------------

@comparisons_bp.get("")
@login_required
def list_comparisons():
    """Newest first. Optional ?status= filter."""
    query = Comparison.query

    if not permissions.can_view_all_comparisons(current_user.role):
        query = query.filter(Comparison.created_by == current_user.id)

    status = (request.args.get("status") or "").strip()
    if status:
        if status not in COMPARISON_STATUSES:
            raise ValidationError(f"Invalid status: {status}")
        query = query.filter(Comparison.status == status)

    comparisons = query.order_by(Comparison.created_at.desc()).all()
    return jsonify([c.to_dict(include_details=False) for c in comparisons])


@comparisons_bp.get("/<comparison_id>")
@login_required
def get_comparison(comparison_id):
    return jsonify(_load_accessible(comparison_id).to_dict())


# ---------------------------------------------------------------------
# CREATE / UPDATE / DELETE
# ---------------------------------------------------------------------

@comparisons_bp.post("")
@login_required
def create_comparison():
    """New comparisons always start as drafts owned by the caller."""
    data = get_json_payload()

    comparison = Comparison(
        request_number=_generate_request_number(),
        title=DEFAULT_COMPARISON_TITLE,
        status=STATUS_DRAFT,
        created_by=current_user.id,
        general_comments="",
    )
    db.session.add(comparison)
    db.session.flush()

    _apply_payload(comparison, data)
    db.session.flush()

    log_action(comparison, "CREATE", after=_snapshot(comparison))
    db.session.commit()

    logger.info("Comparison %s created by %s", comparison.request_number, current_user.username)
    return jsonify(comparison.to_dict()), 201


@comparisons_bp.put("/<comparison_id>")
@login_required
def update_comparison(comparison_id):
    comparison = _load_accessible(comparison_id)
    workflow.ensure_editable(comparison)

    data = get_json_payload()
    before_snapshot = _snapshot(comparison)

    _apply_payload(comparison, data)
    comparison.updated_at = utcnow()
    db.session.flush()

    log_action(comparison, "UPDATE", before=before_snapshot, after=_snapshot(comparison))
    db.session.commit()

    return jsonify(comparison.to_dict())


@comparisons_bp.delete("/<comparison_id>")
@login_required
def delete_comparison(comparison_id):
    """Cascades to rows, vendor links and attachments."""
    comparison = _load_accessible(comparison_id)
    workflow.ensure_deletable(comparison, current_user)

    log_action(comparison, "DELETE", before=_snapshot(comparison))
    db.session.delete(comparison)
    db.session.commit()

    logger.info("Comparison %s deleted by %s", comparison.request_number, current_user.username)
    return jsonify({"message": "Comparison deleted successfully"})


# ---------------------------------------------------------------------
# WORKFLOW
# ---------------------------------------------------------------------

@comparisons_bp.post("/<comparison_id>/submit")
@login_required
def submit_comparison(comparison_id):
    if not permissions.can_submit_comparison(current_user.role):
        raise AuthorizationError("Only makers and admins can submit comparisons")

    comparison = _load_accessible(comparison_id)
    before_snapshot = _snapshot(comparison)

    workflow.submit(comparison, current_user)

    log_action(comparison, "SUBMIT", before=before_snapshot, after=_snapshot(comparison))
    db.session.commit()
    return jsonify(comparison.to_dict())


@comparisons_bp.post("/<comparison_id>/approve")
@login_required
def approve_comparison(comparison_id):
    if not permissions.can_review_comparison(current_user.role):
        raise AuthorizationError("Only checkers and admins can approve comparisons")

    comparison = _load_accessible(comparison_id)
    before_snapshot = _snapshot(comparison)

    workflow.approve(comparison, current_user)

    log_action(comparison, "APPROVE", before=before_snapshot, after=_snapshot(comparison))
    db.session.commit()
    return jsonify(comparison.to_dict())


@comparisons_bp.post("/<comparison_id>/reject")
@login_required
def reject_comparison(comparison_id):
    if not permissions.can_review_comparison(current_user.role):
        raise AuthorizationError("Only checkers and admins can reject comparisons")

    data = get_json_payload()
    reason = data.get("rejectionReason")
    if is_blank(reason) or not isinstance(reason, str):
        raise ValidationError("Rejection reason is required")

    comparison = _load_accessible(comparison_id)
    before_snapshot = _snapshot(comparison)

    workflow.reject(comparison, current_user, reason)

    log_action(comparison, "REJECT", before=before_snapshot, after=_snapshot(comparison))
    db.session.commit()
    return jsonify(comparison.to_dict())


# ---------------------------------------------------------------------
# SUMMARY
# ---------------------------------------------------------------------

@comparisons_bp.get("/<comparison_id>/summary")
@login_required
def comparison_summary(comparison_id):
    return jsonify(summarize(_load_accessible(comparison_id)))
