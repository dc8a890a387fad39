"""
Attachment metadata.

File bytes live in external storage; this blueprint only records name, size,
type and location, optionally linked to a comparison.

Visibility:
- checkers / admins: everything
- makers: their own uploads and attachments of comparisons they created
"""

import logging

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from ... import permissions
from ...audit import log_action, serialize_model
from ...errors import AuthorizationError, ValidationError
from ...extensions import db
from ...models import Attachment, Comparison
from ...security import ensure_comparison_access
from ...utils import get_json_payload, get_or_404, parse_optional_int, parse_str, require_fields

logger = logging.getLogger(__name__)

attachments_bp = Blueprint("attachments", __name__, url_prefix="/attachments")


def _can_see(attachment: Attachment) -> bool:
    if permissions.can_view_all_comparisons(current_user.role):
        return True
    if attachment.uploaded_by == current_user.id:
        return True
    return attachment.comparison is not None and attachment.comparison.created_by == current_user.id


def _load_visible(attachment_id: str) -> Attachment:
    attachment = get_or_404(Attachment, attachment_id, "Attachment")
    if not _can_see(attachment):
        raise AuthorizationError("You cannot access this attachment")
    return attachment


@attachments_bp.get("")
@login_required
def list_attachments():
    """Optional ?comparisonId= narrows the list to one comparison."""
    query = Attachment.query

    comparison_id = (request.args.get("comparisonId") or "").strip()
    if comparison_id:
        ensure_comparison_access(get_or_404(Comparison, comparison_id, "Comparison"))
        query = query.filter(Attachment.comparison_id == comparison_id)
    elif not permissions.can_view_all_comparisons(current_user.role):
        owned = db.select(Comparison.id).where(Comparison.created_by == current_user.id)
        query = query.filter(
            (Attachment.uploaded_by == current_user.id) | (Attachment.comparison_id.in_(owned))
        )

    attachments = query.order_by(Attachment.uploaded_at.desc()).all()
    return jsonify([a.to_dict() for a in attachments])


@attachments_bp.get("/<attachment_id>")
@login_required
def get_attachment(attachment_id):
    return jsonify(_load_visible(attachment_id).to_dict())


@attachments_bp.post("")
@login_required
def create_attachment():
    data = get_json_payload()
    require_fields(data, ("name", "type"))

    size = parse_optional_int(data.get("size"), "size") or 0
    if size < 0:
        raise ValidationError("size must not be negative")

    comparison_id = parse_str(data, "comparisonId") or None
    if comparison_id is not None:
        ensure_comparison_access(get_or_404(Comparison, comparison_id, "Comparison"))

    attachment = Attachment(
        name=parse_str(data, "name", required=True, max_length=255),
        type=parse_str(data, "type", required=True, max_length=100),
        size=size,
        file_url=parse_str(data, "fileUrl") or None,
        comparison_id=comparison_id,
        uploaded_by=current_user.id,
    )
    db.session.add(attachment)
    db.session.flush()

    log_action(attachment, "CREATE", after=serialize_model(attachment))
    db.session.commit()

    logger.info("Attachment %r uploaded by %s", attachment.name, current_user.username)
    return jsonify(attachment.to_dict()), 201


@attachments_bp.delete("/<attachment_id>")
@login_required
def delete_attachment(attachment_id):
    attachment = _load_visible(attachment_id)

    log_action(attachment, "DELETE", before=serialize_model(attachment))
    db.session.delete(attachment)
    db.session.commit()

    return jsonify({"message": "Attachment deleted successfully"})
