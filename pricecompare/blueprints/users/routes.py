"""
User Management.

Rules enforced (UI never trusted, everything validated server-side):
- Checkers and admins list / create users; checkers only see and manage makers.
- Makers may read and edit only their own account (display name, password).
- Nobody deactivates or deletes their own account.
- Users referenced by comparisons or attachments are deactivated, not deleted.

Audit:
- CREATE / UPDATE / DELETE logged
"""

import logging

from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from ... import permissions
from ...audit import log_action, serialize_model
from ...errors import AuthorizationError, ConflictError, ValidationError
from ...extensions import db
from ...models import Attachment, AuditLog, Comparison, Settings, User
from ...permissions import Role
from ...security import roles_required
from ...utils import get_json_payload, get_or_404, parse_bool, parse_str, require_fields

logger = logging.getLogger(__name__)

users_bp = Blueprint("users", __name__, url_prefix="/users")

MIN_PASSWORD_LENGTH = 8


def _validate_password(password) -> str:
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    return password


def _parse_role(value) -> Role:
    role = Role.parse(value)
    if role is None:
        raise ValidationError("Invalid role")
    return role


def _username_taken(username: str, exclude_id: str | None = None) -> bool:
    query = User.query.filter(User.username == username)
    if exclude_id is not None:
        query = query.filter(User.id != exclude_id)
    return db.session.query(query.exists()).scalar()


# ---------------------------------------------------------------------
# LIST USERS
# ---------------------------------------------------------------------

@users_bp.get("")
@login_required
@roles_required(Role.CHECKER, Role.ADMIN)
def list_users():
    """Admin sees everyone, checker sees makers. Newest first."""
    query = User.query
    if Role.parse(current_user.role) is Role.CHECKER:
        query = query.filter(User.role == Role.MAKER.value)

    users = query.order_by(User.created_at.desc()).all()
    return jsonify([u.to_dict() for u in users])


# ---------------------------------------------------------------------
# GET USER
# ---------------------------------------------------------------------

@users_bp.get("/<user_id>")
@login_required
def get_user(user_id):
    user = get_or_404(User, user_id, "User")

    if not permissions.can_view_user(current_user.role, current_user.id, user.id):
        raise AuthorizationError()

    return jsonify(user.to_dict())


# ---------------------------------------------------------------------
# CREATE USER
# ---------------------------------------------------------------------

@users_bp.post("")
@login_required
def create_user():
    """
    Create a system user.

    Required: username, password (8+ chars), role, name.
    Checkers may only create makers.
    """
    if not permissions.can_create_user(current_user.role):
        raise AuthorizationError()

    data = get_json_payload()
    require_fields(data, ("username", "password", "role", "name"))

    username = parse_str(data, "username", required=True, max_length=255)
    name = parse_str(data, "name", required=True, max_length=255)
    password = _validate_password(data.get("password"))
    role = _parse_role(data.get("role"))

    if not permissions.can_change_role(current_user.role, role):
        raise AuthorizationError(f"You cannot create users with the {role} role")

    if _username_taken(username):
        raise ConflictError("Username already exists")

    user = User(username=username, name=name, role=role.value, is_active=True)
    user.set_password(password)

    db.session.add(user)
    db.session.flush()

    log_action(user, "CREATE", after=serialize_model(user))
    db.session.commit()

    logger.info("User %r (%s) created by %s", user.username, user.role, current_user.username)
    return jsonify(user.to_dict()), 201


# ---------------------------------------------------------------------
# UPDATE USER
# ---------------------------------------------------------------------

@users_bp.put("/<user_id>")
@login_required
def update_user(user_id):
    """
    Partial update.

    Order of checks:
    - target exists (404)
    - caller may edit the target at all (403)
    - makers may not send role / isActive / username, even as null (403)
    - nobody deactivates themself (400)
    - role assignment and deactivation rights (403)
    - username unique, password length (400)
    """
    user = get_or_404(User, user_id, "User")
    actor = current_user
    is_self = actor.id == user.id

    if not permissions.can_edit_user(actor.role, actor.id, user.role, user.id):
        raise AuthorizationError("You cannot edit this user")

    data = get_json_payload()

    if Role.parse(actor.role) is Role.MAKER and not permissions.maker_fields_allowed(data.keys()):
        raise AuthorizationError("You can only update your name and password")

    if is_self and data.get("isActive") is False:
        raise ValidationError("You cannot deactivate your own account")

    before_snapshot = serialize_model(user)

    if data.get("role") is not None:
        role = _parse_role(data["role"])
        if not permissions.can_change_role(actor.role, role):
            raise AuthorizationError(f"You cannot assign the {role.value} role")
        user.role = role.value

    if data.get("isActive") is not None:
        is_active = parse_bool(data, "isActive")
        if not is_active and not permissions.can_deactivate_user(actor.role, actor.id, user.role, user.id):
            raise AuthorizationError("You cannot deactivate this user")
        user.is_active = is_active

    if data.get("username") is not None:
        username = parse_str(data, "username", required=True, max_length=255)
        if _username_taken(username, exclude_id=user.id):
            raise ConflictError("Username already exists")
        user.username = username

    if data.get("name") is not None:
        user.name = parse_str(data, "name", required=True, max_length=255)

    if "password" in data and data["password"] is not None:
        user.set_password(_validate_password(data["password"]))

    log_action(user, "UPDATE", before=before_snapshot, after=serialize_model(user))
    db.session.commit()

    logger.info("User %r updated by %s", user.username, actor.username)
    return jsonify(user.to_dict())


# ---------------------------------------------------------------------
# DELETE USER
# ---------------------------------------------------------------------

@users_bp.delete("/<user_id>")
@login_required
@roles_required(Role.ADMIN)
def delete_user(user_id):
    """
    Admin only, never self.

    Comparisons and attachments keep a hard reference to their author, so a
    user who still has any must be deactivated instead.
    """
    if user_id == current_user.id:
        raise ValidationError("You cannot delete your own account")

    user = get_or_404(User, user_id, "User")

    referenced = (
        Comparison.query.filter(
            (Comparison.created_by == user.id) | (Comparison.reviewed_by == user.id)
        ).first()
        or Attachment.query.filter(Attachment.uploaded_by == user.id).first()
    )
    if referenced is not None:
        raise ConflictError("User has comparisons or attachments; deactivate the account instead")

    AuditLog.query.filter(AuditLog.user_id == user.id).update(
        {AuditLog.user_id: None}, synchronize_session=False
    )
    Settings.query.filter(Settings.updated_by == user.id).update(
        {Settings.updated_by: None}, synchronize_session=False
    )

    log_action(user, "DELETE", before=serialize_model(user))
    db.session.delete(user)
    db.session.commit()

    logger.info("User %r deleted by %s", user.username, current_user.username)
    return jsonify({"message": "User deleted successfully"})
