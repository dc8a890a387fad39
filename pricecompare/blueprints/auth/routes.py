"""
Authentication Routes

Provides:
- POST /auth/login   (issue token + cookie)
- POST /auth/logout  (clear cookie)
- GET  /auth/me      (profile + capability map)
- GET  /auth/verify  (token check)

Rules:
- Only active users may log in.
- Credentials validated via password hash; the hash never leaves the server.
"""

import logging

from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from ...errors import AuthenticationError, ValidationError
from ...extensions import db
from ...models import User, utcnow
from ...permissions import permissions_for
from ...security import clear_token_cookie, create_access_token, set_token_cookie
from ...utils import get_json_payload, is_blank

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


# ============================================================
# LOGIN
# ============================================================

@auth_bp.post("/login")
def login():
    """
    Authenticate a user.

    - 400 when username or password is missing
    - 401 for unknown user, wrong password or deactivated account
    """
    data = get_json_payload()
    username = data.get("username")
    password = data.get("password")

    if is_blank(username) or is_blank(password):
        raise ValidationError("Username and password are required")

    user = User.query.filter_by(username=str(username).strip()).first()

    if not user:
        logger.info("Login failed for unknown user %r", username)
        raise AuthenticationError("Invalid username or password")

    if not user.is_active:
        logger.info("Login refused for deactivated user %r", user.username)
        raise AuthenticationError("Account is deactivated")

    if not user.check_password(str(password)):
        logger.info("Login failed for %r (bad password)", user.username)
        raise AuthenticationError("Invalid username or password")

    user.last_login = utcnow()
    db.session.commit()

    token = create_access_token(user)
    logger.info("User %r logged in", user.username)

    response = jsonify({"user": user.to_dict(), "token": token})
    return set_token_cookie(response, token)


# ============================================================
# LOGOUT
# ============================================================

@auth_bp.post("/logout")
def logout():
    """Clear the session cookie. Bearer tokens simply stop being sent by the client."""
    response = jsonify({"message": "Logged out successfully"})
    return clear_token_cookie(response)


# ============================================================
# CURRENT USER
# ============================================================

@auth_bp.get("/me")
@login_required
def me():
    return jsonify({
        "user": current_user.to_dict(),
        "permissions": permissions_for(current_user.role),
    })


@auth_bp.get("/verify")
@login_required
def verify():
    return jsonify({
        "valid": True,
        "user": {"id": current_user.id, "username": current_user.username, "role": current_user.role},
    })
