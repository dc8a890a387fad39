"""
pricecompare/security.py

Authentication and access-control glue between Flask and permissions.py.

Credentials:
- A signed JWT (HS256, SECRET_KEY) carrying the user's id, username and role.
- Transported either as the "token" cookie or as "Authorization: Bearer <token>".
  The cookie wins when both are present.
- The user is reloaded from the database on every request, so deactivation,
  deletion and role changes take effect immediately.

Flask-Login drives the request: login_manager.request_loader resolves the user
from the credential, login_required rejects anonymous callers through the
unauthorized handler below (401 JSON, never a redirect).

IMPORTANT:
- Decorators must preserve wrapped function metadata to avoid Flask endpoint
  collisions. We use functools.wraps everywhere.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from functools import wraps
from typing import Any, Callable, Optional

from flask import current_app, g, request
from flask_login import current_user
from jose import JWTError, jwt

from . import permissions
from .errors import AuthenticationError, AuthorizationError
from .extensions import db, login_manager
from .models import User
from .permissions import Role

logger = logging.getLogger(__name__)

MISSING_CREDENTIAL = "Authentication required"
INVALID_CREDENTIAL = "Invalid or expired token"


# ---------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------
def create_access_token(user: User, expires_delta: timedelta | None = None) -> str:
    """Sign an access token for a user."""
    config = current_app.config
    expire = datetime.now(timezone.utc) + (
        expires_delta
        if expires_delta is not None
        else timedelta(minutes=config["TOKEN_EXPIRES_MINUTES"])
    )
    claims = {
        "sub": user.id,
        "id": user.id,
        "username": user.username,
        "role": user.role,
        "exp": expire,
    }
    return jwt.encode(claims, config["SECRET_KEY"], algorithm=config["JWT_ALGORITHM"])


def decode_access_token(token: str) -> dict:
    """Verify signature and expiry. Raises JWTError."""
    config = current_app.config
    return jwt.decode(token, config["SECRET_KEY"], algorithms=[config["JWT_ALGORITHM"]])


def token_from_request() -> Optional[str]:
    """Cookie first, then the bearer header."""
    cookie_token = request.cookies.get(current_app.config["TOKEN_COOKIE_NAME"])
    if cookie_token:
        return cookie_token

    header = request.headers.get("Authorization", "")
    if header.lower().startswith("bearer "):
        token = header[7:].strip()
        return token or None
    return None


def set_token_cookie(response, token: str):
    config = current_app.config
    response.set_cookie(
        config["TOKEN_COOKIE_NAME"],
        token,
        max_age=config["TOKEN_EXPIRES_MINUTES"] * 60,
        httponly=True,
        secure=config["TOKEN_COOKIE_SECURE"],
        samesite="Lax",
    )
    return response


def clear_token_cookie(response):
    response.delete_cookie(current_app.config["TOKEN_COOKIE_NAME"])
    return response


# ---------------------------------------------------------------------
# Flask-Login hooks
# ---------------------------------------------------------------------
@login_manager.request_loader
def load_user_from_request(req) -> Optional[User]:
    """
    Resolve the caller from the request credential.

    Failures are remembered on `g` so the unauthorized handler can tell a
    missing credential from a bad one.
    """
    token = token_from_request()
    if not token:
        g.auth_error = MISSING_CREDENTIAL
        return None

    try:
        payload = decode_access_token(token)
    except JWTError:
        g.auth_error = INVALID_CREDENTIAL
        return None

    user_id = payload.get("id") or payload.get("sub")
    if not user_id:
        g.auth_error = INVALID_CREDENTIAL
        return None

    user = db.session.get(User, user_id)
    if user is None or not user.is_active:
        g.auth_error = INVALID_CREDENTIAL
        return None

    return user


@login_manager.unauthorized_handler
def _unauthorized():
    raise AuthenticationError(g.get("auth_error", MISSING_CREDENTIAL))


# ---------------------------------------------------------------------
# Decorators / guards
# ---------------------------------------------------------------------
def roles_required(*roles: Role) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Decorator: caller's role must be one of `roles`.

    Use under @login_required so anonymous callers get 401 before this runs.
    """
    allowed = {Role(r) for r in roles}

    def decorator(view_func: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(view_func)
        def wrapper(*args: Any, **kwargs: Any):
            if Role.parse(current_user.role) not in allowed:
                raise AuthorizationError()
            return view_func(*args, **kwargs)

        return wrapper

    return decorator


def ensure_comparison_access(comparison) -> None:
    """View/edit visibility: reviewers see all comparisons, others only their own."""
    if not permissions.can_access_comparison(current_user.role, current_user.id, comparison.created_by):
        raise AuthorizationError("You can only access comparisons you created")
