"""
pricecompare/permissions.py

Role-based access rules for the price-comparison workflow.

Hierarchy: admin (3) > checker (2) > maker (1).

Every rule here is a pure function of the caller's role/id and, where relevant,
the target's role/id. Nothing in this module touches Flask or the database;
the request handlers load the entities and ask these functions.

Summary:
- Users: checker + admin view/manage/create. Admin edits anyone, checker edits
  makers and self, maker edits only self (display name / password only).
- Delete user: admin only, never self.
- Assign role: admin any, checker only maker, maker never.
- Deactivate: never self; admin anyone else; checker makers only.
- Vendors / items / attachments: every authenticated role.
- Comparisons: checker + admin see everything, others only their own.
  Submit: maker + admin. Approve / reject: checker + admin.
- Settings: everyone reads, checker + admin edit.
"""

from __future__ import annotations

import enum
from typing import Any, Iterable


class Role(str, enum.Enum):
    """Ordered user role. Stored in the database as its string value."""

    MAKER = "maker"
    CHECKER = "checker"
    ADMIN = "admin"

    @property
    def level(self) -> int:
        return ROLE_LEVELS[self]

    def at_least(self, other: "Role | str") -> bool:
        return self.level >= Role(other).level

    @classmethod
    def parse(cls, value: Any) -> "Role | None":
        """Return the Role for a raw value, or None when it is not a known role."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except (TypeError, ValueError):
            return None

    def __str__(self) -> str:
        return self.value


ROLE_LEVELS = {
    Role.MAKER: 1,
    Role.CHECKER: 2,
    Role.ADMIN: 3,
}

ROLE_CHOICES = [r.value for r in Role]

# Payload keys a maker may never send when editing their own account.
MAKER_RESTRICTED_USER_FIELDS = ("role", "isActive", "username")


def _role(value: "Role | str") -> Role:
    role = Role.parse(value)
    if role is None:
        raise ValueError(f"Unknown role: {value!r}")
    return role


def _is_reviewer(role: "Role | str") -> bool:
    return _role(role).at_least(Role.CHECKER)


# ---------------------------------------------------------------------
# User management
# ---------------------------------------------------------------------
def can_view_users(actor_role: "Role | str") -> bool:
    return _is_reviewer(actor_role)


def can_manage_users(actor_role: "Role | str") -> bool:
    return _is_reviewer(actor_role)


def can_create_user(actor_role: "Role | str") -> bool:
    return _is_reviewer(actor_role)


def can_view_user(actor_role: "Role | str", actor_id: str, target_id: str) -> bool:
    if _role(actor_role) is Role.MAKER:
        return actor_id == target_id
    return True


def can_edit_user(
    actor_role: "Role | str",
    actor_id: str,
    target_role: "Role | str",
    target_id: str,
) -> bool:
    """
    Admin: anyone.
    Checker: any maker, or themself.
    Maker: only themself.
    """
    role = _role(actor_role)
    if role is Role.ADMIN:
        return True
    if actor_id == target_id:
        return True
    if role is Role.CHECKER:
        return _role(target_role) is Role.MAKER
    return False


def maker_fields_allowed(fields: Iterable[str]) -> bool:
    """A maker editing themself may change only the display name (and password)."""
    return not any(f in MAKER_RESTRICTED_USER_FIELDS for f in fields)


def can_delete_user(actor_role: "Role | str", actor_id: str, target_id: str) -> bool:
    return _role(actor_role) is Role.ADMIN and actor_id != target_id


def can_change_role(actor_role: "Role | str", new_role: "Role | str") -> bool:
    role = _role(actor_role)
    if role is Role.ADMIN:
        return True
    if role is Role.CHECKER:
        return Role.parse(new_role) is Role.MAKER
    return False


def can_deactivate_user(
    actor_role: "Role | str",
    actor_id: str,
    target_role: "Role | str",
    target_id: str,
) -> bool:
    if actor_id == target_id:
        return False
    role = _role(actor_role)
    if role is Role.ADMIN:
        return True
    if role is Role.CHECKER:
        return _role(target_role) is Role.MAKER
    return False


# ---------------------------------------------------------------------
# Master data
# ---------------------------------------------------------------------
def can_manage_vendors(actor_role: "Role | str") -> bool:
    _role(actor_role)
    return True


def can_manage_items(actor_role: "Role | str") -> bool:
    _role(actor_role)
    return True


def can_manage_attachments(actor_role: "Role | str") -> bool:
    _role(actor_role)
    return True


def can_edit_settings(actor_role: "Role | str") -> bool:
    return _is_reviewer(actor_role)


# ---------------------------------------------------------------------
# Comparisons
# ---------------------------------------------------------------------
def can_view_all_comparisons(actor_role: "Role | str") -> bool:
    return _is_reviewer(actor_role)


def can_access_comparison(actor_role: "Role | str", actor_id: str, owner_id: str | None) -> bool:
    """View / edit visibility: reviewers see everything, others only what they created."""
    if can_view_all_comparisons(actor_role):
        return True
    return owner_id is not None and actor_id == owner_id


def can_submit_comparison(actor_role: "Role | str") -> bool:
    return _role(actor_role) in (Role.MAKER, Role.ADMIN)


def can_review_comparison(actor_role: "Role | str") -> bool:
    """Approve and reject share the same rule."""
    return _is_reviewer(actor_role)


# ---------------------------------------------------------------------
# Capability map (exposed to the UI through /auth/me)
# ---------------------------------------------------------------------
def permissions_for(actor_role: "Role | str") -> dict[str, Any]:
    role = _role(actor_role)
    return {
        "canViewUsers": can_view_users(role),
        "canManageUsers": can_manage_users(role),
        "canCreateUser": can_create_user(role),
        "canManageVendors": can_manage_vendors(role),
        "canManageItems": can_manage_items(role),
        "canManageAttachments": can_manage_attachments(role),
        "canCreateComparison": True,
        "canEditComparison": True,
        "canViewAllComparisons": can_view_all_comparisons(role),
        "canSubmitComparison": can_submit_comparison(role),
        "canApproveComparison": can_review_comparison(role),
        "canRejectComparison": can_review_comparison(role),
        "canEditSettings": can_edit_settings(role),
        "canDeleteUsers": role is Role.ADMIN,
        "assignableRoles": [r.value for r in Role if can_change_role(role, r)],
    }
