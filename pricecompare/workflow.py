"""
pricecompare/workflow.py

Comparison lifecycle.

    draft --submit--> submitted --approve--> approved
                                \--reject--> rejected

approved and rejected are terminal. Only drafts may be edited; the guard is
enforced here for every handler, not just hidden in the UI.

Each transition checks, in order: the caller's role (AuthorizationError), its
own input (ValidationError), then the current status (ValidationError). On
success the comparison is mutated in place; the caller owns the commit.
"""

from __future__ import annotations

import logging
from datetime import datetime

from . import permissions
from .errors import AuthorizationError, ValidationError
from .models import (
    STATUS_APPROVED,
    STATUS_DRAFT,
    STATUS_REJECTED,
    STATUS_SUBMITTED,
    Comparison,
    utcnow,
)
from .permissions import Role

logger = logging.getLogger(__name__)

# action -> (required current status, resulting status)
TRANSITIONS = {
    "submit": (STATUS_DRAFT, STATUS_SUBMITTED),
    "approve": (STATUS_SUBMITTED, STATUS_APPROVED),
    "reject": (STATUS_SUBMITTED, STATUS_REJECTED),
}


def _require_status(comparison: Comparison, action: str) -> str:
    required, target = TRANSITIONS[action]
    if comparison.status != required:
        raise ValidationError(f"Only {required} comparisons can be {_past_tense(action)}")
    return target


def _past_tense(action: str) -> str:
    return {"submit": "submitted", "approve": "approved", "reject": "rejected"}[action]


def submit(comparison: Comparison, actor, now: datetime | None = None) -> Comparison:
    """draft -> submitted."""
    if not permissions.can_submit_comparison(actor.role):
        raise AuthorizationError("Only makers and admins can submit comparisons")

    target = _require_status(comparison, "submit")
    now = now or utcnow()

    comparison.status = target
    comparison.submitted_at = now
    comparison.updated_at = now

    logger.info("Comparison %s submitted by %s", comparison.id, actor.username)
    return comparison


def approve(comparison: Comparison, actor, now: datetime | None = None) -> Comparison:
    """submitted -> approved."""
    if not permissions.can_review_comparison(actor.role):
        raise AuthorizationError("Only checkers and admins can approve comparisons")

    target = _require_status(comparison, "approve")
    now = now or utcnow()

    comparison.status = target
    comparison.reviewed_at = now
    comparison.reviewed_by = actor.id
    comparison.updated_at = now

    logger.info("Comparison %s approved by %s", comparison.id, actor.username)
    return comparison


def reject(comparison: Comparison, actor, reason: str | None, now: datetime | None = None) -> Comparison:
    """submitted -> rejected. A non-blank reason is mandatory."""
    if not permissions.can_review_comparison(actor.role):
        raise AuthorizationError("Only checkers and admins can reject comparisons")

    reason = (reason or "").strip() if isinstance(reason, str) else ""
    if not reason:
        raise ValidationError("Rejection reason is required")

    target = _require_status(comparison, "reject")
    now = now or utcnow()

    comparison.status = target
    comparison.reviewed_at = now
    comparison.reviewed_by = actor.id
    comparison.rejection_reason = reason
    comparison.updated_at = now

    logger.info("Comparison %s rejected by %s", comparison.id, actor.username)
    return comparison


def ensure_editable(comparison: Comparison) -> None:
    if comparison.status != STATUS_DRAFT:
        raise ValidationError("Only draft comparisons can be edited")


def ensure_deletable(comparison: Comparison, actor) -> None:
    """Drafts: anyone with access. Anything past draft: admins only."""
    if comparison.status == STATUS_DRAFT:
        return
    if Role.parse(actor.role) is not Role.ADMIN:
        raise ValidationError("Only draft comparisons can be deleted")
