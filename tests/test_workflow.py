from datetime import datetime
from types import SimpleNamespace

import pytest

from pricecompare import workflow
from pricecompare.errors import AuthorizationError, ValidationError
from pricecompare.models import Comparison

NOW = datetime(2024, 5, 1, 12, 0, 0)


def _actor(role, user_id="u-1"):
    return SimpleNamespace(id=user_id, role=role, username=f"{role}-user")


def _comparison(status="draft"):
    return Comparison(id="c-1", request_number="REQ-1", title="T", status=status, created_by="m-1")


def test_submit_draft():
    comparison = workflow.submit(_comparison(), _actor("maker"), now=NOW)
    assert comparison.status == "submitted"
    assert comparison.submitted_at == NOW
    assert comparison.updated_at == NOW
    assert comparison.reviewed_at is None


@pytest.mark.parametrize("status", ["submitted", "approved", "rejected"])
def test_submit_requires_draft(status):
    with pytest.raises(ValidationError, match="Only draft comparisons can be submitted"):
        workflow.submit(_comparison(status), _actor("maker"))


def test_checker_cannot_submit():
    with pytest.raises(AuthorizationError):
        workflow.submit(_comparison(), _actor("checker"))


def test_approve_submitted():
    comparison = workflow.approve(_comparison("submitted"), _actor("checker", "c-9"), now=NOW)
    assert comparison.status == "approved"
    assert comparison.reviewed_by == "c-9"
    assert comparison.reviewed_at == NOW


def test_maker_cannot_approve():
    with pytest.raises(AuthorizationError):
        workflow.approve(_comparison("submitted"), _actor("maker"))


@pytest.mark.parametrize("status", ["draft", "approved", "rejected"])
def test_approve_requires_submitted(status):
    with pytest.raises(ValidationError, match="Only submitted comparisons can be approved"):
        workflow.approve(_comparison(status), _actor("admin"))


def test_reject_records_reason():
    comparison = workflow.reject(_comparison("submitted"), _actor("admin", "a-1"), "  Too expensive ", now=NOW)
    assert comparison.status == "rejected"
    assert comparison.rejection_reason == "Too expensive"
    assert comparison.reviewed_by == "a-1"


@pytest.mark.parametrize("reason", [None, "", "   "])
def test_reject_requires_reason(reason):
    comparison = _comparison("submitted")
    with pytest.raises(ValidationError, match="Rejection reason is required"):
        workflow.reject(comparison, _actor("checker"), reason)
    assert comparison.status == "submitted"


def test_reject_requires_submitted():
    with pytest.raises(ValidationError, match="Only submitted comparisons can be rejected"):
        workflow.reject(_comparison("approved"), _actor("checker"), "late")


def test_terminal_states_have_no_exit():
    for status in ("approved", "rejected"):
        with pytest.raises(ValidationError):
            workflow.submit(_comparison(status), _actor("admin"))
        with pytest.raises(ValidationError):
            workflow.approve(_comparison(status), _actor("admin"))


def test_only_drafts_editable():
    workflow.ensure_editable(_comparison("draft"))
    with pytest.raises(ValidationError, match="Only draft comparisons can be edited"):
        workflow.ensure_editable(_comparison("submitted"))


def test_delete_rules():
    workflow.ensure_deletable(_comparison("draft"), _actor("maker"))
    workflow.ensure_deletable(_comparison("approved"), _actor("admin"))
    with pytest.raises(ValidationError):
        workflow.ensure_deletable(_comparison("submitted"), _actor("checker"))
