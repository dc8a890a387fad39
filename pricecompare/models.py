"""
Price Comparison – Domain Models

Entities:
- User, Vendor, Item (independent lifecycles)
- Comparison with its exclusively owned ComparisonRow / ComparisonVendor rows
  and optionally owned Attachment rows (all cascade-deleted with the parent)
- Settings (singleton record, created lazily)
- AuditLog (append-only mutation history)

Primary keys are UUID strings. JSON payloads use camelCase; each model exposes
to_dict() producing its API representation. Password hashes are never serialised.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal

from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash

from .extensions import db
from .permissions import Role


# ---------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------
STATUS_DRAFT = "draft"
STATUS_SUBMITTED = "submitted"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"

COMPARISON_STATUSES = [STATUS_DRAFT, STATUS_SUBMITTED, STATUS_APPROVED, STATUS_REJECTED]

DEFAULT_COMPARISON_TITLE = "Price Comparison"
DEFAULT_ROW_UOM = "NOS"

UNITS_OF_MEASURE = [
    "NOS", "PCS", "SET", "KG", "M", "L",
    "lbs", "meters", "feet", "liters", "gallons", "boxes", "sets", "units",
    "rolls", "sheets", "tons", "hours", "days", "months", "years",
]


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------
def _new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Naive UTC timestamp (columns are stored without timezone)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _num(value) -> float | None:
    """Numeric/Decimal column -> JSON number."""
    if value is None:
        return None
    return float(Decimal(str(value)))


# ---------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------
class User(UserMixin, db.Model):
    """System login user."""

    __tablename__ = "users"

    id = db.Column(db.String(36), primary_key=True, default=_new_id)

    username = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)

    role = db.Column(db.String(50), nullable=False, default=Role.MAKER.value, index=True)
    name = db.Column(db.String(255), nullable=False)

    is_active = db.Column(db.Boolean, default=True, nullable=False)

    created_at = db.Column(db.DateTime, default=utcnow, nullable=False, index=True)
    last_login = db.Column(db.DateTime, nullable=True)

    def set_password(self, password: str):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    @property
    def role_enum(self) -> Role:
        return Role(self.role)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "role": self.role,
            "name": self.name,
            "isActive": bool(self.is_active),
            "createdAt": _iso(self.created_at),
            "lastLogin": _iso(self.last_login),
        }

    def to_brief(self) -> dict:
        return {"id": self.id, "username": self.username, "name": self.name, "role": self.role}

    def __repr__(self):
        return f"<User {self.username} ({self.role})>"


# ---------------------------------------------------------------------
# Master data
# ---------------------------------------------------------------------
class Vendor(db.Model):
    __tablename__ = "vendors"

    id = db.Column(db.String(36), primary_key=True, default=_new_id)

    name = db.Column(db.String(255), nullable=False, index=True)
    contact_person = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(50), nullable=False)
    address = db.Column(db.Text, nullable=False)

    # Percent (15) or fraction (0.15); normalized in calculations.
    vat = db.Column(db.Numeric(5, 2), nullable=False, default=Decimal("0"))

    is_active = db.Column(db.Boolean, default=True, nullable=False)

    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "contactPerson": self.contact_person,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "vat": _num(self.vat),
            "isActive": bool(self.is_active),
            "createdAt": _iso(self.created_at),
        }

    def __repr__(self):
        return f"<Vendor {self.name}>"


class Item(db.Model):
    __tablename__ = "items"

    id = db.Column(db.String(36), primary_key=True, default=_new_id)

    name = db.Column(db.String(255), nullable=False, index=True)
    description = db.Column(db.Text, nullable=False)
    specification = db.Column(db.Text, nullable=False)
    unit = db.Column(db.String(50), nullable=False)
    category = db.Column(db.String(100), nullable=False)

    is_vatable = db.Column(db.Boolean, default=True, nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "specification": self.specification,
            "unit": self.unit,
            "category": self.category,
            "isVatable": bool(self.is_vatable),
            "isActive": bool(self.is_active),
            "createdAt": _iso(self.created_at),
        }

    def __repr__(self):
        return f"<Item {self.name}>"


# ---------------------------------------------------------------------
# Comparisons
# ---------------------------------------------------------------------
class Comparison(db.Model):
    """
    Price-comparison sheet.

    Lifecycle: draft -> submitted -> approved | rejected (see workflow.py).
    Rows and vendor links are replaced wholesale on update, never merged.
    """

    __tablename__ = "comparisons"

    id = db.Column(db.String(36), primary_key=True, default=_new_id)

    request_number = db.Column(db.String(100), nullable=False, index=True)
    title = db.Column(db.String(255), nullable=False, default=DEFAULT_COMPARISON_TITLE)
    status = db.Column(db.String(50), nullable=False, default=STATUS_DRAFT, index=True)

    created_by = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    submitted_at = db.Column(db.DateTime, nullable=True)
    reviewed_at = db.Column(db.DateTime, nullable=True)
    reviewed_by = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=True, index=True)
    rejection_reason = db.Column(db.Text, nullable=True)

    general_comments = db.Column(db.Text, nullable=True, default="")
    purpose = db.Column(db.String(255), nullable=True)

    creator = db.relationship("User", foreign_keys=[created_by])
    reviewer = db.relationship("User", foreign_keys=[reviewed_by])

    rows = db.relationship(
        "ComparisonRow",
        back_populates="comparison",
        cascade="all, delete-orphan",
        order_by="ComparisonRow.srl",
    )

    vendor_links = db.relationship(
        "ComparisonVendor",
        back_populates="comparison",
        cascade="all, delete-orphan",
        order_by="ComparisonVendor.position",
    )

    attachments = db.relationship(
        "Attachment",
        back_populates="comparison",
        cascade="all, delete-orphan",
        order_by="Attachment.uploaded_at",
    )

    @property
    def vendor_count(self) -> int:
        return len(self.vendor_links or [])

    def to_dict(self, include_details: bool = True) -> dict:
        data = {
            "id": self.id,
            "requestNumber": self.request_number,
            "title": self.title,
            "status": self.status,
            "createdBy": self.created_by,
            "creator": self.creator.to_brief() if self.creator else None,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
            "submittedAt": _iso(self.submitted_at),
            "reviewedAt": _iso(self.reviewed_at),
            "reviewedBy": self.reviewed_by,
            "reviewer": self.reviewer.to_brief() if self.reviewer else None,
            "generalComments": self.general_comments or "",
            "purpose": self.purpose,
        }
        if self.rejection_reason is not None:
            data["rejectionReason"] = self.rejection_reason

        if include_details:
            data["rows"] = [r.to_dict() for r in self.rows]
            data["vendors"] = [link.to_dict() for link in self.vendor_links]
            data["attachments"] = [a.to_dict() for a in self.attachments]
        else:
            data["rowCount"] = len(self.rows)
            data["vendorCount"] = self.vendor_count
        return data

    def __repr__(self):
        return f"<Comparison {self.request_number} [{self.status}]>"


class ComparisonRow(db.Model):
    """
    One line of a comparison.

    quantities[i] / prices[i] belong to the vendor linked at position i + 1.
    """

    __tablename__ = "comparison_rows"

    id = db.Column(db.String(36), primary_key=True, default=_new_id)

    comparison_id = db.Column(
        db.String(36),
        db.ForeignKey("comparisons.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    srl = db.Column(db.Integer, nullable=False)

    item_id = db.Column(db.String(36), db.ForeignKey("items.id"), nullable=False, index=True)
    description = db.Column(db.Text, nullable=False, default="")
    qty = db.Column(db.Numeric(10, 2), nullable=False, default=Decimal("0"))
    uom = db.Column(db.String(50), nullable=False, default=DEFAULT_ROW_UOM)

    quantities = db.Column(db.JSON, nullable=False, default=list)
    prices = db.Column(db.JSON, nullable=False, default=list)

    selected_vendor_index = db.Column(db.Integer, nullable=True)
    remarks = db.Column(db.Text, nullable=True, default="")
    comment = db.Column(db.Text, nullable=True, default="")

    comparison = db.relationship("Comparison", back_populates="rows")
    item = db.relationship("Item")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "srl": self.srl,
            "itemId": self.item_id,
            "item": self.item.to_dict() if self.item else None,
            "description": self.description,
            "qty": _num(self.qty),
            "uom": self.uom,
            "quantities": list(self.quantities or []),
            "prices": list(self.prices or []),
            "selectedVendorIndex": self.selected_vendor_index,
            "remarks": self.remarks or "",
            "comment": self.comment or "",
        }


class ComparisonVendor(db.Model):
    """Vendor linked to a comparison at a 1-based position."""

    __tablename__ = "comparison_vendors"

    id = db.Column(db.String(36), primary_key=True, default=_new_id)

    comparison_id = db.Column(
        db.String(36),
        db.ForeignKey("comparisons.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    vendor_id = db.Column(db.String(36), db.ForeignKey("vendors.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False)

    comparison = db.relationship("Comparison", back_populates="vendor_links")
    vendor = db.relationship("Vendor")

    __table_args__ = (
        db.UniqueConstraint("comparison_id", "position", name="uq_comparison_vendor_position"),
    )

    def to_dict(self) -> dict:
        data = self.vendor.to_dict() if self.vendor else {"id": self.vendor_id}
        data["position"] = self.position
        return data


class Attachment(db.Model):
    """Attachment metadata. File bytes live in external storage (file_url)."""

    __tablename__ = "attachments"

    id = db.Column(db.String(36), primary_key=True, default=_new_id)

    name = db.Column(db.String(255), nullable=False)
    size = db.Column(db.Integer, nullable=False, default=0)
    type = db.Column(db.String(100), nullable=False)

    uploaded_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    uploaded_by = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False, index=True)
    file_url = db.Column(db.Text, nullable=True)

    comparison_id = db.Column(
        db.String(36),
        db.ForeignKey("comparisons.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    comparison = db.relationship("Comparison", back_populates="attachments")
    uploader = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "size": self.size,
            "type": self.type,
            "uploadedAt": _iso(self.uploaded_at),
            "uploadedBy": self.uploaded_by,
            "fileUrl": self.file_url,
            "comparisonId": self.comparison_id,
        }


# ---------------------------------------------------------------------
# Settings (singleton)
# ---------------------------------------------------------------------
class Settings(db.Model):
    __tablename__ = "settings"

    id = db.Column(db.String(36), primary_key=True, default=_new_id)

    company_name = db.Column(db.String(255), nullable=False)
    company_address = db.Column(db.Text, nullable=False)
    company_phone = db.Column(db.String(50), nullable=False)
    company_email = db.Column(db.String(255), nullable=False)

    default_vat = db.Column(db.Numeric(5, 2), nullable=False, default=Decimal("0"))

    # Image data URL or storage URL
    checker_signature = db.Column(db.Text, nullable=True)

    updated_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_by = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "companyName": self.company_name,
            "companyAddress": self.company_address,
            "companyPhone": self.company_phone,
            "companyEmail": self.company_email,
            "defaultVat": _num(self.default_vat),
            "checkerSignature": self.checker_signature,
            "updatedAt": _iso(self.updated_at),
            "updatedBy": self.updated_by,
        }


# ---------------------------------------------------------------------
# Audit
# ---------------------------------------------------------------------
class AuditLog(db.Model):
    """Who did what to which entity, with before/after snapshots."""

    __tablename__ = "audit_logs"

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.String(36), db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    username_snapshot = db.Column(db.String(255), nullable=True)

    entity_type = db.Column(db.String(50), nullable=False, index=True)
    entity_id = db.Column(db.String(36), nullable=False, index=True)

    action = db.Column(db.String(20), nullable=False, index=True)

    before_data = db.Column(db.Text, nullable=True)
    after_data = db.Column(db.Text, nullable=True)

    ip_address = db.Column(db.String(45), nullable=True)

    created_at = db.Column(db.DateTime, default=utcnow, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "username": self.username_snapshot,
            "entityType": self.entity_type,
            "entityId": self.entity_id,
            "action": self.action,
            "beforeData": self.before_data,
            "afterData": self.after_data,
            "ipAddress": self.ip_address,
            "createdAt": _iso(self.created_at),
        }
