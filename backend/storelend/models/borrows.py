from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from storelend.time_utils import to_utc_z


def _quantity_to_json(value: Decimal | None):
    if value is None:
        return None
    if value == value.to_integral_value():
        return int(value)
    return float(value)


class Borrow(db.Model):
    """
    Inter-store borrow document (aggregate root).

    LIFECYCLE:
    1. pending_approval: Borrowing store requested items
    2. approved: Lending store approved
    3. pos_adjusting: One side confirmed its POS stock adjustment
    4. completed: Both sides confirmed (terminal)
    5. rejected: Lending store declined (terminal)

    WHY: Stock between stores is not moved by this document. Each side
    adjusts its own POS records by hand and acknowledges it here, so the
    two confirmation flags are independent and may arrive concurrently.

    CONCURRENCY: Every transition is a single conditional UPDATE guarded
    on the field it changes (status or the side flag). Zero affected rows
    means the transition lost a race or is not allowed. version_id is
    bumped by each of those writes.
    """
    __tablename__ = "borrows"
    __table_args__ = (
        db.CheckConstraint("from_store_id <> to_store_id", name="ck_borrows_distinct_stores"),
        db.CheckConstraint(
            "status IN ('pending_approval', 'approved', 'pos_adjusting', 'completed', 'rejected')",
            name="ck_borrows_status",
        ),
        db.Index("ix_borrows_created_at", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Borrowing (requesting) and lending stores
    from_store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    to_store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)

    status = db.Column(db.String(20), nullable=False, default="pending_approval", index=True)

    requested_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    notes = db.Column(db.Text, nullable=True)
    borrower_photo_url = db.Column(db.Text, nullable=True)
    lender_photo_url = db.Column(db.Text, nullable=True)

    approved_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)

    rejected_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    rejected_at = db.Column(db.DateTime(timezone=True), nullable=True)
    rejection_reason = db.Column(db.Text, nullable=True)

    borrower_pos_confirmed = db.Column(db.Boolean, nullable=False, default=False)
    borrower_pos_confirmed_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    borrower_pos_confirmed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    lender_pos_confirmed = db.Column(db.Boolean, nullable=False, default=False)
    lender_pos_confirmed_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    lender_pos_confirmed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    from_store = db.relationship("Store", foreign_keys=[from_store_id])
    to_store = db.relationship("Store", foreign_keys=[to_store_id])
    items = db.relationship(
        "BorrowItem",
        back_populates="borrow",
        order_by="BorrowItem.id",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Borrow id={self.id} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "from_store_id": self.from_store_id,
            "to_store_id": self.to_store_id,
            "status": self.status,
            "requested_by_user_id": self.requested_by_user_id,
            "notes": self.notes,
            "borrower_photo_url": self.borrower_photo_url,
            "lender_photo_url": self.lender_photo_url,
            "approved_by_user_id": self.approved_by_user_id,
            "approved_at": to_utc_z(self.approved_at),
            "rejected_by_user_id": self.rejected_by_user_id,
            "rejected_at": to_utc_z(self.rejected_at),
            "rejection_reason": self.rejection_reason,
            "borrower_pos_confirmed": bool(self.borrower_pos_confirmed),
            "borrower_pos_confirmed_by_user_id": self.borrower_pos_confirmed_by_user_id,
            "borrower_pos_confirmed_at": to_utc_z(self.borrower_pos_confirmed_at),
            "lender_pos_confirmed": bool(self.lender_pos_confirmed),
            "lender_pos_confirmed_by_user_id": self.lender_pos_confirmed_by_user_id,
            "lender_pos_confirmed_at": to_utc_z(self.lender_pos_confirmed_at),
            "completed_at": to_utc_z(self.completed_at),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }


class BorrowItem(db.Model):
    """
    Line item on a borrow. Immutable once the borrow exists.
    """
    __tablename__ = "borrow_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_borrow_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    borrow_id = db.Column(
        db.Integer,
        db.ForeignKey("borrows.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    product_name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(120), nullable=True)
    quantity = db.Column(db.Numeric(10, 2), nullable=False)
    unit = db.Column(db.String(32), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    borrow = db.relationship("Borrow", back_populates="items")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "borrow_id": self.borrow_id,
            "product_name": self.product_name,
            "category": self.category,
            "quantity": _quantity_to_json(self.quantity),
            "unit": self.unit,
            "notes": self.notes,
        }
