from __future__ import annotations

from ..extensions import db


class StoreNotification(db.Model):
    """
    In-app inbox row addressed to a store's staff group.

    Written by the database notification gateway after a borrow
    transition commits. Push/LINE delivery reads from here and is
    handled elsewhere.
    """
    __tablename__ = "store_notifications"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)

    title = db.Column(db.String(255), nullable=False)
    body = db.Column(db.Text, nullable=False)
    data = db.Column(db.JSON, nullable=True)

    # Actor who triggered the message; they should not be notified of their own action
    exclude_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())


class AuditEvent(db.Model):
    """
    Append-only audit fact.

    - No domain logic here.
    - No deletes/updates of existing events.
    """
    __tablename__ = "audit_events"
    __table_args__ = (
        db.Index("ix_audit_events_store_created", "store_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)

    # e.g., BORROW_REQUESTED, BORROW_COMPLETED
    action_type = db.Column(db.String(64), nullable=False, index=True)

    # Generic pointer to what it refers to
    entity_type = db.Column(db.String(64), nullable=False)
    entity_id = db.Column(db.Integer, nullable=False, index=True)

    actor_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    payload = db.Column(db.JSON, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
