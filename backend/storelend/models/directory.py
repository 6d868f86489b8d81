from __future__ import annotations

from ..extensions import db


class Store(db.Model):
    """
    A retail location that can borrow from or lend to another location.

    WHY: Borrows reference both sides by store id; display names are
    resolved from here.
    """
    __tablename__ = "stores"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False, unique=True)
    code = db.Column(db.String(32), nullable=True, unique=True, index=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Store id={self.id} name={self.name!r}>"


class User(db.Model):
    """
    Staff member who requests, approves or confirms borrows.

    WHY: Every action must be attributable. No shared logins.
    Authentication itself lives outside this service.
    """
    __tablename__ = "users"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), nullable=False, unique=True, index=True)
    display_name = db.Column(db.String(120), nullable=True)

    # Home store (nullable for head-office users)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=True, index=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )

    store = db.relationship("Store", foreign_keys=[store_id])

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username!r}>"
