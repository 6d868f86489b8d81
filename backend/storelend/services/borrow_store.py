# Overview: Persistence primitives for borrows; create/read/delete by id and guarded (conditional) updates.

"""
Borrow store invariants

- Reads never lock; nothing here does read-then-write.
- Every state change is one UPDATE ... WHERE id = ? AND <guards>.
  The affected-row count is the only success signal: 0 means the guard
  did not hold at write time (lost race or illegal transition).
- version_id and updated_at are bumped by every successful guarded update.
- Nothing here commits; callers own the unit of work.
"""
from __future__ import annotations

from typing import Iterable

from sqlalchemy import delete, select, update

from ..extensions import db
from ..models import Borrow, BorrowItem
from storelend.time_utils import utcnow
from storelend.validation import BorrowItemInput


def insert_borrow(**fields) -> Borrow:
    borrow = Borrow(**fields)
    db.session.add(borrow)
    db.session.flush()  # Get ID
    return borrow


def insert_items(borrow_id: int, items: Iterable[BorrowItemInput]) -> list[BorrowItem]:
    rows = [
        BorrowItem(
            borrow_id=borrow_id,
            product_name=item.product_name,
            category=item.category,
            quantity=item.quantity,
            unit=item.unit,
            notes=item.notes,
        )
        for item in items
    ]
    db.session.add_all(rows)
    db.session.flush()
    return rows


def delete_borrow(borrow_id: int) -> int:
    """Physically remove a borrow and its items. Only used for compensation."""
    db.session.execute(
        delete(BorrowItem)
        .where(BorrowItem.borrow_id == borrow_id)
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(
        delete(Borrow)
        .where(Borrow.id == borrow_id)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


def get_borrow(borrow_id: int) -> Borrow | None:
    """
    Load a borrow, overwriting any stale copy held by the session.

    Guarded updates bypass the identity map, so a plain session.get()
    could return pre-update attribute values.
    """
    stmt = (
        select(Borrow)
        .where(Borrow.id == borrow_id)
        .execution_options(populate_existing=True)
    )
    return db.session.execute(stmt).scalar_one_or_none()


def conditional_update(borrow_id: int, guards: list, values: dict) -> int:
    """
    Apply `values` to the borrow only if every guard clause still holds.

    Args:
        borrow_id: Borrow primary key
        guards: SQL expressions on Borrow columns, evaluated at write time
        values: Column values or SQL expressions (may reference the row)

    Returns:
        int: Number of rows changed (0 or 1)
    """
    values = dict(values)
    values.setdefault("updated_at", utcnow())
    values["version_id"] = Borrow.version_id + 1

    stmt = (
        update(Borrow)
        .where(Borrow.id == borrow_id, *guards)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    return result.rowcount


def list_borrows(
    *,
    from_store_id: int | None = None,
    to_store_id: int | None = None,
    status: str | None = None,
    limit: int = 100,
) -> list[Borrow]:
    query = select(Borrow)
    if from_store_id is not None:
        query = query.where(Borrow.from_store_id == from_store_id)
    if to_store_id is not None:
        query = query.where(Borrow.to_store_id == to_store_id)
    if status is not None:
        query = query.where(Borrow.status == status)
    query = query.order_by(Borrow.created_at.desc(), Borrow.id.desc()).limit(limit)
    return list(db.session.execute(query).scalars())
