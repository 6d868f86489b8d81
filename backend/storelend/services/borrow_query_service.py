# Overview: Read side of borrows; single lookup, store-scoped listing and the denormalized detail view.

from __future__ import annotations

from flask import current_app

from ..models import Borrow
from storelend.errors import InvalidArgumentError, NotFoundError
from storelend.services import borrow_store, directory_service
from storelend.services.borrow_status import parse_status
from storelend.validation import coerce_id

DIRECTION_OUTGOING = "outgoing"
DIRECTION_INCOMING = "incoming"
VALID_DIRECTIONS = {DIRECTION_OUTGOING, DIRECTION_INCOMING}


def get_borrow(borrow_id: int) -> Borrow:
    borrow = borrow_store.get_borrow(borrow_id)
    if borrow is None:
        raise NotFoundError("Borrow not found")
    return borrow


def list_borrows(
    store_id,
    direction: str = DIRECTION_OUTGOING,
    status: str | None = None,
    limit: int = 100,
) -> list[Borrow]:
    """
    List borrows for a store, newest first.

    outgoing: borrows this store requested (from_store_id)
    incoming: borrows requested from this store (to_store_id)
    """
    store_id = coerce_id(store_id, "storeId")

    direction = (direction or DIRECTION_OUTGOING).lower()
    if direction not in VALID_DIRECTIONS:
        raise InvalidArgumentError("direction must be outgoing or incoming")

    if status:
        try:
            status = parse_status(status).value
        except ValueError as e:
            raise InvalidArgumentError(str(e))
    else:
        status = None

    max_limit = current_app.config.get("BORROW_LIST_MAX_LIMIT", 500)
    if limit <= 0:
        raise InvalidArgumentError("limit must be positive")
    limit = min(limit, max_limit)

    if direction == DIRECTION_INCOMING:
        return borrow_store.list_borrows(to_store_id=store_id, status=status, limit=limit)
    return borrow_store.list_borrows(from_store_id=store_id, status=status, limit=limit)


def borrow_detail(borrow: Borrow) -> dict:
    """
    Borrow with items and display names resolved from the directory.
    """
    stores = directory_service.store_names([borrow.from_store_id, borrow.to_store_id])
    users = directory_service.user_names([
        borrow.requested_by_user_id,
        borrow.approved_by_user_id,
        borrow.rejected_by_user_id,
        borrow.borrower_pos_confirmed_by_user_id,
        borrow.lender_pos_confirmed_by_user_id,
    ])

    return {
        **borrow.to_dict(),
        "items": [item.to_dict() for item in borrow.items],
        "from_store_name": stores.get(borrow.from_store_id),
        "to_store_name": stores.get(borrow.to_store_id),
        "requester_name": users.get(borrow.requested_by_user_id),
        "approver_name": users.get(borrow.approved_by_user_id),
        "rejector_name": users.get(borrow.rejected_by_user_id),
        "borrower_confirmer_name": users.get(borrow.borrower_pos_confirmed_by_user_id),
        "lender_confirmer_name": users.get(borrow.lender_pos_confirmed_by_user_id),
    }
