# backend/storelend/services/borrow_request_service.py
"""
Borrow request creation.

WHY: A borrow and its line items form one aggregate. Items are written in
a second step after the borrow row commits; if that step fails the borrow
row is deleted again, so no caller ever observes a borrow without items.
"""
from __future__ import annotations

from typing import Any, Optional

from ..extensions import db
from ..models import Borrow, Store
from storelend.errors import BorrowPersistenceError, InvalidArgumentError
from storelend.logging_config import get_logger
from storelend.services import borrow_store
from storelend.services.borrow_status import derive_status
from storelend.services.concurrency import run_with_retry
from storelend.validation import BorrowItemInput, clean_text, coerce_id, parse_borrow_items

logger = get_logger(__name__)


def _require_active_store(store_id: int, field: str) -> Store:
    store = db.session.get(Store, store_id)
    if not store or not store.is_active:
        raise InvalidArgumentError(f"{field} {store_id} is not an active store")
    return store


def validate_borrow_request(
    from_store_id: Any,
    to_store_id: Any,
    items: Any,
) -> tuple[int, int, list[BorrowItemInput]]:
    """
    Check everything that can be checked before any write.

    Raises:
        InvalidArgumentError: missing ids, same store, empty items,
            missing product name or non-positive quantity
    """
    if from_store_id in (None, "") or to_store_id in (None, ""):
        raise InvalidArgumentError("fromStoreId and toStoreId are required")

    from_id = coerce_id(from_store_id, "fromStoreId")
    to_id = coerce_id(to_store_id, "toStoreId")
    if from_id == to_id:
        raise InvalidArgumentError("Cannot borrow from the same store")

    parsed_items = parse_borrow_items(items)
    return from_id, to_id, parsed_items


def create_borrow(
    from_store_id: Any,
    to_store_id: Any,
    items: Any,
    requested_by: int,
    notes: Optional[str] = None,
    borrower_photo_url: Optional[str] = None,
) -> Borrow:
    """
    Create a borrow request (status: pending_approval) with its items.

    Args:
        from_store_id: Borrowing store
        to_store_id: Lending store
        items: Non-empty list of {productName, quantity, category?, unit?, notes?}
        requested_by: User creating the request
        notes: Optional free text
        borrower_photo_url: Optional photo reference from the borrowing side

    Returns:
        Borrow: The committed borrow with items loaded

    Raises:
        InvalidArgumentError: Validation failed; nothing was written
        BorrowPersistenceError: Items could not be stored; the borrow row was removed
    """
    from_id, to_id, parsed_items = validate_borrow_request(from_store_id, to_store_id, items)
    _require_active_store(from_id, "fromStoreId")
    _require_active_store(to_id, "toStoreId")
    clean_notes = clean_text(notes, "notes")
    clean_photo = clean_text(borrower_photo_url, "borrowerPhotoUrl")

    initial_status = derive_status(
        approved=False,
        borrower_confirmed=False,
        lender_confirmed=False,
        rejected=False,
    )

    def _insert_header() -> int:
        borrow = borrow_store.insert_borrow(
            from_store_id=from_id,
            to_store_id=to_id,
            requested_by_user_id=requested_by,
            status=initial_status.value,
            notes=clean_notes,
            borrower_photo_url=clean_photo,
            borrower_pos_confirmed=False,
            lender_pos_confirmed=False,
        )
        borrow_id = borrow.id
        db.session.commit()
        return borrow_id

    borrow_id = run_with_retry(_insert_header)

    def _insert_items() -> None:
        borrow_store.insert_items(borrow_id, parsed_items)
        db.session.commit()

    try:
        run_with_retry(_insert_items)
    except Exception as exc:
        db.session.rollback()
        logger.error(
            "Borrow item insert failed, removing borrow",
            borrow_id=borrow_id,
            error=str(exc),
        )
        _compensate(borrow_id)
        raise BorrowPersistenceError("Failed to create borrow items") from exc

    borrow = borrow_store.get_borrow(borrow_id)
    logger.info(
        "Borrow requested",
        borrow_id=borrow_id,
        from_store_id=from_id,
        to_store_id=to_id,
        items_count=len(parsed_items),
        requested_by=requested_by,
    )
    return borrow


def _compensate(borrow_id: int) -> bool:
    def _op():
        borrow_store.delete_borrow(borrow_id)
        db.session.commit()

    try:
        run_with_retry(_op)
    except Exception:
        db.session.rollback()
        logger.exception("Compensating delete failed; borrow left without items", borrow_id=borrow_id)
        return False
    return True
