from decimal import Decimal

import pytest

from storelend.errors import BorrowPersistenceError, InvalidArgumentError
from storelend.models import Borrow, BorrowItem
from storelend.services import borrow_request_service, borrow_store
from storelend.services.borrow_status import check_consistency

from conftest import BEER_ITEMS


def _count(db_session, model):
    return db_session.query(model).count()


def test_create_borrow_is_pending_approval(db_session, store_a, store_b, borrower):
    borrow = borrow_request_service.create_borrow(
        from_store_id=store_a.id,
        to_store_id=store_b.id,
        items=BEER_ITEMS,
        requested_by=borrower.id,
    )

    assert borrow.status == "pending_approval"
    assert borrow.from_store_id == store_a.id
    assert borrow.to_store_id == store_b.id
    assert borrow.requested_by_user_id == borrower.id
    assert borrow.borrower_pos_confirmed is False
    assert borrow.lender_pos_confirmed is False
    assert borrow.approved_at is None and borrow.rejected_at is None and borrow.completed_at is None
    assert len(borrow.items) == 1
    assert borrow.items[0].product_name == "Beer 620ml"
    assert borrow.items[0].quantity == Decimal("24")
    assert check_consistency(borrow) == []


def test_optional_fields_are_trimmed(db_session, store_a, store_b, borrower):
    borrow = borrow_request_service.create_borrow(
        from_store_id=str(store_a.id),
        to_store_id=str(store_b.id),
        items=[
            {"productName": "  Ice  ", "quantity": "2.5", "unit": " bag ", "category": ""},
            {"product_name": "Soda", "quantity": 6, "notes": "cold"},
        ],
        requested_by=borrower.id,
        notes="   ",
        borrower_photo_url=" https://img.example/1.jpg ",
    )

    assert borrow.notes is None
    assert borrow.borrower_photo_url == "https://img.example/1.jpg"
    first, second = borrow.items
    assert first.product_name == "Ice"
    assert first.unit == "bag"
    assert first.category is None
    assert first.quantity == Decimal("2.5")
    assert second.notes == "cold"
    assert first.to_dict()["quantity"] == 2.5
    assert second.to_dict()["quantity"] == 6


@pytest.mark.parametrize(
    "items, message",
    [
        ([], "At least one item"),
        (None, "At least one item"),
        ([{"quantity": 1}], "productName"),
        ([{"productName": "   ", "quantity": 1}], "productName"),
        ([{"productName": "Beer", "quantity": 0}], "greater than 0"),
        ([{"productName": "Beer", "quantity": -3}], "greater than 0"),
        ([{"productName": "Beer", "quantity": True}], "greater than 0"),
        ([{"productName": "Beer", "quantity": "lots"}], "greater than 0"),
        ([{"productName": "Beer"}], "greater than 0"),
        ([{"productName": "Beer", "quantity": 1.234}], "two decimal places"),
        (["Beer"], "object"),
    ],
)
def test_invalid_items_persist_nothing(db_session, store_a, store_b, borrower, items, message):
    with pytest.raises(InvalidArgumentError, match=message):
        borrow_request_service.create_borrow(
            from_store_id=store_a.id,
            to_store_id=store_b.id,
            items=items,
            requested_by=borrower.id,
        )

    assert _count(db_session, Borrow) == 0
    assert _count(db_session, BorrowItem) == 0


def test_same_store_is_rejected(db_session, store_a, borrower):
    with pytest.raises(InvalidArgumentError, match="same store"):
        borrow_request_service.create_borrow(
            from_store_id=store_a.id,
            to_store_id=store_a.id,
            items=BEER_ITEMS,
            requested_by=borrower.id,
        )
    assert _count(db_session, Borrow) == 0


def test_missing_store_ids_are_rejected(db_session, store_a, borrower):
    with pytest.raises(InvalidArgumentError, match="required"):
        borrow_request_service.create_borrow(
            from_store_id=store_a.id,
            to_store_id=None,
            items=BEER_ITEMS,
            requested_by=borrower.id,
        )


def test_inactive_or_unknown_store_is_rejected(db_session, store_a, closed_store, borrower):
    with pytest.raises(InvalidArgumentError, match="not an active store"):
        borrow_request_service.create_borrow(
            from_store_id=store_a.id,
            to_store_id=closed_store.id,
            items=BEER_ITEMS,
            requested_by=borrower.id,
        )
    with pytest.raises(InvalidArgumentError, match="not an active store"):
        borrow_request_service.create_borrow(
            from_store_id=store_a.id,
            to_store_id=99999,
            items=BEER_ITEMS,
            requested_by=borrower.id,
        )
    assert _count(db_session, Borrow) == 0


def test_item_failure_removes_borrow(db_session, store_a, store_b, borrower, monkeypatch):
    def _explode(borrow_id, items):
        raise RuntimeError("disk full")

    monkeypatch.setattr(borrow_store, "insert_items", _explode)

    with pytest.raises(BorrowPersistenceError, match="Failed to create borrow items"):
        borrow_request_service.create_borrow(
            from_store_id=store_a.id,
            to_store_id=store_b.id,
            items=BEER_ITEMS,
            requested_by=borrower.id,
        )

    assert _count(db_session, Borrow) == 0
    assert _count(db_session, BorrowItem) == 0


@pytest.mark.parametrize("store_id", ["²", "¹", "12abc"])
def test_malformed_store_id_is_invalid_argument(db_session, store_b, borrower, store_id):
    with pytest.raises(InvalidArgumentError, match="fromStoreId must be an integer"):
        borrow_request_service.create_borrow(
            from_store_id=store_id,
            to_store_id=store_b.id,
            items=BEER_ITEMS,
            requested_by=borrower.id,
        )
    assert _count(db_session, Borrow) == 0
