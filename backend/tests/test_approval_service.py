import pytest

from storelend.errors import NotFoundError, StateConflictError
from storelend.services import approval_service, borrow_store
from storelend.services.borrow_status import check_consistency
from storelend.services.confirmation_service import confirm_pos


def test_approve_pending_borrow(pending_borrow, lender):
    version = pending_borrow.version_id
    borrow = approval_service.approve_borrow(pending_borrow.id, lender.id)

    assert borrow.status == "approved"
    assert borrow.approved_by_user_id == lender.id
    assert borrow.approved_at is not None
    assert borrow.rejected_at is None
    assert borrow.version_id == version + 1
    assert check_consistency(borrow) == []


def test_approve_records_lender_photo(pending_borrow, lender):
    borrow = approval_service.approve_borrow(
        pending_borrow.id, lender.id, lender_photo_url="https://img.example/l.jpg"
    )
    assert borrow.lender_photo_url == "https://img.example/l.jpg"


def test_approve_keeps_existing_photo_when_omitted(pending_borrow, lender, db_session):
    borrow_store.conditional_update(pending_borrow.id, [], {"lender_photo_url": "https://img.example/old.jpg"})
    db_session.commit()

    borrow = approval_service.approve_borrow(pending_borrow.id, lender.id)
    assert borrow.lender_photo_url == "https://img.example/old.jpg"


def test_reject_with_reason(pending_borrow, lender):
    borrow = approval_service.reject_borrow(pending_borrow.id, lender.id, reason="  Out of stock ")

    assert borrow.status == "rejected"
    assert borrow.rejected_by_user_id == lender.id
    assert borrow.rejected_at is not None
    assert borrow.rejection_reason == "Out of stock"
    assert borrow.approved_at is None
    assert check_consistency(borrow) == []


def test_reject_without_reason(pending_borrow, lender):
    borrow = approval_service.reject_borrow(pending_borrow.id, lender.id)
    assert borrow.rejection_reason is None


def test_second_approver_conflicts(pending_borrow, lender, lender_2):
    approval_service.approve_borrow(pending_borrow.id, lender.id)
    version = borrow_store.get_borrow(pending_borrow.id).version_id

    with pytest.raises(StateConflictError, match="not pending approval"):
        approval_service.approve_borrow(pending_borrow.id, lender_2.id)

    borrow = borrow_store.get_borrow(pending_borrow.id)
    assert borrow.approved_by_user_id == lender.id
    assert borrow.version_id == version


def test_reject_after_approve_conflicts(pending_borrow, lender, lender_2):
    approval_service.approve_borrow(pending_borrow.id, lender.id)

    with pytest.raises(StateConflictError):
        approval_service.reject_borrow(pending_borrow.id, lender_2.id, reason="too late")

    borrow = borrow_store.get_borrow(pending_borrow.id)
    assert borrow.status == "approved"
    assert borrow.rejected_at is None
    assert borrow.rejection_reason is None


def test_approve_after_reject_conflicts(pending_borrow, lender):
    approval_service.reject_borrow(pending_borrow.id, lender.id)

    with pytest.raises(StateConflictError):
        approval_service.approve_borrow(pending_borrow.id, lender.id)

    assert borrow_store.get_borrow(pending_borrow.id).status == "rejected"


@pytest.mark.parametrize("decide", [approval_service.approve_borrow, approval_service.reject_borrow])
def test_unknown_borrow_is_not_found(db_session, lender, decide):
    with pytest.raises(NotFoundError):
        decide(424242, lender.id)


def test_rejected_borrow_refuses_approve_and_confirm(pending_borrow, lender, lender_2):
    borrow = approval_service.reject_borrow(pending_borrow.id, lender_2.id, reason="out of stock")
    assert borrow.status == "rejected"
    assert borrow.rejection_reason == "out of stock"

    with pytest.raises(StateConflictError, match="not pending approval"):
        approval_service.approve_borrow(pending_borrow.id, lender.id)
    with pytest.raises(StateConflictError):
        confirm_pos(pending_borrow.id, "lender", lender.id)

    borrow = borrow_store.get_borrow(pending_borrow.id)
    assert borrow.status == "rejected"
    assert borrow.approved_at is None
    assert borrow.lender_pos_confirmed is False
