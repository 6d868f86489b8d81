import pytest

from storelend.errors import InvalidArgumentError, NotFoundError, StateConflictError
from storelend.services import approval_service, borrow_store
from storelend.services.borrow_status import Side, check_consistency
from storelend.services.confirmation_service import confirm_pos


def test_lender_then_borrower_completes(approved_borrow, lender, borrower):
    first = confirm_pos(approved_borrow.id, "lender", lender.id)

    assert first.side is Side.LENDER
    assert first.completed is False
    assert first.borrow.status == "pos_adjusting"
    assert first.borrow.lender_pos_confirmed is True
    assert first.borrow.lender_pos_confirmed_by_user_id == lender.id
    assert first.borrow.lender_pos_confirmed_at is not None
    assert first.borrow.borrower_pos_confirmed is False
    assert first.borrow.completed_at is None

    second = confirm_pos(approved_borrow.id, "borrower", borrower.id)

    assert second.completed is True
    assert second.borrow.status == "completed"
    assert second.borrow.borrower_pos_confirmed is True
    assert second.borrow.completed_at is not None
    assert check_consistency(second.borrow) == []


def test_borrower_first_then_lender_completes(approved_borrow, lender, borrower):
    first = confirm_pos(approved_borrow.id, "borrower", borrower.id)

    assert first.completed is False
    assert first.borrow.status == "pos_adjusting"
    assert first.borrow.borrower_pos_confirmed is True
    assert first.borrow.lender_pos_confirmed is False
    assert first.borrow.completed_at is None

    second = confirm_pos(approved_borrow.id, "lender", lender.id)

    assert second.completed is True
    assert second.borrow.status == "completed"
    assert second.borrow.borrower_pos_confirmed is True
    assert second.borrow.lender_pos_confirmed is True
    assert second.borrow.completed_at is not None
    assert check_consistency(second.borrow) == []


def test_confirm_before_approval_conflicts(pending_borrow, borrower):
    with pytest.raises(StateConflictError, match="must be approved before confirming POS"):
        confirm_pos(pending_borrow.id, "borrower", borrower.id)

    borrow = borrow_store.get_borrow(pending_borrow.id)
    assert borrow.status == "pending_approval"
    assert borrow.borrower_pos_confirmed is False


def test_confirm_rejected_borrow_conflicts(pending_borrow, lender):
    approval_service.reject_borrow(pending_borrow.id, lender.id)

    with pytest.raises(StateConflictError, match="must be approved"):
        confirm_pos(pending_borrow.id, "lender", lender.id)


def test_same_side_twice_conflicts(approved_borrow, lender, lender_2):
    confirm_pos(approved_borrow.id, "lender", lender.id)
    version = borrow_store.get_borrow(approved_borrow.id).version_id

    with pytest.raises(StateConflictError, match="Lender POS already confirmed"):
        confirm_pos(approved_borrow.id, "lender", lender_2.id)

    borrow = borrow_store.get_borrow(approved_borrow.id)
    assert borrow.lender_pos_confirmed_by_user_id == lender.id
    assert borrow.version_id == version


def test_confirm_after_completion_conflicts(approved_borrow, lender, borrower):
    confirm_pos(approved_borrow.id, "lender", lender.id)
    confirm_pos(approved_borrow.id, "borrower", borrower.id)

    with pytest.raises(StateConflictError, match="already completed"):
        confirm_pos(approved_borrow.id, "borrower", borrower.id)


def test_invalid_side(approved_borrow, lender):
    with pytest.raises(InvalidArgumentError, match="side must be"):
        confirm_pos(approved_borrow.id, "warehouse", lender.id)


def test_unknown_borrow(db_session, lender):
    with pytest.raises(NotFoundError):
        confirm_pos(31337, "lender", lender.id)
