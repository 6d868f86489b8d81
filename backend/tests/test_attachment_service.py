import pytest

from storelend.errors import InvalidArgumentError, NotFoundError
from storelend.services import approval_service, borrow_store
from storelend.services.attachment_service import attach_photo
from storelend.services.confirmation_service import confirm_pos


def test_attach_lender_photo(approved_borrow, lender):
    version = approved_borrow.version_id

    borrow = attach_photo(approved_borrow.id, "lender", " https://img.example/l.jpg ", lender.id)

    assert borrow.lender_photo_url == "https://img.example/l.jpg"
    assert borrow.status == "approved"
    assert borrow.version_id == version + 1


def test_attach_photo_after_terminal_status(pending_borrow, lender, borrower):
    approval_service.reject_borrow(pending_borrow.id, lender.id)

    borrow = attach_photo(pending_borrow.id, "borrower", "https://img.example/b.jpg", borrower.id)

    assert borrow.status == "rejected"
    assert borrow.borrower_photo_url == "https://img.example/b.jpg"


def test_attach_photo_keeps_confirmation_state(approved_borrow, lender, borrower):
    confirm_pos(approved_borrow.id, "lender", lender.id)

    attach_photo(approved_borrow.id, "borrower", "https://img.example/b.jpg", borrower.id)

    borrow = borrow_store.get_borrow(approved_borrow.id)
    assert borrow.status == "pos_adjusting"
    assert borrow.lender_pos_confirmed is True


@pytest.mark.parametrize("photo_url", [None, "", "   ", 42])
def test_photo_url_is_required(pending_borrow, borrower, photo_url):
    with pytest.raises(InvalidArgumentError, match="photoUrl is required"):
        attach_photo(pending_borrow.id, "borrower", photo_url, borrower.id)


def test_invalid_side(pending_borrow, borrower):
    with pytest.raises(InvalidArgumentError, match="side must be"):
        attach_photo(pending_borrow.id, "courier", "https://img.example/x.jpg", borrower.id)


def test_unknown_borrow(db_session, borrower):
    with pytest.raises(NotFoundError):
        attach_photo(777777, "borrower", "https://img.example/x.jpg", borrower.id)
