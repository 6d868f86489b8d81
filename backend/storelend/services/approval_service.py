# backend/storelend/services/approval_service.py
"""
Approval and rejection of pending borrows (lending store action).

Both are one guarded UPDATE on status = pending_approval. Whichever of two
racing approve/reject calls commits first wins; the other affects zero
rows and is reported as a state conflict.
"""
from __future__ import annotations

from typing import Optional

from ..extensions import db
from ..models import Borrow
from storelend.errors import NotFoundError, StateConflictError
from storelend.logging_config import get_logger
from storelend.services import borrow_store
from storelend.services.borrow_status import (
    BorrowStatus,
    assert_transition,
    derive_status,
    parse_status,
    sources_for,
)
from storelend.services.concurrency import run_with_retry
from storelend.time_utils import utcnow
from storelend.validation import clean_text

logger = get_logger(__name__)


def _raise_not_pending(borrow_id: int, target: BorrowStatus) -> None:
    borrow = borrow_store.get_borrow(borrow_id)
    if borrow is None:
        raise NotFoundError("Borrow not found")
    assert_transition(parse_status(borrow.status), target, "Borrow is not pending approval")
    # guard holds again on re-read; the caller may retry
    raise StateConflictError("Borrow changed while deciding; retry")


def _decide(borrow_id: int, target: BorrowStatus, values: dict) -> Borrow:
    guards = [Borrow.status.in_([s.value for s in sources_for(target)])]
    values = {**values, "status": target.value}

    def _op():
        changed = borrow_store.conditional_update(borrow_id, guards, values)
        if not changed:
            db.session.rollback()
            _raise_not_pending(borrow_id, target)
        db.session.commit()
        return borrow_store.get_borrow(borrow_id)

    return run_with_retry(_op)


def approve_borrow(
    borrow_id: int,
    actor_id: int,
    lender_photo_url: Optional[str] = None,
) -> Borrow:
    """
    Approve a pending borrow.

    Args:
        borrow_id: Borrow ID
        actor_id: User approving (lending store staff)
        lender_photo_url: Optional photo from the lending side; an existing
            photo is kept when omitted

    Returns:
        Borrow: The approved borrow

    Raises:
        NotFoundError: Unknown borrow
        StateConflictError: Borrow is not pending approval
    """
    target = derive_status(approved=True, borrower_confirmed=False, lender_confirmed=False, rejected=False)
    values = {
        "approved_by_user_id": actor_id,
        "approved_at": utcnow(),
    }
    photo = clean_text(lender_photo_url, "lenderPhotoUrl")
    if photo:
        values["lender_photo_url"] = photo

    borrow = _decide(borrow_id, target, values)
    logger.info("Borrow approved", borrow_id=borrow_id, actor_id=actor_id)
    return borrow


def reject_borrow(
    borrow_id: int,
    actor_id: int,
    reason: Optional[str] = None,
) -> Borrow:
    """
    Reject a pending borrow. Terminal.

    Raises:
        NotFoundError: Unknown borrow
        StateConflictError: Borrow is not pending approval
    """
    target = derive_status(approved=False, borrower_confirmed=False, lender_confirmed=False, rejected=True)
    values = {
        "rejected_by_user_id": actor_id,
        "rejected_at": utcnow(),
        "rejection_reason": clean_text(reason, "reason"),
    }

    borrow = _decide(borrow_id, target, values)
    logger.info("Borrow rejected", borrow_id=borrow_id, actor_id=actor_id, reason=values["rejection_reason"])
    return borrow
