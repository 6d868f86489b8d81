# backend/storelend/services/confirmation_service.py
"""
POS confirmation: each side acknowledges it adjusted its own POS stock.

WHY: Both stores confirm independently and often at the same moment. A
read-then-write would let both requests see "other side not confirmed yet"
(completion never fires) or both see "I am the last one" (completion fires
twice). Instead each confirmation is a single guarded UPDATE:

    SET <side>_pos_confirmed = true, <side>_..._by/_at,
        status       = CASE WHEN <other>_pos_confirmed THEN 'completed' ELSE 'pos_adjusting' END,
        completed_at = CASE WHEN <other>_pos_confirmed THEN :now END
    WHERE id = :id
      AND status IN ('approved', 'pos_adjusting')
      AND <side>_pos_confirmed = false

The CASE reads the other flag from the row as it is at write time (the
database serializes the two writes on the row lock), so exactly one writer
produces the completed state. That writer re-reads the row inside its own
transaction and is the only one that reports `completed=True`.
"""
from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import case, literal

from ..extensions import db
from ..models import Borrow
from storelend.errors import InvalidArgumentError, NotFoundError, StateConflictError
from storelend.logging_config import get_logger
from storelend.services import borrow_store
from storelend.services.borrow_status import (
    CONFIRMABLE_STATUSES,
    BorrowStatus,
    Side,
    assert_transition,
    derive_status,
    parse_side,
    parse_status,
)
from storelend.services.concurrency import run_with_retry
from storelend.time_utils import utcnow

logger = get_logger(__name__)


@dataclass(frozen=True)
class ConfirmationResult:
    borrow: Borrow
    side: Side
    # True only for the single confirmation that completed the borrow
    completed: bool


def _flag_column(side: Side):
    return Borrow.borrower_pos_confirmed if side is Side.BORROWER else Borrow.lender_pos_confirmed


def _side_values(side: Side, actor_id: int, now) -> dict:
    prefix = side.value
    return {
        f"{prefix}_pos_confirmed": True,
        f"{prefix}_pos_confirmed_by_user_id": actor_id,
        f"{prefix}_pos_confirmed_at": now,
    }


def _status_after(side: Side, other_confirmed: bool) -> BorrowStatus:
    return derive_status(
        approved=True,
        borrower_confirmed=side is Side.BORROWER or other_confirmed,
        lender_confirmed=side is Side.LENDER or other_confirmed,
        rejected=False,
    )


def _raise_confirm_conflict(borrow_id: int, side: Side) -> None:
    borrow = borrow_store.get_borrow(borrow_id)
    if borrow is None:
        raise NotFoundError("Borrow not found")

    status = parse_status(borrow.status)
    if status is BorrowStatus.COMPLETED:
        raise StateConflictError("Borrow is already completed")
    if status not in CONFIRMABLE_STATUSES:
        assert_transition(status, BorrowStatus.POS_ADJUSTING, "Borrow must be approved before confirming POS")

    flag = borrow.borrower_pos_confirmed if side is Side.BORROWER else borrow.lender_pos_confirmed
    if flag:
        raise StateConflictError(f"{side.value.capitalize()} POS already confirmed")

    raise StateConflictError("Borrow changed while confirming; retry")


def confirm_pos(borrow_id: int, side, actor_id: int) -> ConfirmationResult:
    """
    Record one side's POS adjustment.

    Args:
        borrow_id: Borrow ID
        side: "borrower" or "lender"
        actor_id: User confirming

    Returns:
        ConfirmationResult: borrow after the write, and whether this call completed it

    Raises:
        InvalidArgumentError: side is not borrower/lender
        NotFoundError: Unknown borrow
        StateConflictError: Not approved/adjusting, or this side already confirmed
    """
    try:
        side = parse_side(side)
    except ValueError as e:
        raise InvalidArgumentError(str(e))

    now = utcnow()
    other_flag = _flag_column(side.other)
    other_confirmed = other_flag.is_(True)

    completed_status = _status_after(side, other_confirmed=True)
    adjusting_status = _status_after(side, other_confirmed=False)

    values = {
        **_side_values(side, actor_id, now),
        "status": case((other_confirmed, completed_status.value), else_=adjusting_status.value),
        "completed_at": case(
            (other_confirmed, literal(now, type_=Borrow.completed_at.type)),
            else_=None,
        ),
        "updated_at": now,
    }
    guards = [
        Borrow.status.in_([s.value for s in CONFIRMABLE_STATUSES]),
        _flag_column(side).is_(False),
    ]

    def _op() -> ConfirmationResult:
        changed = borrow_store.conditional_update(borrow_id, guards, values)
        if not changed:
            db.session.rollback()
            _raise_confirm_conflict(borrow_id, side)

        # Still inside our transaction: the row reflects our write only.
        borrow = borrow_store.get_borrow(borrow_id)
        completed = parse_status(borrow.status) is BorrowStatus.COMPLETED
        db.session.commit()
        return ConfirmationResult(borrow=borrow, side=side, completed=completed)

    result = run_with_retry(_op)
    logger.info(
        "Borrow POS confirmed",
        borrow_id=borrow_id,
        side=side.value,
        actor_id=actor_id,
        completed=result.completed,
    )
    return result
