# Overview: Borrow lifecycle states, the transition table and status derivation.

"""
All status decisions go through this module:

- BorrowStatus is the closed set of states.
- TRANSITIONS is the only place legal edges are listed.
- derive_status() maps the stored flags to a status; writers and the
  consistency check use it instead of re-deriving status inline.

    pending_approval -> approved | rejected
    approved         -> pos_adjusting
    pos_adjusting    -> completed
    completed, rejected: terminal
"""
from __future__ import annotations

import enum

from storelend.errors import StateConflictError


class BorrowStatus(str, enum.Enum):
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    POS_ADJUSTING = "pos_adjusting"
    COMPLETED = "completed"
    REJECTED = "rejected"

    def __str__(self) -> str:
        return self.value


class Side(str, enum.Enum):
    BORROWER = "borrower"
    LENDER = "lender"

    def __str__(self) -> str:
        return self.value

    @property
    def other(self) -> "Side":
        return Side.LENDER if self is Side.BORROWER else Side.BORROWER


TRANSITIONS: dict[BorrowStatus, frozenset[BorrowStatus]] = {
    BorrowStatus.PENDING_APPROVAL: frozenset({BorrowStatus.APPROVED, BorrowStatus.REJECTED}),
    BorrowStatus.APPROVED: frozenset({BorrowStatus.POS_ADJUSTING}),
    BorrowStatus.POS_ADJUSTING: frozenset({BorrowStatus.COMPLETED}),
    BorrowStatus.COMPLETED: frozenset(),
    BorrowStatus.REJECTED: frozenset(),
}

TERMINAL_STATUSES = frozenset(s for s, targets in TRANSITIONS.items() if not targets)


def parse_status(value) -> BorrowStatus:
    try:
        return BorrowStatus(value)
    except ValueError:
        raise ValueError(f"Unknown borrow status: {value!r}")


def parse_side(value) -> Side:
    try:
        return Side(value)
    except ValueError:
        raise ValueError('side must be "borrower" or "lender"')


def can_transition(current: BorrowStatus, target: BorrowStatus) -> bool:
    return target in TRANSITIONS[current]


def sources_for(target: BorrowStatus) -> frozenset[BorrowStatus]:
    """Statuses that may legally move to `target`; used as UPDATE guards."""
    return frozenset(s for s, targets in TRANSITIONS.items() if target in targets)


def assert_transition(current: BorrowStatus, target: BorrowStatus, message: str | None = None) -> None:
    """Raise StateConflictError unless `current -> target` is in TRANSITIONS."""
    if not can_transition(current, target):
        raise StateConflictError(message or f"Cannot move borrow from {current} to {target}")


# States from which a POS confirmation may be recorded: a first confirmation
# moves to pos_adjusting, a second one to completed.
CONFIRMABLE_STATUSES = sources_for(BorrowStatus.POS_ADJUSTING) | sources_for(BorrowStatus.COMPLETED)


def derive_status(
    approved: bool,
    borrower_confirmed: bool,
    lender_confirmed: bool,
    rejected: bool,
) -> BorrowStatus:
    """
    Pure status derivation from the aggregate's flags.

    Raises ValueError for flag combinations no legal history produces.
    """
    if rejected:
        if approved or borrower_confirmed or lender_confirmed:
            raise ValueError("A rejected borrow cannot be approved or confirmed")
        return BorrowStatus.REJECTED
    if not approved:
        if borrower_confirmed or lender_confirmed:
            raise ValueError("A borrow cannot be confirmed before approval")
        return BorrowStatus.PENDING_APPROVAL
    if borrower_confirmed and lender_confirmed:
        return BorrowStatus.COMPLETED
    if borrower_confirmed or lender_confirmed:
        return BorrowStatus.POS_ADJUSTING
    return BorrowStatus.APPROVED


def status_of(borrow) -> BorrowStatus:
    """derive_status() applied to a stored Borrow row."""
    return derive_status(
        approved=borrow.approved_at is not None,
        borrower_confirmed=bool(borrow.borrower_pos_confirmed),
        lender_confirmed=bool(borrow.lender_pos_confirmed),
        rejected=borrow.rejected_at is not None,
    )


def check_consistency(borrow) -> list[str]:
    """
    Return a list of invariant violations for a stored Borrow (empty if sound).
    """
    problems: list[str] = []
    try:
        stored = parse_status(borrow.status)
    except ValueError as exc:
        return [str(exc)]

    try:
        derived = status_of(borrow)
    except ValueError as exc:
        return [str(exc)]

    if stored is not derived:
        problems.append(f"status is {stored} but flags imply {derived}")

    approval_set = borrow.approved_at is not None and borrow.approved_by_user_id is not None
    approval_any = borrow.approved_at is not None or borrow.approved_by_user_id is not None
    if approval_any and not approval_set:
        problems.append("approved_by/approved_at must be set together")

    rejection_any = borrow.rejected_at is not None or borrow.rejected_by_user_id is not None
    rejection_set = borrow.rejected_at is not None and borrow.rejected_by_user_id is not None
    if rejection_any and not rejection_set:
        problems.append("rejected_by/rejected_at must be set together")

    both = bool(borrow.borrower_pos_confirmed) and bool(borrow.lender_pos_confirmed)
    if both != (borrow.completed_at is not None):
        problems.append("completed_at must be set exactly when both sides confirmed")

    if borrow.from_store_id == borrow.to_store_id:
        problems.append("from_store_id and to_store_id must differ")

    if not borrow.items:
        problems.append("borrow has no items")

    return problems
