# Overview: Error taxonomy for the borrow workflow; routes map `kind` and `status_code` to responses.

from __future__ import annotations


class BorrowError(Exception):
    """Raised when borrow operations fail."""
    kind = "borrow_error"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.message, "kind": self.kind}


class InvalidArgumentError(BorrowError):
    """400-level input problem. Raised before any write."""
    kind = "invalid_argument"
    status_code = 400


class NotFoundError(BorrowError):
    """Unknown borrow id."""
    kind = "not_found"
    status_code = 404


class StateConflictError(BorrowError):
    """
    The request is well-formed but the workflow has moved on
    (not pending, not yet approved, side already confirmed).
    """
    kind = "state_conflict"
    status_code = 400


class BorrowPersistenceError(BorrowError):
    """Storage failed; any partially created aggregate has been removed."""
    kind = "persistence_error"
    status_code = 500
