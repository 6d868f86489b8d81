# Overview: Photo attachment references on borrows (storage of the file itself lives elsewhere).

from __future__ import annotations

from ..extensions import db
from ..models import Borrow
from storelend.errors import InvalidArgumentError, NotFoundError
from storelend.logging_config import get_logger
from storelend.services import borrow_store
from storelend.services.borrow_status import Side, parse_side
from storelend.services.concurrency import run_with_retry
from storelend.validation import clean_text

logger = get_logger(__name__)


def attach_photo(borrow_id: int, side, photo_url: str, actor_id: int) -> Borrow:
    """
    Set the borrower or lender photo URL. Allowed in every status.

    Raises:
        InvalidArgumentError: Bad side or missing photo_url
        NotFoundError: Unknown borrow
    """
    try:
        side = parse_side(side)
    except ValueError as e:
        raise InvalidArgumentError(str(e))

    if not isinstance(photo_url, str):
        raise InvalidArgumentError("photoUrl is required")
    url = clean_text(photo_url, "photoUrl")
    if not url:
        raise InvalidArgumentError("photoUrl is required")

    column = "borrower_photo_url" if side is Side.BORROWER else "lender_photo_url"

    def _op():
        changed = borrow_store.conditional_update(borrow_id, [], {column: url})
        if not changed:
            db.session.rollback()
            raise NotFoundError("Borrow not found")
        db.session.commit()
        return borrow_store.get_borrow(borrow_id)

    borrow = run_with_retry(_op)
    logger.info("Borrow photo attached", borrow_id=borrow_id, side=side.value, actor_id=actor_id)
    return borrow
