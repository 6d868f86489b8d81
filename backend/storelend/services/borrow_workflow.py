# backend/storelend/services/borrow_workflow.py
"""
Borrow workflow orchestration.

ORDER OF WORK for every state-changing call:
1. The service commits the transition (single guarded write).
2. Notification and audit effects are handed to the dispatcher.

Step 2 cannot change the outcome of step 1: effects run after the commit,
each in its own try/except, and the caller gets the committed borrow back
whether or not they succeed.

FAN-OUT:
- requested: lender store notified (requester excluded); BORROW_REQUESTED
- approved: borrower store notified, lender store notified (approver excluded); BORROW_APPROVED
- rejected: borrower store notified with reason; BORROW_REJECTED
- POS confirmed: BORROW_POS_CONFIRMED only
- completed: both stores notified; BORROW_COMPLETED. Fired only by the
  confirmation that completed the borrow, so exactly once per borrow.
- photo attached: BORROW_PHOTO_UPLOADED only
"""
from __future__ import annotations

from functools import partial
from typing import Any, Optional

from flask import Flask, current_app

from ..models import Borrow
from storelend.logging_config import get_logger
from storelend.services import (
    approval_service,
    attachment_service,
    audit_service,
    borrow_request_service,
    borrow_store,
    confirmation_service,
    directory_service,
)
from storelend.services.audit_service import AuditRecorder, EntityRef, build_audit_recorder
from storelend.services.borrow_status import Side
from storelend.services.confirmation_service import ConfirmationResult
from storelend.services.dispatch import SideEffectDispatcher
from storelend.services.notification_service import NotificationGateway, build_notification_gateway

logger = get_logger(__name__)

EXTENSION_KEY = "borrow_workflow"

TITLE_REQUESTED = "New borrow request"
TITLE_APPROVED_BORROWER = "Borrow request approved"
TITLE_APPROVED_LENDER = "Borrow approved"
TITLE_REJECTED = "Borrow request rejected"
TITLE_COMPLETED = "Borrow completed"


def _items_phrase(count: int) -> str:
    return f"{count} item" if count == 1 else f"{count} items"


class BorrowWorkflow:
    def __init__(
        self,
        notifier: NotificationGateway,
        auditor: AuditRecorder,
        dispatcher: SideEffectDispatcher,
    ):
        self.notifier = notifier
        self.auditor = auditor
        self.dispatcher = dispatcher

    # ------------------------------------------------------------------
    # State-changing operations
    # ------------------------------------------------------------------

    def request_borrow(
        self,
        *,
        from_store_id: Any,
        to_store_id: Any,
        items: Any,
        actor_id: int,
        notes: Optional[str] = None,
        borrower_photo_url: Optional[str] = None,
    ) -> Borrow:
        borrow = borrow_request_service.create_borrow(
            from_store_id=from_store_id,
            to_store_id=to_store_id,
            items=items,
            requested_by=actor_id,
            notes=notes,
            borrower_photo_url=borrower_photo_url,
        )
        borrow_id = borrow.id
        self._dispatch("notify.requested", partial(self._notify_requested, borrow_id, actor_id), borrow_id)
        self._dispatch("audit.requested", partial(self._audit_requested, borrow_id, actor_id), borrow_id)
        return borrow

    def approve(self, borrow_id: int, actor_id: int, lender_photo_url: Optional[str] = None) -> Borrow:
        borrow = approval_service.approve_borrow(borrow_id, actor_id, lender_photo_url=lender_photo_url)
        self._dispatch("notify.approved", partial(self._notify_approved, borrow_id, actor_id), borrow_id)
        self._dispatch("audit.approved", partial(self._audit_approved, borrow_id, actor_id), borrow_id)
        return borrow

    def reject(self, borrow_id: int, actor_id: int, reason: Optional[str] = None) -> Borrow:
        borrow = approval_service.reject_borrow(borrow_id, actor_id, reason=reason)
        self._dispatch("notify.rejected", partial(self._notify_rejected, borrow_id, actor_id), borrow_id)
        self._dispatch("audit.rejected", partial(self._audit_rejected, borrow_id, actor_id), borrow_id)
        return borrow

    def confirm_pos(self, borrow_id: int, side, actor_id: int) -> ConfirmationResult:
        result = confirmation_service.confirm_pos(borrow_id, side, actor_id)
        self._dispatch(
            "audit.pos_confirmed",
            partial(self._audit_pos_confirmed, borrow_id, result.side, actor_id, result.completed),
            borrow_id,
        )
        if result.completed:
            self._dispatch("notify.completed", partial(self._notify_completed, borrow_id), borrow_id)
            self._dispatch("audit.completed", partial(self._audit_completed, borrow_id, result.side, actor_id), borrow_id)
        return result

    def attach_photo(self, borrow_id: int, side, photo_url: str, actor_id: int) -> Borrow:
        borrow = attachment_service.attach_photo(borrow_id, side, photo_url, actor_id)
        side = Side(side)
        photo_url = borrow.borrower_photo_url if side is Side.BORROWER else borrow.lender_photo_url
        self._dispatch(
            "audit.photo_uploaded",
            partial(self._audit_photo, borrow_id, side, photo_url, actor_id),
            borrow_id,
        )
        return borrow

    # ------------------------------------------------------------------
    # Side effects (run by the dispatcher after commit)
    # ------------------------------------------------------------------

    def _dispatch(self, name: str, func, borrow_id: int) -> None:
        self.dispatcher.submit(name, func, borrow_id=borrow_id)

    def _context(self, borrow_id: int) -> dict:
        borrow = borrow_store.get_borrow(borrow_id)
        if borrow is None:
            raise LookupError(f"Borrow {borrow_id} disappeared before side effects ran")
        stores = directory_service.store_names([borrow.from_store_id, borrow.to_store_id])
        return {
            "borrow": borrow,
            "from_store_id": borrow.from_store_id,
            "to_store_id": borrow.to_store_id,
            "from_store_name": stores.get(borrow.from_store_id, "Unknown"),
            "to_store_name": stores.get(borrow.to_store_id, "Unknown"),
            "items_count": len(borrow.items),
            "data": {"borrow_id": borrow_id},
        }

    def _notify_requested(self, borrow_id: int, actor_id: int) -> None:
        ctx = self._context(borrow_id)
        requester = directory_service.user_name(actor_id)
        self.notifier.notify_store(
            ctx["to_store_id"],
            TITLE_REQUESTED,
            f"{ctx['from_store_name']} requests to borrow {_items_phrase(ctx['items_count'])} (by {requester})",
            ctx["data"],
            exclude_actor_id=actor_id,
        )

    def _audit_requested(self, borrow_id: int, actor_id: int) -> None:
        ctx = self._context(borrow_id)
        self.auditor.record(
            ctx["from_store_id"],
            audit_service.BORROW_REQUESTED,
            EntityRef.borrow(borrow_id),
            {
                "borrow_id": borrow_id,
                "from_store_id": ctx["from_store_id"],
                "to_store_id": ctx["to_store_id"],
                "items_count": ctx["items_count"],
                "requester_name": directory_service.user_name(actor_id),
            },
            actor_id,
        )

    def _notify_approved(self, borrow_id: int, actor_id: int) -> None:
        ctx = self._context(borrow_id)
        approver = directory_service.user_name(actor_id)
        items = _items_phrase(ctx["items_count"])
        self.notifier.notify_store(
            ctx["from_store_id"],
            TITLE_APPROVED_BORROWER,
            f"{ctx['to_store_name']} approved your request for {items} (by {approver})",
            ctx["data"],
        )
        self.notifier.notify_store(
            ctx["to_store_id"],
            TITLE_APPROVED_LENDER,
            f"Lending {items} to {ctx['from_store_name']} was approved (by {approver})",
            ctx["data"],
            exclude_actor_id=actor_id,
        )

    def _audit_approved(self, borrow_id: int, actor_id: int) -> None:
        ctx = self._context(borrow_id)
        self.auditor.record(
            ctx["to_store_id"],
            audit_service.BORROW_APPROVED,
            EntityRef.borrow(borrow_id),
            {
                "borrow_id": borrow_id,
                "approved_by": actor_id,
                "approver_name": directory_service.user_name(actor_id),
            },
            actor_id,
        )

    def _notify_rejected(self, borrow_id: int, actor_id: int) -> None:
        ctx = self._context(borrow_id)
        reason = ctx["borrow"].rejection_reason
        body = f"{ctx['to_store_name']} rejected your borrow request"
        if reason:
            body = f"{body}. Reason: {reason}"
        self.notifier.notify_store(ctx["from_store_id"], TITLE_REJECTED, body, ctx["data"])

    def _audit_rejected(self, borrow_id: int, actor_id: int) -> None:
        ctx = self._context(borrow_id)
        self.auditor.record(
            ctx["to_store_id"],
            audit_service.BORROW_REJECTED,
            EntityRef.borrow(borrow_id),
            {
                "borrow_id": borrow_id,
                "rejected_by": actor_id,
                "rejector_name": directory_service.user_name(actor_id),
                "reason": ctx["borrow"].rejection_reason,
            },
            actor_id,
        )

    def _audit_pos_confirmed(self, borrow_id: int, side: Side, actor_id: int, completed: bool) -> None:
        ctx = self._context(borrow_id)
        store_id = ctx["from_store_id"] if side is Side.BORROWER else ctx["to_store_id"]
        self.auditor.record(
            store_id,
            audit_service.BORROW_POS_CONFIRMED,
            EntityRef.borrow(borrow_id),
            {
                "borrow_id": borrow_id,
                "side": side.value,
                "confirmed_by": actor_id,
                "confirmer_name": directory_service.user_name(actor_id),
                "both_confirmed": completed,
            },
            actor_id,
        )

    def _notify_completed(self, borrow_id: int) -> None:
        ctx = self._context(borrow_id)
        body = f"Borrow between {ctx['from_store_name']} and {ctx['to_store_name']} is complete"
        for store_id in (ctx["from_store_id"], ctx["to_store_id"]):
            try:
                self.notifier.notify_store(store_id, TITLE_COMPLETED, body, ctx["data"])
            except Exception:
                # each store is notified independently
                logger.exception("Completion notification failed", borrow_id=borrow_id, store_id=store_id)

    def _audit_completed(self, borrow_id: int, side: Side, actor_id: int) -> None:
        ctx = self._context(borrow_id)
        borrow = ctx["borrow"]
        self.auditor.record(
            ctx["to_store_id"],
            audit_service.BORROW_COMPLETED,
            EntityRef.borrow(borrow_id),
            {
                "borrow_id": borrow_id,
                "completed_by_side": side.value,
                "borrower_confirmed_by": borrow.borrower_pos_confirmed_by_user_id,
                "lender_confirmed_by": borrow.lender_pos_confirmed_by_user_id,
            },
            actor_id,
        )

    def _audit_photo(self, borrow_id: int, side: Side, photo_url: str | None, actor_id: int) -> None:
        ctx = self._context(borrow_id)
        store_id = ctx["from_store_id"] if side is Side.BORROWER else ctx["to_store_id"]
        self.auditor.record(
            store_id,
            audit_service.BORROW_PHOTO_UPLOADED,
            EntityRef.borrow(borrow_id),
            {
                "borrow_id": borrow_id,
                "side": side.value,
                "photo_url": photo_url,
                "uploaded_by": actor_id,
            },
            actor_id,
        )


def init_workflow(app: Flask) -> BorrowWorkflow:
    """Build the workflow from app config and register it on the app."""
    workflow = BorrowWorkflow(
        notifier=build_notification_gateway(app.config["BORROW_NOTIFICATION_BACKEND"]),
        auditor=build_audit_recorder(app.config["BORROW_AUDIT_BACKEND"]),
        dispatcher=SideEffectDispatcher(
            mode=app.config["BORROW_SIDE_EFFECTS_MODE"],
            max_workers=app.config["BORROW_SIDE_EFFECTS_WORKERS"],
        ),
    )
    app.extensions[EXTENSION_KEY] = workflow
    return workflow


def get_workflow() -> BorrowWorkflow:
    return current_app.extensions[EXTENSION_KEY]
