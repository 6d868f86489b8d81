"""
Concurrent approve and reject of the same pending borrow.

Whichever decision commits first wins; the other sees StateConflictError
and leaves no trace on the row or in the audit trail.
"""
import threading

from storelend.errors import StateConflictError
from storelend.extensions import db
from storelend.services import audit_service, borrow_store
from storelend.services.borrow_status import check_consistency
from storelend.services.borrow_workflow import EXTENSION_KEY

from conftest import BEER_ITEMS, seed_directory

ROUNDS = 5


def _pending_borrow(app, from_id, to_id, borrower_id):
    workflow = app.extensions[EXTENSION_KEY]
    with app.app_context():
        borrow = workflow.request_borrow(
            from_store_id=from_id,
            to_store_id=to_id,
            items=BEER_ITEMS,
            actor_id=borrower_id,
        )
        return borrow.id


def test_approve_and_reject_race_has_one_winner(race_app):
    workflow = race_app.extensions[EXTENSION_KEY]
    from_id, to_id, borrower_id, lender_id = seed_directory(race_app)

    for _ in range(ROUNDS):
        borrow_id = _pending_borrow(race_app, from_id, to_id, borrower_id)
        workflow.notifier.reset()
        workflow.auditor.reset()

        barrier = threading.Barrier(2)
        winners = []
        conflicts = []
        errors = []

        def decide(action):
            with race_app.app_context():
                barrier.wait()
                try:
                    if action == "approve":
                        workflow.approve(borrow_id, lender_id)
                    else:
                        workflow.reject(borrow_id, lender_id, reason="out of stock")
                    winners.append(action)
                except StateConflictError:
                    conflicts.append(action)
                except Exception as exc:
                    errors.append(exc)
                finally:
                    db.session.remove()

        threads = [
            threading.Thread(target=decide, args=("approve",)),
            threading.Thread(target=decide, args=("reject",)),
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=30)

        assert errors == []
        assert len(winners) == 1
        assert len(conflicts) == 1
        [winner] = winners

        decisions = (
            workflow.auditor.of_type(audit_service.BORROW_APPROVED)
            + workflow.auditor.of_type(audit_service.BORROW_REJECTED)
        )
        assert len(decisions) == 1
        expected_action = audit_service.BORROW_APPROVED if winner == "approve" else audit_service.BORROW_REJECTED
        assert decisions[0]["action_type"] == expected_action

        with race_app.app_context():
            borrow = borrow_store.get_borrow(borrow_id)
            if winner == "approve":
                assert borrow.status == "approved"
                assert borrow.rejected_at is None
                assert borrow.rejection_reason is None
            else:
                assert borrow.status == "rejected"
                assert borrow.approved_at is None
            assert check_consistency(borrow) == []
