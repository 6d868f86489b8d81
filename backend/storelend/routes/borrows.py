# backend/storelend/routes/borrows.py
"""
Inter-store borrow API routes.
"""
from flask import Blueprint, request, jsonify, g
from storelend.extensions import db
from storelend.decorators import require_actor
from storelend.errors import BorrowError, InvalidArgumentError
from storelend.logging_config import get_logger
from storelend.services import borrow_query_service
from storelend.services.borrow_workflow import get_workflow
from storelend.validation import coerce_id


borrows_bp = Blueprint("borrows", __name__, url_prefix="/api/borrows")

logger = get_logger(__name__)

PATCH_ACTIONS = ("approve", "reject", "confirm_pos", "upload_photo")


def _error_response(e: BorrowError):
    db.session.rollback()
    return jsonify(e.to_dict()), e.status_code


def _unexpected(e: Exception):
    db.session.rollback()
    logger.exception("Unexpected error in borrow route", path=request.path)
    return jsonify({"error": "Internal server error", "kind": "internal_error"}), 500


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return None
    return data


@borrows_bp.route("", methods=["POST"])
@require_actor
def create_borrow():
    """
    Create a new borrow request.

    Request body:
    {
        "fromStoreId": int,          # borrowing store
        "toStoreId": int,            # lending store
        "items": [{"productName": str, "quantity": number,
                   "category": str?, "unit": str?, "notes": str?}],
        "notes": str (optional),
        "borrowerPhotoUrl": str (optional)
    }

    Returns:
        201: Borrow created
        400: Invalid request
        401: Unknown actor
    """
    data = _json_body()
    if data is None:
        return jsonify({"error": "Invalid JSON payload", "kind": "invalid_argument"}), 400

    try:
        borrow = get_workflow().request_borrow(
            from_store_id=data.get("fromStoreId"),
            to_store_id=data.get("toStoreId"),
            items=data.get("items"),
            actor_id=g.current_user.id,
            notes=data.get("notes"),
            borrower_photo_url=data.get("borrowerPhotoUrl"),
        )
        return jsonify({"borrow": borrow_query_service.borrow_detail(borrow)}), 201

    except BorrowError as e:
        return _error_response(e)
    except Exception as e:
        return _unexpected(e)


@borrows_bp.route("/<int:borrow_id>", methods=["PATCH"])
@require_actor
def update_borrow(borrow_id: int):
    """
    Apply a workflow action to a borrow.

    Request body:
    {"action": "approve", "lenderPhotoUrl": str?}
    {"action": "reject", "reason": str?}
    {"action": "confirm_pos", "side": "borrower" | "lender"}
    {"action": "upload_photo", "side": "borrower" | "lender", "photoUrl": str}

    Returns:
        200: Updated borrow
        400: Invalid action, invalid fields or state conflict
        404: Borrow not found
    """
    data = _json_body()
    if data is None:
        return jsonify({"error": "Invalid JSON payload", "kind": "invalid_argument"}), 400

    action = data.get("action")
    if not action:
        return jsonify({"error": "action is required", "kind": "invalid_argument"}), 400
    if action not in PATCH_ACTIONS:
        return jsonify({"error": f"Unknown action: {action}", "kind": "invalid_argument"}), 400

    workflow = get_workflow()
    actor_id = g.current_user.id

    try:
        if action == "approve":
            borrow = workflow.approve(borrow_id, actor_id, lender_photo_url=data.get("lenderPhotoUrl"))
        elif action == "reject":
            borrow = workflow.reject(borrow_id, actor_id, reason=data.get("reason"))
        elif action == "confirm_pos":
            borrow = workflow.confirm_pos(borrow_id, data.get("side"), actor_id).borrow
        else:
            borrow = workflow.attach_photo(borrow_id, data.get("side"), data.get("photoUrl"), actor_id)

        return jsonify({"borrow": borrow_query_service.borrow_detail(borrow)}), 200

    except BorrowError as e:
        return _error_response(e)
    except Exception as e:
        return _unexpected(e)


@borrows_bp.route("/<int:borrow_id>", methods=["GET"])
@require_actor
def get_borrow(borrow_id: int):
    """
    Get a borrow with items and resolved store/user display names.

    Returns:
        200: {"borrow": ...} with items and display names
        404: Borrow not found
    """
    try:
        borrow = borrow_query_service.get_borrow(borrow_id)
        return jsonify({"borrow": borrow_query_service.borrow_detail(borrow)}), 200

    except BorrowError as e:
        return _error_response(e)
    except Exception as e:
        return _unexpected(e)


@borrows_bp.route("", methods=["GET"])
@require_actor
def list_borrows():
    """
    List borrows for a store.

    Query parameters:
        store_id: Store to list for (required)
        direction: outgoing (this store borrows) or incoming (this store lends); default outgoing
        status: Filter by status
        limit: Max results (default 100)

    Returns:
        200: {"borrows": [...]}
        400: Invalid filters
    """
    try:
        try:
            limit = coerce_id(request.args.get("limit", "100"), "limit")
        except InvalidArgumentError:
            return jsonify({"error": "limit must be a positive integer", "kind": "invalid_argument"}), 400

        borrows = borrow_query_service.list_borrows(
            request.args.get("store_id"),
            direction=request.args.get("direction", "outgoing"),
            status=request.args.get("status"),
            limit=limit,
        )
        return jsonify({"borrows": [borrow_query_service.borrow_detail(b) for b in borrows]}), 200

    except BorrowError as e:
        return _error_response(e)
    except Exception as e:
        return _unexpected(e)
