# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .services import directory_service
from .errors import InvalidArgumentError
from .logging_config import add_context, clear_context
from .validation import coerce_id

ACTOR_HEADER = "X-User-Id"


def require_actor(f):
    """
    Resolve the acting user from the X-User-Id header.

    Authentication happens upstream; this only establishes attribution.
    Sets g.current_user to the active User.

    Returns 401 if the header is missing, malformed, or names an
    unknown/inactive user.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        raw = (request.headers.get(ACTOR_HEADER) or "").strip()
        if not raw:
            return jsonify({"error": "Authentication required", "kind": "unauthorized"}), 401

        try:
            actor_id = coerce_id(raw, ACTOR_HEADER)
        except InvalidArgumentError:
            return jsonify({"error": "Invalid actor id", "kind": "unauthorized"}), 401

        user = directory_service.get_active_user(actor_id)
        if not user:
            return jsonify({"error": "Unknown or inactive user", "kind": "unauthorized"}), 401

        g.current_user = user
        clear_context()
        add_context(actor_id=user.id, path=request.path)

        return f(*args, **kwargs)

    return decorated_function
