# Overview: Flask API routes for wishlist operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..services import wishlist_service
from ..validation import ValidationError, NotFoundError, coerce_int

wishlist_bp = Blueprint("wishlist", __name__, url_prefix="/api/wishlist")


@wishlist_bp.get("")
def get_wishlist_route():
    """
    Wishlist rows, newest first.

    Query params: user_id and/or session_id. Both given matches either owner.
    """
    try:
        raw_user_id = request.args.get("user_id")
        user_id = coerce_int("user_id", raw_user_id) if raw_user_id is not None else None
    except ValidationError as e:
        return {"error": str(e)}, 400

    session_id = request.args.get("session_id") or None
    return jsonify(wishlist_service.get_wishlist(user_id=user_id, session_id=session_id))


@wishlist_bp.post("")
def add_to_wishlist_route():
    """
    Add a product for a user or a guest session.

    Body: {product_id, user_id | session_id}. Re-adding returns the stored row.
    """
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return {"error": "Invalid JSON payload"}, 400

    try:
        product_id = coerce_int("product_id", data.get("product_id"))
        user_id = data.get("user_id")
        if user_id is not None:
            user_id = coerce_int("user_id", user_id)
        session_id = data.get("session_id")
        if session_id is not None and not isinstance(session_id, str):
            raise ValidationError("session_id must be a string")

        item = wishlist_service.add_to_wishlist(
            product_id=product_id,
            user_id=user_id,
            session_id=session_id,
        )
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e), "details": e.details}, 404
    except Exception:
        current_app.logger.exception("Failed to add wishlist item")
        return {"error": "Internal server error"}, 500

    return item, 200


@wishlist_bp.delete("/<int(max=9223372036854775807):item_id>")
def remove_from_wishlist_route(item_id: int):
    """Remove a wishlist row by id. Unknown ids report removed=false."""
    removed = wishlist_service.remove_from_wishlist(item_id)
    return {"removed": removed}, 200
