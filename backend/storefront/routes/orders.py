# Overview: Flask API routes for checkout and order lookup.

from flask import Blueprint, request, current_app

from ..services import order_service
from ..validation import ValidationError, NotFoundError

orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")

ORDER_FIELDS = {
    "user_id",
    "items",
    "billing_email",
    "billing_first_name",
    "billing_last_name",
    "payment_method",
    "notes",
}


@orders_bp.post("")
def create_order_route():
    """
    Check out: price the items at current product prices and persist the order.

    Body:
    - user_id, billing_email, billing_first_name, billing_last_name (required)
    - items: [{product_id, quantity}, ...] (required, non-empty)
    - payment_method, notes (optional)
    """
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return {"error": "Invalid JSON payload"}, 400

    unknown = sorted(k for k in data if k not in ORDER_FIELDS)
    if unknown:
        return {"error": f"Field not allowed: {', '.join(unknown)}"}, 400

    try:
        order = order_service.create_order(
            user_id=data.get("user_id"),
            items=data.get("items"),
            billing_email=data.get("billing_email"),
            billing_first_name=data.get("billing_first_name"),
            billing_last_name=data.get("billing_last_name"),
            payment_method=data.get("payment_method"),
            notes=data.get("notes"),
        )
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e), "details": e.details}, 404
    except Exception:
        current_app.logger.exception("Failed to create order")
        return {"error": "Internal server error"}, 500

    return order, 201


@orders_bp.get("/<int(max=9223372036854775807):order_id>")
def get_order_route(order_id: int):
    """Order header with its line items."""
    order = order_service.get_order(order_id)
    if order is None:
        return {"error": "Order not found"}, 404
    return order, 200
