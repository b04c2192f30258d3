# Overview: Flask API routes for user registration, login and order history.

"""
User and authentication routes.

Login verifies email/password only; no session token is issued. The
response carries the public user fields the storefront needs.
"""
from flask import Blueprint, request, jsonify, current_app

from ..services import auth_service, order_service
from ..validation import ValidationError, ConflictError

users_bp = Blueprint("users", __name__, url_prefix="/api/users")
auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")

USER_FIELDS = {"email", "password", "first_name", "last_name", "username", "avatar_url"}


@users_bp.post("")
def register_route():
    """Register a customer account."""
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return {"error": "Invalid JSON payload"}, 400

    unknown = sorted(k for k in data if k not in USER_FIELDS)
    if unknown:
        return {"error": f"Field not allowed: {', '.join(unknown)}"}, 400

    missing = [k for k in ("email", "password", "first_name", "last_name") if not data.get(k)]
    if missing:
        return {"error": f"Missing required fields: {', '.join(missing)}"}, 400

    try:
        user = auth_service.create_user(
            email=data["email"],
            password=data["password"],
            first_name=data["first_name"],
            last_name=data["last_name"],
            username=data.get("username"),
            avatar_url=data.get("avatar_url"),
        )
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409
    except Exception:
        current_app.logger.exception("Failed to register user")
        return {"error": "Internal server error"}, 500

    return user.to_dict(), 201


@users_bp.get("/<int(max=9223372036854775807):user_id>/orders")
def user_orders_route(user_id: int):
    """Orders placed by a user, newest first."""
    return jsonify(order_service.list_user_orders(user_id))


@auth_bp.post("/login")
def login_route():
    """
    Authenticate with email and password.

    Returns 401 for unknown email, wrong password or deactivated account
    without saying which.
    """
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return {"error": "Invalid JSON payload"}, 400
    email = data.get("email")
    password = data.get("password")

    if not all([email, password]):
        return {"error": "email and password required"}, 400
    if not isinstance(email, str) or not isinstance(password, str):
        return {"error": "email and password must be strings"}, 400

    try:
        user = auth_service.authenticate(email, password)
    except Exception:
        current_app.logger.exception("Failed to login user")
        return {"error": "Internal server error"}, 500

    if not user:
        current_app.logger.info("Failed login for %s", email)
        return {"error": "Invalid credentials"}, 401

    return {"user": user.to_login_dict()}, 200
