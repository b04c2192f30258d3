# Overview: Flask API routes for catalog categories; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..models import Category
from ..services import categories_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_category,
    ValidationError,
    ConflictError,
    NotFoundError,
)

CATEGORY_POLICY = ModelValidationPolicy(
    writable_fields={"name", "slug", "description", "parent_id", "image_url", "sort_order", "is_active"},
    required_on_create={"name", "slug"},
)

categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")


@categories_bp.get("")
def list_categories_route():
    """List categories ordered by sort_order, then name."""
    return jsonify(categories_service.list_categories())


@categories_bp.post("")
def create_category_route():
    """Create a category. parent_id, when given, must reference an existing category."""
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY)
        enforce_rules_category(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        created = categories_service.create_category(patch=patch)
    except NotFoundError as e:
        return {"error": str(e), "details": e.details}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409
    except Exception:
        current_app.logger.exception("Failed to create category")
        return {"error": "Internal server error"}, 500

    return created, 201
