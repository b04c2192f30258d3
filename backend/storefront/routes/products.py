# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/storefront/routes/products.py
"""
Product catalog routes.

Listing goes through the filter compiler: GET takes filters as query args,
POST /search takes the same fields as a JSON body. Malformed filters are
rejected with 400 before any query runs.
"""
from flask import Blueprint, request, jsonify, current_app

from ..models import Product
from ..services import products_service
from ..services.product_filters import parse_product_filters
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    coerce_int,
    ValidationError,
    ConflictError,
    NotFoundError,
)

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields=set(products_service.PRODUCT_MUTABLE_FIELDS),
    required_on_create={"name", "slug", "price", "category_id"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _list_with_filters(raw: dict | None):
    try:
        filters = parse_product_filters(
            raw,
            default_limit=current_app.config["DEFAULT_PAGE_SIZE"],
            max_limit=current_app.config["MAX_PAGE_SIZE"],
        )
    except ValidationError as e:
        return {"error": str(e)}, 400

    return jsonify(products_service.list_products(filters))


@products_bp.get("")
def list_products():
    """
    List products with optional filters.

    Query params (all optional):
    - category_id, min_price, max_price, platform, region, featured, status, search
    - sort_by: name | price | created_at | featured (default: newest first)
    - sort_order: asc | desc (default asc when sort_by is given)
    - limit: 1..100 (default 20), offset: >= 0 (default 0)
    """
    return _list_with_filters(request.args.to_dict())


@products_bp.post("/search")
def search_products():
    """Same as GET /api/products, with filters in the JSON body."""
    payload = request.get_json(silent=True)
    return _list_with_filters(payload)


@products_bp.get("/featured")
def featured_products():
    """Featured products, newest first. Query param: limit (1..50, default 10)."""
    try:
        raw_limit = request.args.get("limit")
        limit = coerce_int("limit", raw_limit) if raw_limit is not None else None
        return jsonify(products_service.get_featured_products(limit))
    except ValidationError as e:
        return {"error": str(e)}, 400


@products_bp.get("/<string:slug>")
def get_product_route(slug: str):
    product = products_service.get_product_by_slug(slug)
    if product is None:
        return {"error": "Product not found"}, 404
    return product, 200


@products_bp.post("")
def create_product_route():
    """Create a new product. category_id must reference an existing category."""
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY)
        enforce_rules_product(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        created = products_service.create_product(patch=patch)
    except NotFoundError as e:
        return {"error": str(e), "details": e.details}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409
    except Exception:
        current_app.logger.exception("Failed to create product")
        return {"error": "Internal server error"}, 500

    return created, 201
