# Overview: Service-layer operations for products; encapsulates business logic and database work.

"""
Products Service

- list_products runs the filter compiler (see product_filters.py)
- create_product validates the category reference and slug/sku uniqueness
- products are never hard-deleted
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Category, Product
from ..validation import ConflictError, NotFoundError, ValidationError
from .product_filters import ProductFilters, build_product_query

PRODUCT_MUTABLE_FIELDS = {
    "name",
    "slug",
    "description",
    "short_description",
    "price",
    "original_price",
    "category_id",
    "sku",
    "stock_quantity",
    "digital_key",
    "platform",
    "region",
    "status",
    "featured",
    "image_url",
    "gallery_urls",
    "meta_title",
    "meta_description",
}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def list_products(filters: ProductFilters | None = None) -> list[dict]:
    """
    Products matching every present filter, ordered and windowed.

    An empty ProductFilters returns the newest DEFAULT_LIMIT products.
    """
    if filters is None:
        filters = ProductFilters()
    products = build_product_query(filters).all()
    return [p.to_dict() for p in products]


def get_product_by_slug(slug: str) -> dict | None:
    product = db.session.query(Product).filter(Product.slug == slug).first()
    if product is None:
        return None
    return product.to_dict()


def get_featured_products(limit: int | None = None) -> list[dict]:
    """Featured products, newest first."""
    max_limit = current_app.config["MAX_FEATURED_LIMIT"]
    if limit is None:
        limit = current_app.config["DEFAULT_FEATURED_LIMIT"]
    if limit < 1 or limit > max_limit:
        raise ValidationError(f"limit must be between 1 and {max_limit}")

    products = (
        db.session.query(Product)
        .filter(Product.featured.is_(True))
        .order_by(Product.created_at.desc(), Product.id.desc())
        .limit(limit)
        .all()
    )
    return [p.to_dict() for p in products]


def create_product(*, patch: dict) -> dict:
    """
    Create product using a validated patch dict.

    Raises:
        NotFoundError: If category_id does not exist
        ConflictError: If slug or sku is already taken
    """
    category_id = patch.get("category_id")
    if db.session.get(Category, category_id) is None:
        raise NotFoundError(
            f"Category with id {category_id} does not exist",
            details={"category_id": category_id},
        )

    if db.session.query(Product.id).filter(Product.slug == patch["slug"]).first():
        raise ConflictError("Product slug already exists.")

    sku = patch.get("sku") or None
    patch = {**patch, "sku": sku}
    if sku and db.session.query(Product.id).filter(Product.sku == sku).first():
        raise ConflictError("SKU already exists.")

    p = Product()
    apply_product_patch(p, {k: v for k, v in patch.items() if v is not None})

    db.session.add(p)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Product slug or SKU already exists.")

    current_app.logger.info("Created product id=%s slug=%s price=%s", p.id, p.slug, p.price)
    return p.to_dict()
