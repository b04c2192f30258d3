# Overview: Service-layer operations for catalog categories.

from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Category
from ..validation import ConflictError, NotFoundError

CATEGORY_MUTABLE_FIELDS = {"name", "slug", "description", "parent_id", "image_url", "sort_order", "is_active"}


def list_categories() -> list[dict]:
    """All categories (active and inactive), by sort_order then name."""
    categories = (
        db.session.query(Category)
        .order_by(Category.sort_order.asc(), Category.name.asc(), Category.id.asc())
        .all()
    )
    return [c.to_dict() for c in categories]


def create_category(*, patch: dict) -> dict:
    """
    Create category using a validated patch dict.

    Raises:
        NotFoundError: If parent_id references a missing category
        ConflictError: If the slug is already taken
    """
    parent_id = patch.get("parent_id")
    if parent_id is not None and db.session.get(Category, parent_id) is None:
        raise NotFoundError("Parent category not found", details={"parent_id": parent_id})

    slug = patch.get("slug")
    if db.session.query(Category.id).filter(Category.slug == slug).first():
        raise ConflictError("Category slug already exists.")

    category = Category()
    for k, v in patch.items():
        if k in CATEGORY_MUTABLE_FIELDS and v is not None:
            setattr(category, k, v)

    db.session.add(category)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Category slug already exists.")

    current_app.logger.info("Created category id=%s slug=%s", category.id, category.slug)
    return category.to_dict()
