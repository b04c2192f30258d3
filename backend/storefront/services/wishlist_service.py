# Overview: Service-layer operations for wishlists (signed-in users and guest sessions).

from __future__ import annotations

from flask import current_app
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Product, WishlistItem
from ..validation import NotFoundError, ValidationError


def _owner_filter(user_id: int | None, session_id: str | None):
    if user_id is not None:
        return WishlistItem.user_id == user_id
    return (WishlistItem.session_id == session_id) & WishlistItem.user_id.is_(None)


def _find_existing(user_id: int | None, session_id: str | None, product_id: int) -> WishlistItem | None:
    return (
        db.session.query(WishlistItem)
        .filter(_owner_filter(user_id, session_id), WishlistItem.product_id == product_id)
        .first()
    )


def add_to_wishlist(*, product_id: int, user_id: int | None = None, session_id: str | None = None) -> dict:
    """
    Save a product for a user or a guest session.

    Exactly one owner must be given. Adding an existing (owner, product) pair
    returns the stored row instead of inserting a second one; the unique
    constraints catch the case where two concurrent adds both miss the lookup.

    Raises:
        ValidationError: Neither or both of user_id / session_id given
        NotFoundError: Product does not exist
    """
    session_id = session_id.strip() if isinstance(session_id, str) else session_id
    if user_id is None and not session_id:
        raise ValidationError("Either user_id or session_id must be provided")
    if user_id is not None and session_id:
        raise ValidationError("Provide user_id or session_id, not both")
    if session_id and len(session_id) > WishlistItem.__table__.c.session_id.type.length:
        raise ValidationError("session_id is too long")

    if db.session.get(Product, product_id) is None:
        raise NotFoundError("Product not found", details={"product_id": product_id})

    existing = _find_existing(user_id, session_id, product_id)
    if existing:
        return existing.to_dict()

    item = WishlistItem(
        user_id=user_id,
        session_id=None if user_id is not None else session_id,
        product_id=product_id,
    )
    db.session.add(item)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        existing = _find_existing(user_id, session_id, product_id)
        if existing is None:
            raise
        current_app.logger.info("Wishlist add raced for product %s; returning stored row", product_id)
        return existing.to_dict()

    return item.to_dict()


def get_wishlist(*, user_id: int | None = None, session_id: str | None = None) -> list[dict]:
    """
    Wishlist rows for a user, a session, or either when both are given.

    With no owner at all every row is returned, newest first.
    """
    query = db.session.query(WishlistItem)
    if user_id is not None and session_id is not None:
        query = query.filter(or_(WishlistItem.user_id == user_id, WishlistItem.session_id == session_id))
    elif user_id is not None:
        query = query.filter(WishlistItem.user_id == user_id)
    elif session_id is not None:
        query = query.filter(WishlistItem.session_id == session_id)

    items = query.order_by(WishlistItem.created_at.desc(), WishlistItem.id.desc()).all()
    return [i.to_dict() for i in items]


def remove_from_wishlist(item_id: int) -> bool:
    """Delete a wishlist row by id. Returns False if it did not exist."""
    deleted = (
        db.session.query(WishlistItem)
        .filter(WishlistItem.id == item_id)
        .delete(synchronize_session=False)
    )
    db.session.commit()
    return deleted > 0
