from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow

PRODUCT_STATUSES = ("active", "inactive", "out_of_stock")


def money(value) -> float | None:
    """Serialize a Numeric(10, 2) value as a JSON number."""
    if value is None:
        return None
    return float(value)


class Category(db.Model):
    """
    Catalog category.

    Categories form a tree through parent_id (depth unconstrained).
    sort_order is the primary listing order, name breaks ties.
    """
    __tablename__ = "categories"
    __table_args__ = (
        db.Index("ix_categories_sort_name", "sort_order", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    slug = db.Column(db.String(255), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)
    parent_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=True, index=True)
    image_url = db.Column(db.Text, nullable=True)
    sort_order = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    parent = db.relationship("Category", remote_side=[id], backref=db.backref("children", lazy=True))

    def __repr__(self) -> str:
        return f"<Category id={self.id} slug={self.slug!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "parent_id": self.parent_id,
            "image_url": self.image_url,
            "sort_order": self.sort_order,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Product(db.Model):
    """
    Product master data.

    Prices are stored as exact decimals (Numeric(10, 2)); original_price is
    display-only (strike-through price) and never used for pricing orders.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_status_featured", "status", "featured"),
        db.Index("ix_products_created_at", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    slug = db.Column(db.String(255), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)
    short_description = db.Column(db.Text, nullable=True)

    price = db.Column(db.Numeric(10, 2), nullable=False)
    original_price = db.Column(db.Numeric(10, 2), nullable=True)

    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=False, index=True)
    sku = db.Column(db.String(64), nullable=True, unique=True)
    stock_quantity = db.Column(db.Integer, nullable=False, default=0)

    # Copied onto order lines at checkout
    digital_key = db.Column(db.Text, nullable=True)

    platform = db.Column(db.String(64), nullable=True)
    region = db.Column(db.String(64), nullable=True)
    status = db.Column(
        db.Enum(*PRODUCT_STATUSES, name="product_status", native_enum=False),
        nullable=False,
        default="active",
    )
    featured = db.Column(db.Boolean, nullable=False, default=False)

    image_url = db.Column(db.Text, nullable=True)
    gallery_urls = db.Column(db.JSON, nullable=True)
    meta_title = db.Column(db.String(255), nullable=True)
    meta_description = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    category = db.relationship("Category", backref=db.backref("products", lazy=True))

    def __repr__(self) -> str:
        return f"<Product id={self.id} slug={self.slug!r} price={self.price}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "short_description": self.short_description,
            "price": money(self.price),
            "original_price": money(self.original_price),
            "category_id": self.category_id,
            "sku": self.sku,
            "stock_quantity": self.stock_quantity,
            "digital_key": self.digital_key,
            "platform": self.platform,
            "region": self.region,
            "status": self.status,
            "featured": self.featured,
            "image_url": self.image_url,
            "gallery_urls": self.gallery_urls,
            "meta_title": self.meta_title,
            "meta_description": self.meta_description,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
