from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from .catalog import money

ORDER_STATUSES = ("pending", "confirmed", "processing", "shipped", "delivered", "cancelled")


class Order(db.Model):
    """
    Checkout order header.

    Created together with its OrderItem rows in a single transaction and not
    mutated afterwards. total_amount is the exact sum of line totals.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_user_created", "user_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    # Human-readable order number (e.g., "ORD-20260101-000042")
    order_number = db.Column(db.String(64), nullable=False, unique=True)

    status = db.Column(
        db.Enum(*ORDER_STATUSES, name="order_status", native_enum=False),
        nullable=False,
        default="pending",
    )
    total_amount = db.Column(db.Numeric(10, 2), nullable=False)
    currency = db.Column(db.String(3), nullable=False, default="USD")

    # Billing contact may differ from the user's own profile
    billing_email = db.Column(db.String(255), nullable=False)
    billing_first_name = db.Column(db.String(128), nullable=False)
    billing_last_name = db.Column(db.String(128), nullable=False)

    payment_method = db.Column(db.String(64), nullable=True)
    payment_status = db.Column(db.String(32), nullable=False, default="pending")
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    user = db.relationship("User", backref=db.backref("orders", lazy=True))

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "user_id": self.user_id,
            "order_number": self.order_number,
            "status": self.status,
            "total_amount": money(self.total_amount),
            "currency": self.currency,
            "billing_email": self.billing_email,
            "billing_first_name": self.billing_first_name,
            "billing_last_name": self.billing_last_name,
            "payment_method": self.payment_method,
            "payment_status": self.payment_status,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class OrderItem(db.Model):
    """
    Individual line on an order.

    unit_price and digital_key are snapshots taken at checkout; later product
    changes never alter them.
    """
    __tablename__ = "order_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(10, 2), nullable=False)
    total_price = db.Column(db.Numeric(10, 2), nullable=False)
    digital_key = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    order = db.relationship(
        "Order",
        backref=db.backref("items", lazy=True, order_by="OrderItem.id"),
    )
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price": money(self.unit_price),
            "total_price": money(self.total_price),
            "digital_key": self.digital_key,
            "created_at": to_utc_z(self.created_at),
        }


class OrderSequence(db.Model):
    """
    Atomic counters for human-readable order numbers.

    One row per key; allocation increments next_number in place.
    """
    __tablename__ = "order_sequences"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(32), nullable=False, unique=True)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
