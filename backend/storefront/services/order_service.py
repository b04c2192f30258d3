# Overview: Checkout pricing and order persistence.

"""
Order Service

create_order turns a checkout request into a persisted order:
1. validate the request shape (non-empty items, positive int quantities)
2. resolve the user, then every product in one IN query
3. price each line from the product's current price (snapshot on the line)
4. allocate an order number and write header + lines in ONE transaction

Any failure before commit rolls the whole unit back, so an order header is
never left without its lines.

Not handled here:
- stock_quantity is not checked or decremented (fulfilment concern)
- user.is_active is not checked here, only at login
- duplicate product ids become separate lines
"""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..extensions import db
from ..models import Order, OrderItem, OrderSequence, Product, User
from ..time_utils import utcnow
from ..validation import CENTS, MAX_PRICE, NotFoundError, ValidationError, coerce_int, validate_email

ORDER_SEQUENCE_KEY = "ORDER"


def price_line(unit_price: Decimal, quantity: int) -> Decimal:
    """Line total in exact decimal arithmetic, rounded to cents."""
    return (Decimal(unit_price) * quantity).quantize(CENTS, rounding=ROUND_HALF_UP)


def order_total(line_totals) -> Decimal:
    return sum(line_totals, Decimal("0.00")).quantize(CENTS, rounding=ROUND_HALF_UP)


def _validate_items(items) -> list[tuple[int, int]]:
    if not isinstance(items, list) or not items:
        raise ValidationError("items must be a non-empty list")

    lines = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError(f"items[{index}] must be an object")
        if "product_id" not in item or "quantity" not in item:
            raise ValidationError(f"items[{index}] requires product_id and quantity")
        product_id = coerce_int(f"items[{index}].product_id", item["product_id"])
        quantity = coerce_int(f"items[{index}].quantity", item["quantity"])
        if quantity <= 0:
            raise ValidationError(f"items[{index}].quantity must be > 0")
        lines.append((product_id, quantity))
    return lines


def _check_length(key: str, value: str) -> str:
    length = getattr(Order.__table__.c[key].type, "length", None)
    if length and len(value) > length:
        raise ValidationError(f"{key} exceeds max length {length}")
    return value


def _require_text(key: str, value) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{key} cannot be blank")
    return _check_length(key, value.strip())


def _optional_text(key: str, value) -> str | None:
    """None or blank means absent; anything else must be a string."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string")
    return _check_length(key, value.strip()) or None


def next_order_number(*, key: str = ORDER_SEQUENCE_KEY, prefix: str = "ORD", pad: int = 6) -> str:
    """
    Allocate the next order number inside the caller's transaction.

    The counter row is bumped with a single UPDATE, which takes the row lock
    for the rest of the transaction. The first allocation inserts the row in
    a savepoint; losing that insert race falls back to the UPDATE.
    """
    stmt = (
        update(OrderSequence)
        .where(OrderSequence.key == key)
        .values(next_number=OrderSequence.next_number + 1, updated_at=utcnow())
    )

    result = db.session.execute(stmt)
    if not result.rowcount:
        try:
            with db.session.begin_nested():
                db.session.add(OrderSequence(key=key, next_number=2))
            next_num = 1
        except IntegrityError:
            result = db.session.execute(stmt)
            if not result.rowcount:
                raise
            next_num = None
    else:
        next_num = None

    if next_num is None:
        current = (
            db.session.query(OrderSequence.next_number)
            .filter(OrderSequence.key == key)
            .scalar()
        )
        next_num = current - 1

    return f"{prefix}-{utcnow():%Y%m%d}-{next_num:0{pad}d}"


def create_order(
    *,
    user_id,
    items,
    billing_email,
    billing_first_name,
    billing_last_name,
    payment_method: str | None = None,
    notes: str | None = None,
) -> dict:
    """
    Price and persist an order atomically.

    Returns:
        Order dict (total_amount as a number)

    Raises:
        ValidationError: Malformed request (checked before any query), or a
            total above the largest storable amount
        NotFoundError: Unknown user, or any referenced product missing
    """
    user_id = coerce_int("user_id", user_id)
    lines = _validate_items(items)
    billing_email = _check_length("billing_email", validate_email("billing_email", billing_email))
    billing_first_name = _require_text("billing_first_name", billing_first_name)
    billing_last_name = _require_text("billing_last_name", billing_last_name)
    payment_method = _optional_text("payment_method", payment_method)
    notes = _optional_text("notes", notes)

    user = db.session.get(User, user_id)
    if user is None:
        current_app.logger.warning("Order rejected: user %s not found", user_id)
        raise NotFoundError("User not found", details={"user_id": user_id})

    requested_ids = {product_id for product_id, _ in lines}
    products = db.session.query(Product).filter(Product.id.in_(requested_ids)).all()
    if len(products) != len(requested_ids):
        missing = sorted(requested_ids - {p.id for p in products})
        current_app.logger.warning("Order rejected: products %s not found", missing)
        raise NotFoundError("One or more products not found", details={"product_ids": missing})

    product_map = {p.id: p for p in products}

    priced = []
    for product_id, quantity in lines:
        product = product_map[product_id]
        priced.append({
            "product_id": product_id,
            "quantity": quantity,
            "unit_price": product.price,
            "total_price": price_line(product.price, quantity),
            "digital_key": product.digital_key,
        })

    total_amount = order_total(line["total_price"] for line in priced)
    if total_amount > MAX_PRICE:
        raise ValidationError(f"Order total cannot exceed {MAX_PRICE}")

    try:
        order = Order(
            user_id=user.id,
            order_number=next_order_number(),
            status="pending",
            total_amount=total_amount,
            currency="USD",
            billing_email=billing_email,
            billing_first_name=billing_first_name,
            billing_last_name=billing_last_name,
            payment_method=payment_method,
            payment_status="pending",
            notes=notes,
        )
        db.session.add(order)
        db.session.flush()  # ensure order.id exists before lines reference it

        for line in priced:
            db.session.add(OrderItem(order_id=order.id, **line))

        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise

    current_app.logger.info(
        "Created order %s for user %s: %d lines, total %s",
        order.order_number, user.id, len(priced), total_amount,
    )
    return order.to_dict()


def list_user_orders(user_id: int) -> list[dict]:
    """Orders placed by a user, newest first."""
    orders = (
        db.session.query(Order)
        .filter(Order.user_id == user_id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )
    return [o.to_dict() for o in orders]


def get_order(order_id: int) -> dict | None:
    """Order with its line items, or None."""
    order = db.session.get(Order, order_id)
    if order is None:
        return None
    return order.to_dict(include_items=True)
