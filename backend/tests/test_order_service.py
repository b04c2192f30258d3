"""
Order pricing and persistence tests.

Verifies:
- Totals use exact decimal arithmetic
- Unit price and digital key are snapshots taken at checkout
- A rejected order leaves no header, no lines and no consumed order number
- Order numbers are unique and sequential
"""

import re
from decimal import Decimal

import pytest
from sqlalchemy.exc import SQLAlchemyError

from storefront.extensions import db
from storefront.models import Order, OrderItem, OrderSequence, Product
from storefront.services import order_service
from storefront.services.order_service import (
    create_order,
    get_order,
    list_user_orders,
    order_total,
    price_line,
)
from storefront.validation import NotFoundError, ValidationError


BILLING = {
    "billing_email": "ada@example.com",
    "billing_first_name": "Ada",
    "billing_last_name": "Lovelace",
}


def checkout(user_id, items, **overrides):
    kwargs = {**BILLING, **overrides}
    return create_order(user_id=user_id, items=items, **kwargs)


# =============================================================================
# PRICING
# =============================================================================


class TestPricing:
    def test_price_line_is_exact(self):
        assert price_line(Decimal("29.99"), 2) == Decimal("59.98")
        assert price_line(Decimal("0.10"), 3) == Decimal("0.30")

    def test_order_total_has_no_penny_drift(self):
        total = order_total([Decimal("59.98"), Decimal("19.99")])
        assert total == Decimal("79.97")
        assert str(total) == "79.97"

    def test_order_total_independent_of_line_order(self):
        lines = [Decimal("0.10"), Decimal("0.20"), Decimal("0.30"), Decimal("19.99")]
        assert order_total(lines) == order_total(reversed(lines)) == Decimal("20.59")


# =============================================================================
# CHECKOUT
# =============================================================================


class TestCreateOrder:
    def test_checkout_scenario_totals_exactly(self, db_session, customer, make_product):
        a = make_product("starfall", "29.99")
        b = make_product("quiet-fields", "19.99")

        order = checkout(customer.id, [
            {"product_id": a.id, "quantity": 2},
            {"product_id": b.id, "quantity": 1},
        ])

        assert order["total_amount"] == 79.97
        stored = db_session.get(Order, order["id"])
        assert stored.total_amount == Decimal("79.97")

        items = db_session.query(OrderItem).filter_by(order_id=order["id"]).order_by(OrderItem.id).all()
        assert len(items) == 2
        assert [i.unit_price for i in items] == [Decimal("29.99"), Decimal("19.99")]
        assert [i.total_price for i in items] == [Decimal("59.98"), Decimal("19.99")]
        assert [i.quantity for i in items] == [2, 1]

    def test_order_defaults(self, customer, make_product):
        p = make_product("thing", "5.00")
        order = checkout(customer.id, [{"product_id": p.id, "quantity": 1}], payment_method="card")

        assert order["status"] == "pending"
        assert order["payment_status"] == "pending"
        assert order["currency"] == "USD"
        assert order["payment_method"] == "card"
        assert order["notes"] is None

    def test_order_number_format_and_sequence(self, customer, make_product):
        p = make_product("thing", "5.00")
        first = checkout(customer.id, [{"product_id": p.id, "quantity": 1}])
        second = checkout(customer.id, [{"product_id": p.id, "quantity": 1}])

        assert re.fullmatch(r"ORD-\d{8}-\d{6}", first["order_number"])
        assert first["order_number"].endswith("-000001")
        assert second["order_number"].endswith("-000002")
        assert first["order_number"] != second["order_number"]

    def test_unit_price_is_a_snapshot(self, db_session, customer, make_product):
        p = make_product("thing", "10.00", digital_key="KEY-123")
        order = checkout(customer.id, [{"product_id": p.id, "quantity": 3}])

        product = db_session.get(Product, p.id)
        product.price = Decimal("99.99")
        product.digital_key = "KEY-999"
        db_session.commit()

        stored = get_order(order["id"])
        assert stored["total_amount"] == 30.0
        assert stored["items"][0]["unit_price"] == 10.0
        assert stored["items"][0]["digital_key"] == "KEY-123"

    def test_duplicate_product_ids_become_separate_lines(self, db_session, customer, make_product):
        p = make_product("thing", "2.50")
        order = checkout(customer.id, [
            {"product_id": p.id, "quantity": 1},
            {"product_id": p.id, "quantity": 2},
        ])

        assert order["total_amount"] == 7.5
        assert db_session.query(OrderItem).filter_by(order_id=order["id"]).count() == 2

    def test_string_ids_and_quantities_accepted(self, customer, make_product):
        p = make_product("thing", "1.00")
        order = checkout(str(customer.id), [{"product_id": str(p.id), "quantity": "4"}])
        assert order["total_amount"] == 4.0


class TestCreateOrderRejections:
    def test_unknown_user_writes_nothing(self, db_session, make_product):
        p = make_product("thing", "5.00")

        with pytest.raises(NotFoundError, match="User not found") as exc:
            checkout(9999, [{"product_id": p.id, "quantity": 1}])

        assert exc.value.details == {"user_id": 9999}
        assert db_session.query(Order).count() == 0
        assert db_session.query(OrderItem).count() == 0

    def test_one_missing_product_aborts_whole_order(self, db_session, customer, make_product):
        a = make_product("a", "5.00")
        b = make_product("b", "6.00")

        with pytest.raises(NotFoundError) as exc:
            checkout(customer.id, [
                {"product_id": a.id, "quantity": 1},
                {"product_id": 424242, "quantity": 1},
                {"product_id": b.id, "quantity": 1},
            ])

        assert exc.value.details == {"product_ids": [424242]}
        assert db_session.query(Order).count() == 0
        assert db_session.query(OrderItem).count() == 0

    def test_failed_line_write_rolls_back_header(self, db_session, customer, make_product, monkeypatch):
        p = make_product("thing", "5.00")

        def broken_line(**kwargs):
            raise SQLAlchemyError("line insert failed")

        monkeypatch.setattr(order_service, "OrderItem", broken_line)

        with pytest.raises(SQLAlchemyError):
            checkout(customer.id, [{"product_id": p.id, "quantity": 1}])

        assert db_session.query(Order).count() == 0
        assert db_session.query(OrderSequence).count() == 0

    @pytest.mark.parametrize(
        "items",
        [
            [],
            None,
            "not-a-list",
            [{"product_id": 1}],
            [{"product_id": 1, "quantity": 0}],
            [{"product_id": 1, "quantity": -2}],
            [{"product_id": 1, "quantity": 1.5}],
            [{"product_id": True, "quantity": 1}],
            ["not-an-object"],
        ],
    )
    def test_malformed_items_rejected(self, db_session, customer, items):
        with pytest.raises(ValidationError):
            checkout(customer.id, items)
        assert db_session.query(Order).count() == 0

    def test_invalid_billing_email_rejected(self, customer, make_product):
        p = make_product("thing", "5.00")
        with pytest.raises(ValidationError, match="billing_email"):
            checkout(customer.id, [{"product_id": p.id, "quantity": 1}], billing_email="nope")

    @pytest.mark.parametrize(
        "overrides",
        [
            {"notes": {"gift": True}},
            {"payment_method": 42},
            {"payment_method": "x" * 65},
            {"billing_first_name": "A" * 129},
            {"billing_email": "a" * 250 + "@example.com"},
        ],
    )
    def test_bad_free_text_rejected_before_insert(self, db_session, customer, make_product, overrides):
        p = make_product("thing", "5.00")
        with pytest.raises(ValidationError):
            checkout(customer.id, [{"product_id": p.id, "quantity": 1}], **overrides)
        assert db_session.query(Order).count() == 0

    def test_blank_optional_text_stored_as_null(self, customer, make_product):
        p = make_product("thing", "5.00")
        order = checkout(customer.id, [{"product_id": p.id, "quantity": 1}], payment_method="  ", notes="")
        assert order["payment_method"] is None
        assert order["notes"] is None

    def test_total_above_storable_maximum_rejected(self, db_session, customer, make_product):
        p = make_product("pricey", "99999.99")
        with pytest.raises(ValidationError, match="Order total cannot exceed"):
            checkout(customer.id, [{"product_id": p.id, "quantity": 10_000}])
        assert db_session.query(Order).count() == 0
        assert db_session.query(OrderSequence).count() == 0

    def test_oversized_ids_rejected(self, db_session, customer):
        with pytest.raises(ValidationError, match="out of range"):
            checkout(customer.id, [{"product_id": 2**64, "quantity": 1}])
        with pytest.raises(ValidationError, match="out of range"):
            checkout(2**64, [{"product_id": 1, "quantity": 1}])

    def test_blank_billing_name_rejected(self, customer, make_product):
        p = make_product("thing", "5.00")
        with pytest.raises(ValidationError, match="billing_last_name"):
            checkout(customer.id, [{"product_id": p.id, "quantity": 1}], billing_last_name="  ")


# =============================================================================
# LOOKUPS
# =============================================================================


class TestOrderLookups:
    def test_get_order_includes_items(self, customer, make_product):
        p = make_product("thing", "5.00")
        order = checkout(customer.id, [{"product_id": p.id, "quantity": 2}])

        stored = get_order(order["id"])
        assert stored["order_number"] == order["order_number"]
        assert len(stored["items"]) == 1
        assert stored["items"][0]["total_price"] == 10.0

    def test_get_order_missing_returns_none(self, db_session):
        assert get_order(12345) is None

    def test_list_user_orders_newest_first(self, customer, make_product):
        p = make_product("thing", "5.00")
        first = checkout(customer.id, [{"product_id": p.id, "quantity": 1}])
        second = checkout(customer.id, [{"product_id": p.id, "quantity": 1}])

        orders = list_user_orders(customer.id)
        assert [o["id"] for o in orders] == [second["id"], first["id"]]
        assert "items" not in orders[0]

    def test_list_user_orders_other_user_empty(self, customer, db_session):
        assert list_user_orders(customer.id + 1) == []
