"""
Wishlist service tests.

Verifies:
- Exactly one owner (user or session) per add
- Re-adding the same (owner, product) keeps a single row
- Removing an unknown id reports False and changes nothing
"""

import pytest

from storefront.models import WishlistItem
from storefront.services import wishlist_service
from storefront.services.wishlist_service import (
    add_to_wishlist,
    get_wishlist,
    remove_from_wishlist,
)
from storefront.validation import NotFoundError, ValidationError


class TestAddToWishlist:
    def test_add_for_user(self, db_session, customer, make_product):
        p = make_product("thing")
        item = add_to_wishlist(product_id=p.id, user_id=customer.id)

        assert item["user_id"] == customer.id
        assert item["session_id"] is None
        assert item["product_id"] == p.id

    def test_add_for_session(self, make_product):
        p = make_product("thing")
        item = add_to_wishlist(product_id=p.id, session_id="guest-abc")

        assert item["user_id"] is None
        assert item["session_id"] == "guest-abc"

    def test_same_user_product_twice_keeps_one_row(self, db_session, customer, make_product):
        p = make_product("thing")
        first = add_to_wishlist(product_id=p.id, user_id=customer.id)
        second = add_to_wishlist(product_id=p.id, user_id=customer.id)

        assert first["id"] == second["id"]
        assert db_session.query(WishlistItem).count() == 1

    def test_same_session_product_twice_keeps_one_row(self, db_session, make_product):
        p = make_product("thing")
        add_to_wishlist(product_id=p.id, session_id="guest-abc")
        add_to_wishlist(product_id=p.id, session_id="guest-abc")
        assert db_session.query(WishlistItem).count() == 1

    def test_lost_race_returns_stored_row(self, db_session, customer, make_product, monkeypatch):
        p = make_product("thing")
        stored = add_to_wishlist(product_id=p.id, user_id=customer.id)

        real_find = wishlist_service._find_existing
        calls = {"n": 0}

        def miss_first_lookup(*args):
            calls["n"] += 1
            if calls["n"] == 1:
                return None
            return real_find(*args)

        monkeypatch.setattr(wishlist_service, "_find_existing", miss_first_lookup)

        again = add_to_wishlist(product_id=p.id, user_id=customer.id)
        assert again["id"] == stored["id"]
        assert db_session.query(WishlistItem).count() == 1

    def test_user_and_session_rows_are_independent(self, db_session, customer, make_product):
        p = make_product("thing")
        add_to_wishlist(product_id=p.id, user_id=customer.id)
        add_to_wishlist(product_id=p.id, session_id="guest-abc")
        assert db_session.query(WishlistItem).count() == 2

    def test_requires_an_owner(self, make_product):
        p = make_product("thing")
        with pytest.raises(ValidationError, match="Either user_id or session_id"):
            add_to_wishlist(product_id=p.id)
        with pytest.raises(ValidationError):
            add_to_wishlist(product_id=p.id, session_id="   ")

    def test_rejects_both_owners(self, customer, make_product):
        p = make_product("thing")
        with pytest.raises(ValidationError, match="not both"):
            add_to_wishlist(product_id=p.id, user_id=customer.id, session_id="guest-abc")

    def test_overlong_session_id_rejected(self, db_session, make_product):
        p = make_product("thing")
        with pytest.raises(ValidationError, match="session_id"):
            add_to_wishlist(product_id=p.id, session_id="s" * 129)
        assert db_session.query(WishlistItem).count() == 0

    def test_unknown_product(self, db_session, customer):
        with pytest.raises(NotFoundError):
            add_to_wishlist(product_id=777, user_id=customer.id)
        assert db_session.query(WishlistItem).count() == 0


class TestGetWishlist:
    def test_filters_by_owner(self, customer, make_product):
        a = make_product("a")
        b = make_product("b")
        add_to_wishlist(product_id=a.id, user_id=customer.id)
        add_to_wishlist(product_id=b.id, session_id="guest-abc")

        assert [i["product_id"] for i in get_wishlist(user_id=customer.id)] == [a.id]
        assert [i["product_id"] for i in get_wishlist(session_id="guest-abc")] == [b.id]

    def test_user_or_session_when_both_given(self, customer, make_product):
        a = make_product("a")
        b = make_product("b")
        c = make_product("c")
        add_to_wishlist(product_id=a.id, user_id=customer.id)
        add_to_wishlist(product_id=b.id, session_id="guest-abc")
        add_to_wishlist(product_id=c.id, session_id="someone-else")

        rows = get_wishlist(user_id=customer.id, session_id="guest-abc")
        assert sorted(i["product_id"] for i in rows) == sorted([a.id, b.id])

    def test_newest_first(self, customer, make_product):
        a = make_product("a")
        b = make_product("b")
        first = add_to_wishlist(product_id=a.id, user_id=customer.id)
        second = add_to_wishlist(product_id=b.id, user_id=customer.id)

        assert [i["id"] for i in get_wishlist(user_id=customer.id)] == [second["id"], first["id"]]


class TestRemoveFromWishlist:
    def test_remove_existing(self, db_session, customer, make_product):
        p = make_product("thing")
        item = add_to_wishlist(product_id=p.id, user_id=customer.id)

        assert remove_from_wishlist(item["id"]) is True
        assert db_session.query(WishlistItem).count() == 0

    def test_remove_unknown_returns_false_and_keeps_rows(self, db_session, customer, make_product):
        p = make_product("thing")
        add_to_wishlist(product_id=p.id, user_id=customer.id)

        assert remove_from_wishlist(99999) is False
        assert db_session.query(WishlistItem).count() == 1
