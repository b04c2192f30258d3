"""
User registration and authentication tests.
"""

import pytest

from storefront.models import User
from storefront.services.auth_service import (
    authenticate,
    create_user,
    hash_password,
    verify_password,
)
from storefront.validation import ConflictError, ValidationError


class TestPasswordHashing:
    def test_hash_is_bcrypt_and_salted(self, app):
        first = hash_password("secret123")
        second = hash_password("secret123")

        assert first.startswith("$2")
        assert first != second
        assert "secret123" not in first

    def test_verify(self, app):
        hashed = hash_password("secret123")
        assert verify_password("secret123", hashed) is True
        assert verify_password("wrong-pass", hashed) is False

    def test_verify_malformed_hash_is_false(self):
        assert verify_password("secret123", "not-a-bcrypt-hash") is False

    def test_short_password_rejected(self, app):
        with pytest.raises(ValidationError, match="at least 6"):
            hash_password("abc")


class TestCreateUser:
    def test_creates_user_without_storing_plaintext(self, db_session, customer):
        stored = db_session.get(User, customer.id)
        assert stored.password_hash != "secret123"
        assert stored.is_admin is False
        assert stored.is_active is True
        assert "password_hash" not in stored.to_dict()

    def test_duplicate_email_conflicts(self, customer):
        with pytest.raises(ConflictError, match="Email already exists"):
            create_user(email="ada@example.com", password="another1", first_name="A", last_name="B")

    def test_duplicate_username_conflicts(self, db_session):
        create_user(email="one@example.com", password="secret123", first_name="A", last_name="B", username="gamer")
        with pytest.raises(ConflictError, match="Username already exists"):
            create_user(email="two@example.com", password="secret123", first_name="C", last_name="D", username="gamer")

    def test_blank_username_stored_as_null(self, db_session):
        user = create_user(email="one@example.com", password="secret123", first_name="A", last_name="B", username="  ")
        assert user.username is None

    def test_short_password_rejected_before_duplicate_check(self, customer):
        with pytest.raises(ValidationError, match="at least 6"):
            create_user(email="ada@example.com", password="abc", first_name="A", last_name="B")

    @pytest.mark.parametrize(
        "overrides",
        [
            {"email": "not-an-email"},
            {"password": "short"},
            {"first_name": ""},
            {"last_name": "   "},
            {"first_name": "A" * 129},
            {"username": "u" * 65},
            {"avatar_url": ["not", "a", "string"]},
        ],
    )
    def test_invalid_input_rejected(self, db_session, overrides):
        fields = {"email": "ok@example.com", "password": "secret123", "first_name": "A", "last_name": "B"}
        fields.update(overrides)
        with pytest.raises(ValidationError):
            create_user(**fields)
        assert db_session.query(User).count() == 0


class TestAuthenticate:
    def test_valid_credentials_set_last_login(self, db_session, customer):
        assert customer.last_login is None

        user = authenticate("ada@example.com", "secret123")
        assert user is not None
        assert user.id == customer.id
        assert user.last_login is not None

    def test_login_payload_is_minimal(self, customer):
        user = authenticate("ada@example.com", "secret123")
        assert set(user.to_login_dict()) == {"id", "email", "first_name", "last_name", "is_admin"}

    def test_wrong_password(self, customer):
        assert authenticate("ada@example.com", "wrong-pass") is None

    def test_unknown_email(self, db_session):
        assert authenticate("nobody@example.com", "secret123") is None

    def test_inactive_user(self, db_session, customer):
        customer.is_active = False
        db_session.commit()
        assert authenticate("ada@example.com", "secret123") is None
