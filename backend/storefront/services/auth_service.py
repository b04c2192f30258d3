# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

Passwords are hashed with bcrypt (per-record salt, cost from BCRYPT_ROUNDS).
Plaintext comparison is never used.

- create_user enforces email format, password length and email/username
  uniqueness
- authenticate returns None for unknown, inactive or wrong-password users
  and stamps last_login on success
"""
from __future__ import annotations

import bcrypt
from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import User
from ..time_utils import utcnow
from ..validation import ConflictError, ValidationError, validate_email

MIN_PASSWORD_LENGTH = 6


def validate_password_strength(password: str) -> None:
    """Raises ValidationError unless password is a string of >= 6 chars."""
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=current_app.config["BCRYPT_ROUNDS"])
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    Returns False for malformed hashes instead of raising.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def create_user(
    *,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    username: str | None = None,
    avatar_url: str | None = None,
    is_admin: bool = False,
) -> User:
    """
    Create new user with bcrypt password hashing.

    Raises:
        ValidationError: Bad email, short password, blank names or over-long fields
        ConflictError: Email or username already exists
    """
    email = validate_email("email", email)
    for key, value in (("first_name", first_name), ("last_name", last_name)):
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(f"{key} cannot be blank")
    validate_password_strength(password)
    username = username.strip() if isinstance(username, str) and username.strip() else None
    if avatar_url is not None and not isinstance(avatar_url, str):
        raise ValidationError("avatar_url must be a string")
    text_fields = {"email": email, "first_name": first_name.strip(), "last_name": last_name.strip(), "username": username}
    for key, value in text_fields.items():
        length = User.__table__.c[key].type.length
        if value and len(value) > length:
            raise ValidationError(f"{key} exceeds max length {length}")

    if db.session.query(User.id).filter(User.email == email).first():
        raise ConflictError("Email already exists")
    if username and db.session.query(User.id).filter(User.username == username).first():
        raise ConflictError("Username already exists")

    user = User(
        email=email,
        password_hash=hash_password(password),
        first_name=first_name.strip(),
        last_name=last_name.strip(),
        username=username,
        avatar_url=avatar_url,
        is_admin=is_admin,
    )

    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Email or username already exists")

    current_app.logger.info("Created user id=%s email=%s", user.id, user.email)
    return user


def authenticate(email: str, password: str) -> User | None:
    """
    Authenticate user with email and password.

    Returns User if credentials valid, None otherwise.
    Updates last_login timestamp on successful authentication.
    """
    user = db.session.query(User).filter(User.email == email).first()

    if not user or not user.is_active:
        return None

    if not verify_password(password, user.password_hash):
        return None

    user.last_login = utcnow()
    db.session.commit()
    return user
