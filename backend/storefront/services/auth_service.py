# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

Accounts: exactly one developer (the owner, created through first-run
signup or the CLI) and any number of salesmen created by the developer.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from BCRYPT_ROUNDS, default 12)
- Minimum 6 characters required
- Session tokens managed separately (see session_service.py)
"""

import logging
import re

import bcrypt
from flask import current_app

from ..engine.errors import AuthError, LedgerError, ValidationError
from ..extensions import db
from ..models import User
from ..models.auth import ROLE_DEVELOPER, ROLE_SALESMAN
from ..time_utils import utcnow

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""


class DeveloperExistsError(LedgerError):
    """First-run signup attempted after the developer account exists."""

    code = "DEVELOPER_EXISTS"
    http_status = 403


def validate_password_strength(password: str) -> None:
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=current_app.config.get("BCRYPT_ROUNDS", 12))
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe bcrypt check. Malformed hashes never verify."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def _normalize_email(email) -> str:
    email = (email or "").strip().lower()
    if not EMAIL_RE.match(email):
        raise ValidationError("A valid email is required", {"field": "email"})
    return email


def developer_exists() -> bool:
    return db.session.query(User.id).filter_by(role=ROLE_DEVELOPER).first() is not None


def create_user(
    name: str,
    email: str,
    password: str,
    role: str = ROLE_SALESMAN,
    created_by_user_id: int | None = None,
) -> User:
    """
    Create new user with bcrypt password hashing.

    Raises ValidationError for a missing name, malformed or duplicate email,
    and PasswordValidationError for a weak password.
    """
    name = (name or "").strip()
    if not name:
        raise ValidationError("Name is required", {"field": "name"})
    if role not in (ROLE_DEVELOPER, ROLE_SALESMAN):
        raise ValidationError(f"Unknown role: {role}", {"field": "role"})
    email = _normalize_email(email)

    if db.session.query(User.id).filter_by(email=email).first():
        raise ValidationError("Email already registered", {"field": "email"})

    user = User(
        name=name,
        email=email,
        password_hash=hash_password(password),
        role=role,
        created_by_user_id=created_by_user_id,
    )
    db.session.add(user)
    db.session.commit()
    logger.info("Created %s account %s", role, email)
    return user


def signup_developer(name: str, email: str, password: str) -> User:
    """First-run signup. Only allowed while no developer account exists."""
    if developer_exists():
        raise DeveloperExistsError("Developer account already exists. Please log in.")
    return create_user(name, email, password, role=ROLE_DEVELOPER)


def create_salesman(name: str, email: str, password: str, created_by: User) -> User:
    if not created_by.is_developer:
        raise AuthError("Only the developer can create salesman accounts")
    return create_user(name, email, password, role=ROLE_SALESMAN, created_by_user_id=created_by.id)


def authenticate(email: str, password: str) -> User | None:
    """
    Authenticate by email and password.

    Returns User if credentials valid, None otherwise.
    Updates last_login_at timestamp on successful authentication.
    """
    email = (email or "").strip().lower()
    user = db.session.query(User).filter(
        User.email == email,
        User.is_active.is_(True),
    ).first()

    if not user or not password:
        return None

    if verify_password(password, user.password_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        return user

    return None
