# Overview: Service-layer operations for auth; password/PIN hashing and credential checks.

"""
Authentication Service

SECURITY NOTES:
- Passwords and PINs hashed with bcrypt (cost factor 12)
- Passwords: minimum 8 characters with upper, lower, digit and special char
- PINs: 4 to 6 digits, used for till login only
- Session tokens managed separately (see session_service.py)
"""

import re

import bcrypt

from ..extensions import db
from ..models import User
from posbackend.time_utils import utcnow


BCRYPT_ROUNDS = 12


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


class PinValidationError(Exception):
    pass


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character (!@#$%^&*(),.'":{}|<>)

    Raises PasswordValidationError if requirements not met.
    """
    if not password or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def validate_pin(pin: str) -> None:
    if not isinstance(pin, str) or not re.fullmatch(r"\d{4,6}", pin):
        raise PinValidationError("PIN must be 4 to 6 digits")


def _hash(secret: str) -> str:
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(secret.encode('utf-8'), salt).decode('utf-8')


def _check(secret: str, hashed: str | None) -> bool:
    if not secret or not hashed:
        return False
    try:
        return bcrypt.checkpw(secret.encode('utf-8'), hashed.encode('utf-8'))
    except ValueError:
        # Malformed hash in the database
        return False


def hash_password(password: str) -> str:
    """Validate strength, then bcrypt."""
    validate_password_strength(password)
    return _hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe via bcrypt.checkpw."""
    return _check(password, password_hash)


def hash_pin(pin: str) -> str:
    validate_pin(pin)
    return _hash(pin)


def verify_pin(pin: str, pin_hash: str | None) -> bool:
    return _check(pin, pin_hash)


def authenticate(username: str, password: str) -> User | None:
    """
    Username (or email) + password.

    Returns the User and stamps last_login_at, or None.
    """
    user = db.session.query(User).filter(
        db.or_(User.username == username, User.email == username),
        User.is_active.is_(True),
    ).first()

    if not user:
        return None

    if verify_password(password, user.password_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        return user

    return None


def authenticate_pin(username: str, pin: str) -> User | None:
    """Till login with username + PIN. Users without a PIN cannot use it."""
    user = db.session.query(User).filter(
        User.username == username,
        User.is_active.is_(True),
    ).first()

    if not user or not user.pin_hash:
        return None

    if verify_pin(pin, user.pin_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        return user

    return None
