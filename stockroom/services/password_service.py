# Overview: Password strength rules and the injectable password hasher.

"""
Password hashing goes through a single PasswordHasher stored on
app.extensions, so every hash and every comparison in the application uses
the same implementation and tests can swap it out.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from BCRYPT_ROUNDS, default 12)
- Minimum 8 characters required
- Must contain uppercase, lowercase, digit, and special char
"""

from __future__ import annotations

import re

import bcrypt
from flask import Flask, current_app

from ..errors import ValidationError

EXTENSION_KEY = "stockroom.password_hasher"


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password) -> None:
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
    if not isinstance(password, str) or not password:
        raise PasswordValidationError("Password is required")

    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if len(password.encode("utf-8")) > 72:
        raise PasswordValidationError("Password must be at most 72 bytes long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>?_\-]", password):
        raise PasswordValidationError("Password must contain at least one special character")


class PasswordHasher:
    """Interface: hash() and verify(). BcryptPasswordHasher is the default."""

    def hash(self, password: str) -> str:
        raise NotImplementedError

    def verify(self, password: str, password_hash: str) -> bool:
        raise NotImplementedError


class BcryptPasswordHasher(PasswordHasher):
    def __init__(self, rounds: int = 12):
        self.rounds = rounds

    def hash(self, password: str) -> str:
        salt = bcrypt.gensalt(rounds=self.rounds)
        hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
        return hashed.decode('utf-8')  # Store as string in database

    def verify(self, password: str, password_hash: str) -> bool:
        """bcrypt.checkpw() compares in constant time."""
        if not isinstance(password, str) or not isinstance(password_hash, str):
            return False
        if not password or not password_hash:
            return False
        try:
            return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
        except ValueError:
            # Malformed stored hash
            return False


def install_hasher(app: Flask, hasher: PasswordHasher) -> None:
    app.extensions[EXTENSION_KEY] = hasher


def get_hasher() -> PasswordHasher:
    return current_app.extensions[EXTENSION_KEY]


def hash_password(password: str) -> str:
    """Validate strength, then hash with the installed hasher."""
    validate_password_strength(password)
    return get_hasher().hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return get_hasher().verify(password, password_hash)
