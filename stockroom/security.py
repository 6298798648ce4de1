"""
Password hashing for Stockroom accounts.

New hashes are Argon2id (argon2-cffi) and are stored in the user's
``password`` field as the encoded ``$argon2id$...`` string. Records carrying
a plain value (collections written before hashing was introduced) are still
verified by constant-time comparison and rehashed on the next login.
"""

from __future__ import annotations

import hmac

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

_pwd_hasher = PasswordHasher()


def hash_password(password: str) -> str:
    """Hash a password for storing in the users collection (Argon2id)."""
    return _pwd_hasher.hash(password)


def is_hashed(value: str) -> bool:
    return isinstance(value, str) and value.startswith("$argon2")


def verify_password(password: str, stored: str) -> bool:
    """Return True if the password matches the stored value."""
    if not password or not stored:
        return False

    if is_hashed(stored):
        try:
            return _pwd_hasher.verify(stored, password)
        except (VerifyMismatchError, VerificationError, InvalidHashError):
            return False

    # Plain legacy value
    return hmac.compare_digest(password.encode("utf-8"), stored.encode("utf-8"))


def needs_rehash(stored: str) -> bool:
    """Whether a stored value should be replaced by a fresh hash."""
    return not is_hashed(stored) or _pwd_hasher.check_needs_rehash(stored)
