"""Password hashing and verification using Argon2id

Passwords are combined with a server-side PASSWORD_PEPPER before hashing.
Parameters follow the OWASP recommendation (64 MB, t=3, p=4).
"""

import os
import secrets

from argon2 import PasswordHasher, Type
from argon2.exceptions import VerifyMismatchError, VerificationError, InvalidHashError


_hasher = PasswordHasher(
    memory_cost=65536,  # 64 MB
    time_cost=3,
    parallelism=4,
    hash_len=32,
    salt_len=16,
    type=Type.ID,
)


def _get_pepper() -> str:
    pepper = os.getenv("PASSWORD_PEPPER")
    if not pepper:
        raise ValueError("PASSWORD_PEPPER environment variable is not set")
    return pepper


def hash_password(password: str) -> str:
    """Hash a password using Argon2id with global pepper.

    Raises:
        ValueError: If PASSWORD_PEPPER is not set or password is empty
    """
    if not password:
        raise ValueError("Password cannot be empty")
    return _hasher.hash(password + _get_pepper())


def verify_password(password: str, hash: str | None) -> bool:
    """Return True if password matches hash. A missing hash never matches."""
    if not password or not hash:
        return False

    try:
        _hasher.verify(hash, password + _get_pepper())
        return True
    except (VerifyMismatchError, VerificationError, InvalidHashError):
        return False


def generate_initial_password() -> str:
    """Random password for accounts provisioned by bulk import."""
    return secrets.token_urlsafe(18)
