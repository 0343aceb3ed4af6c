"""
Password Hashing
================

Bcrypt hashing for admin account passwords. The cost factor comes from
`WARRANTY_PASSWORD_HASH_ROUNDS`.

Version: 0.1.0
"""

from functools import lru_cache

from passlib.context import CryptContext

from shared.config import settings


@lru_cache
def _pwd_context() -> CryptContext:
    return CryptContext(
        schemes=["bcrypt"],
        deprecated="auto",
        bcrypt__rounds=settings.warranty.password_hash_rounds,
    )


def hash_password(password: str) -> str:
    """
    Hash an admin password.

    Returns:
        str: Bcrypt hash of the password
    """
    return _pwd_context().hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """True if the password matches the stored hash."""
    return _pwd_context().verify(plain_password, hashed_password)
