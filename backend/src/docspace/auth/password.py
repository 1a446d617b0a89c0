"""Argon2id password hashing with a server-side pepper.

The pepper (PASSWORD_PEPPER) is appended before hashing and never stored.
Hashes made with older cost parameters are upgraded on the next successful
signin, see ``needs_rehash``.
"""

from argon2 import PasswordHasher, Type
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

from ..config import settings

MIN_PASSWORD_LENGTH = 8

# OWASP baseline: 64 MiB memory, 3 passes, 4 lanes
HASH_PARAMETERS = {
    "memory_cost": 64 * 1024,
    "time_cost": 3,
    "parallelism": 4,
    "hash_len": 32,
    "salt_len": 16,
}

_hasher = PasswordHasher(type=Type.ID, **HASH_PARAMETERS)


def _peppered(password: str) -> str:
    if not settings.PASSWORD_PEPPER:
        raise ValueError("PASSWORD_PEPPER is not configured")
    return password + settings.PASSWORD_PEPPER


def hash_password(password: str) -> str:
    """Return an ``$argon2id$`` hash of the peppered password.

    Raises:
        ValueError: Empty password or missing pepper
    """
    if not password:
        raise ValueError("Password cannot be empty")
    return _hasher.hash(_peppered(password))


def verify_password(password: str, password_hash: str) -> bool:
    """False on mismatch or an unreadable hash."""
    if not password or not password_hash:
        return False
    try:
        return _hasher.verify(password_hash, _peppered(password))
    except (VerifyMismatchError, VerificationError, InvalidHashError):
        return False


def needs_rehash(password_hash: str) -> bool:
    return _hasher.check_needs_rehash(password_hash)


def validate_password_strength(password: str) -> tuple[bool, str]:
    """
    Example:
        >>> validate_password_strength("short")
        (False, 'Password must be at least 8 characters')
    """
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        return False, f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
    return True, ""
