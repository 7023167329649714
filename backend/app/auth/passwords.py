"""Password hashing and verification using bcrypt directly.

bcrypt only looks at the first 72 bytes of a password (and bcrypt 5 refuses
longer input), so request schemas cap password length at ``MAX_PASSWORD_BYTES``.
"""

import bcrypt

from app.config import settings

MIN_PASSWORD_LENGTH = 6
MAX_PASSWORD_BYTES = 72


def hash_password(password: str) -> str:
    """Hash a plain-text password with ``settings.bcrypt_rounds`` work factor."""
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a plain-text password against a stored hash.

    A malformed stored hash counts as a mismatch rather than a server error.
    """
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        return False
