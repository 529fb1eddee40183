"""Password hashing and log-masking utilities."""

import bcrypt

from civicconnect.config import settings

# bcrypt only looks at the first 72 bytes of a password
BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    """Hash a password with a per-password salt."""
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(_password_bytes(password), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """
    Check a password against a stored hash.

    Malformed hashes never match; they are not an error for the caller.
    """
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode("utf-8"))
    except ValueError:
        return False


def mask_email(email: str) -> str:
    """
    Mask an email address for logging purposes.

    Example: jane.doe@example.com -> ja****@example.com
    """
    if not email or "@" not in email:
        return "****"

    local, domain = email.split("@", 1)
    return f"{local[:2]}****@{domain}"


def mask_token(token: str) -> str:
    """Keep only a short prefix of a bearer token for logs."""
    if not token or len(token) < 16:
        return "****"
    return f"{token[:8]}{'*' * 8}"
