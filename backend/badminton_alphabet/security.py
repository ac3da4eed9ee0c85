"""Password hashing for locally registered accounts (bcrypt)."""

from __future__ import annotations

import bcrypt

from .errors import ValidationError

MIN_PASSWORD_LENGTH = 8
# bcrypt only looks at the first 72 bytes of the secret.
MAX_PASSWORD_BYTES = 72


def validate_password(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"password must be at least {MIN_PASSWORD_LENGTH} characters")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"password must be at most {MAX_PASSWORD_BYTES} bytes")


def hash_password(password: str) -> str:
    validate_password(password)
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed_password: str | None) -> bool:
    if not hashed_password:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        # Malformed hash or over-long password.
        return False


__all__ = ["MIN_PASSWORD_LENGTH", "hash_password", "validate_password", "verify_password"]
