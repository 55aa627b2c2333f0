"""Password hashing and strength policy."""

from functools import lru_cache

import bcrypt

from ..domain.errors import WeakPassword

MIN_PASSWORD_LENGTH = 8
MAX_PASSWORD_BYTES = 72  # bcrypt input limit


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def ensure_strong_password(password: str) -> None:
    """Raise WeakPassword unless the password is long enough and mixes cases and digits."""
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise WeakPassword(f"Password must be at most {MAX_PASSWORD_BYTES} bytes long")
    if (
        len(password) < MIN_PASSWORD_LENGTH
        or not any(ch.islower() for ch in password)
        or not any(ch.isupper() for ch in password)
        or not any(ch.isdigit() for ch in password)
    ):
        raise WeakPassword()


@lru_cache(maxsize=1)
def _placeholder_hash() -> str:
    return hash_password("placeholder-for-unknown-accounts")


def spend_password_check(password: str) -> None:
    """Run one bcrypt comparison that always fails, for logins without a stored hash."""
    verify_password(password, _placeholder_hash())
