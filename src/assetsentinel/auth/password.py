"""Password hashing utilities (bcrypt, salted, 72-byte input limit)."""

import bcrypt


def hash_password(password: str) -> str:
    """Hash a password with bcrypt.

    bcrypt includes a random salt and produces hashes starting with "$2b$".
    Passwords are truncated to 72 bytes (bcrypt's limit).
    """
    pw_bytes = password.encode("utf-8")[:72]
    return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=12)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8")[:72], password_hash.encode("utf-8"))
    except (ValueError, TypeError):
        return False
