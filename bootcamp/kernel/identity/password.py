"""
Password hashing utilities using bcrypt.
"""

import bcrypt

# 12 rounds is the bcrypt default cost
BCRYPT_ROUNDS = 12

# bcrypt ignores everything past 72 bytes
_BCRYPT_MAX_BYTES = 72


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(password: str, rounds: int = BCRYPT_ROUNDS) -> str:
    """Hash a password with a fresh salt."""
    return bcrypt.hashpw(_encode(password), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Check a password against a stored hash.

    A malformed stored hash counts as a mismatch.
    """
    try:
        return bcrypt.checkpw(_encode(plain_password), hashed_password.encode("utf-8"))
    except ValueError:
        return False


def needs_rehash(hashed_password: str, rounds: int = BCRYPT_ROUNDS) -> bool:
    """True when the hash was made with a different cost ($2b$XX$...)."""
    parts = hashed_password.split("$")
    if len(parts) < 3 or not parts[2].isdigit():
        return True
    return int(parts[2]) != rounds
