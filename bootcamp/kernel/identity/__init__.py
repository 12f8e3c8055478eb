"""
Identity Core - Authentication and user management.
"""

from bootcamp.kernel.identity.password import hash_password, verify_password, needs_rehash
from bootcamp.kernel.identity.jwt import (
    JWTManager,
    TokenPair,
    AccessTokenPayload,
    verify_access_token,
)
from bootcamp.kernel.identity.identity_service import IdentityService

__all__ = [
    "hash_password",
    "verify_password",
    "needs_rehash",
    "JWTManager",
    "TokenPair",
    "AccessTokenPayload",
    "verify_access_token",
    "IdentityService",
]
