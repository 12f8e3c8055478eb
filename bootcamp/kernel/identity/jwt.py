"""
JWT token management for authentication.
"""

import hashlib
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from pydantic import BaseModel

from bootcamp.config import get_settings


class AccessTokenPayload(BaseModel):
    """JWT access token payload."""

    sub: str  # User ID
    email: str
    role: str
    exp: datetime
    iat: datetime
    jti: str


class RefreshTokenPayload(BaseModel):
    """JWT refresh token payload."""

    sub: str  # User ID
    exp: datetime
    iat: datetime
    jti: str
    type: str = "refresh"


class TokenPair(BaseModel):
    """Access and refresh token pair."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int  # Seconds until access token expires


class JWTManager:
    """
    JWT token creation and verification.

    Access tokens are short-lived; refresh tokens are long-lived and are
    stored hashed so they can be revoked.
    """

    def __init__(
        self,
        secret_key: Optional[str] = None,
        algorithm: Optional[str] = None,
        access_token_expire_minutes: Optional[int] = None,
        refresh_token_expire_days: Optional[int] = None,
    ):
        settings = get_settings()
        self.secret_key = secret_key or settings.secret_key
        self.algorithm = algorithm or settings.algorithm
        self.access_token_expire_minutes = access_token_expire_minutes or settings.access_token_expire_minutes
        self.refresh_token_expire_days = refresh_token_expire_days or settings.refresh_token_expire_days

    def _encode(self, claims: dict, lifetime: timedelta) -> tuple[str, datetime, str]:
        now = datetime.now(timezone.utc)
        expire = now + lifetime
        jti = str(uuid.uuid4())
        claims = {**claims, "exp": expire, "iat": now, "jti": jti}
        return jwt.encode(claims, self.secret_key, algorithm=self.algorithm), expire, jti

    def create_access_token(
        self,
        user_id: uuid.UUID,
        email: str,
        role: str,
        expires_delta: Optional[timedelta] = None,
    ) -> tuple[str, datetime, str]:
        """
        Create a new access token.

        Returns:
            Tuple of (token, expiration_datetime, token_id)
        """
        return self._encode(
            {"sub": str(user_id), "email": email, "role": role, "type": "access"},
            expires_delta or timedelta(minutes=self.access_token_expire_minutes),
        )

    def create_refresh_token(
        self,
        user_id: uuid.UUID,
        expires_delta: Optional[timedelta] = None,
    ) -> tuple[str, datetime, str]:
        """
        Create a new refresh token.

        Returns:
            Tuple of (token, expiration_datetime, token_id)
        """
        return self._encode(
            {"sub": str(user_id), "type": "refresh"},
            expires_delta or timedelta(days=self.refresh_token_expire_days),
        )

    def create_token_pair(self, user_id: uuid.UUID, email: str, role: str) -> TokenPair:
        """Create both access and refresh tokens."""
        access_token, access_exp, _ = self.create_access_token(user_id, email, role)
        refresh_token, _, _ = self.create_refresh_token(user_id)

        expires_in = int((access_exp - datetime.now(timezone.utc)).total_seconds())
        return TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=expires_in,
        )

    def _decode(self, token: str, expected_type: str) -> Optional[dict]:
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError:
            return None
        if payload.get("type") != expected_type:
            return None
        return payload

    def verify_access_token(self, token: str) -> Optional[AccessTokenPayload]:
        """Verify and decode an access token; None when invalid or expired."""
        payload = self._decode(token, "access")
        if payload is None:
            return None
        return AccessTokenPayload(
            sub=payload["sub"],
            email=payload["email"],
            role=payload["role"],
            exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            iat=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            jti=payload["jti"],
        )

    def verify_refresh_token(self, token: str) -> Optional[RefreshTokenPayload]:
        """Verify and decode a refresh token; None when invalid or expired."""
        payload = self._decode(token, "refresh")
        if payload is None:
            return None
        return RefreshTokenPayload(
            sub=payload["sub"],
            exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            iat=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            jti=payload["jti"],
        )

    @staticmethod
    def hash_token(token: str) -> str:
        """SHA-256 of a token, used for storing refresh tokens."""
        return hashlib.sha256(token.encode()).hexdigest()


_jwt_manager: Optional[JWTManager] = None


def get_jwt_manager() -> JWTManager:
    """Get or create the default JWT manager."""
    global _jwt_manager
    if _jwt_manager is None:
        _jwt_manager = JWTManager()
    return _jwt_manager


def verify_access_token(token: str) -> Optional[AccessTokenPayload]:
    """Verify an access token."""
    return get_jwt_manager().verify_access_token(token)
