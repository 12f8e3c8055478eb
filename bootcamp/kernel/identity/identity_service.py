"""
Identity service for user management operations.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from bootcamp.kernel.events.event_store import EventStore
from bootcamp.kernel.identity.jwt import JWTManager, TokenPair
from bootcamp.kernel.identity.password import hash_password, verify_password
from bootcamp.kernel.models.base import enum_value
from bootcamp.kernel.models.event_log import EventType
from bootcamp.kernel.models.user import RefreshToken, User, UserRole
from bootcamp.logging_config import get_logger

logger = get_logger(__name__)


class IdentityService:
    """
    Service for user identity operations.

    Handles user registration, authentication, token rotation and role
    changes. Roles are what the access guard routes on.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.jwt_manager = JWTManager()
        self.event_store = EventStore(session)

    async def register_user(
        self,
        email: str,
        password: str,
        full_name: str,
        role: UserRole = UserRole.USER,
        ip_address: Optional[str] = None,
    ) -> User:
        """
        Register a new user.

        Raises:
            ValueError: If email already exists
        """
        existing = await self.get_user_by_email(email)
        if existing:
            raise ValueError("Email already registered")

        user = User(
            email=email.lower().strip(),
            password_hash=hash_password(password),
            full_name=full_name.strip(),
            role=role.value,
        )

        self.session.add(user)
        await self.session.flush()  # Get the ID
        await self.session.refresh(user)

        await self.event_store.log(
            event_type=EventType.USER_REGISTERED,
            entity_type="user",
            entity_id=user.id,
            user_id=user.id,
            payload={"email": user.email, "role": enum_value(user.role)},
            ip_address=ip_address,
        )
        logger.info("User registered", extra={"user_id": str(user.id), "role": enum_value(user.role)})

        return user

    async def _issue_tokens(self, user: User) -> TokenPair:
        token_pair = self.jwt_manager.create_token_pair(
            user_id=user.id,
            email=user.email,
            role=enum_value(user.role),
        )
        self.session.add(
            RefreshToken(
                user_id=user.id,
                token_hash=JWTManager.hash_token(token_pair.refresh_token),
                expires_at=datetime.now(timezone.utc)
                + timedelta(days=self.jwt_manager.refresh_token_expire_days),
            )
        )
        return token_pair

    async def authenticate(
        self,
        email: str,
        password: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Optional[tuple[User, TokenPair]]:
        """
        Authenticate a user and return tokens.

        Returns:
            Tuple of (User, TokenPair) if successful, None otherwise
        """
        user = await self.get_user_by_email(email)
        if not user or not user.is_active:
            return None

        if not verify_password(password, user.password_hash):
            return None

        token_pair = await self._issue_tokens(user)
        user.last_login_at = datetime.now(timezone.utc)

        await self.event_store.log(
            event_type=EventType.USER_LOGGED_IN,
            entity_type="user",
            entity_id=user.id,
            user_id=user.id,
            payload={"method": "password"},
            ip_address=ip_address,
            user_agent=user_agent,
        )

        return user, token_pair

    async def refresh_tokens(self, refresh_token: str) -> Optional[tuple[User, TokenPair]]:
        """
        Exchange a refresh token for a new pair, revoking the old one.

        Returns:
            Tuple of (User, new TokenPair) if successful, None otherwise
        """
        payload = self.jwt_manager.verify_refresh_token(refresh_token)
        if not payload:
            return None

        query = select(RefreshToken).where(
            and_(
                RefreshToken.token_hash == JWTManager.hash_token(refresh_token),
                RefreshToken.revoked.is_(False),
            )
        )
        result = await self.session.execute(query)
        token_record = result.scalar_one_or_none()
        if not token_record:
            return None

        user = await self.get_user_by_id(uuid.UUID(payload.sub))
        if not user or not user.is_active:
            return None

        token_record.revoked = True
        return user, await self._issue_tokens(user)

    async def logout(
        self,
        user_id: uuid.UUID,
        refresh_token: Optional[str] = None,
        revoke_all: bool = False,
        ip_address: Optional[str] = None,
    ) -> None:
        """Revoke one refresh token, or all of a user's tokens."""
        query = select(RefreshToken).where(
            and_(RefreshToken.user_id == user_id, RefreshToken.revoked.is_(False))
        )
        if not revoke_all:
            if not refresh_token:
                query = None
            else:
                query = query.where(RefreshToken.token_hash == JWTManager.hash_token(refresh_token))

        if query is not None:
            result = await self.session.execute(query)
            for token in result.scalars().all():
                token.revoked = True

        await self.event_store.log(
            event_type=EventType.USER_LOGGED_OUT,
            entity_type="user",
            entity_id=user_id,
            user_id=user_id,
            payload={"revoke_all": revoke_all},
            ip_address=ip_address,
        )

    async def get_user_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        """Get a user by ID."""
        result = await self.session.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_user_by_email(self, email: str) -> Optional[User]:
        """Get a user by email."""
        result = await self.session.execute(select(User).where(User.email == email.lower().strip()))
        return result.scalar_one_or_none()

    async def change_role(
        self,
        user_id: uuid.UUID,
        new_role: UserRole,
        changed_by: uuid.UUID,
        ip_address: Optional[str] = None,
    ) -> Optional[User]:
        """
        Change a user's role (admin only; enforced by the caller).

        Returns:
            The updated user, or None if not found
        """
        user = await self.get_user_by_id(user_id)
        if not user:
            return None

        old_role = enum_value(user.role)
        user.role = new_role.value

        await self.event_store.log(
            event_type=EventType.USER_ROLE_CHANGED,
            entity_type="user",
            entity_id=user_id,
            user_id=changed_by,
            payload={"previous_role": old_role, "new_role": new_role.value},
            ip_address=ip_address,
        )
        logger.info(
            "User role changed",
            extra={"user_id": str(user_id), "previous_role": old_role, "new_role": new_role.value},
        )

        return user
