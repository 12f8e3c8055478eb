"""
Permission service for enrollment ownership and operator checks.
"""

import uuid
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from bootcamp.kernel.errors import Forbidden
from bootcamp.kernel.events.event_store import EventStore
from bootcamp.kernel.models.base import enum_value
from bootcamp.kernel.models.event_log import EventType
from bootcamp.kernel.models.user import OPERATOR_ROLES, User, UserRole
from bootcamp.logging_config import get_logger

logger = get_logger(__name__)


def is_operator(user: User) -> bool:
    """Operators decide, revoke and re-issue certificates."""
    return enum_value(user.role) in {role.value for role in OPERATOR_ROLES}


def is_admin(user: User) -> bool:
    return enum_value(user.role) == UserRole.ADMIN.value


class PermissionService:
    """
    Checks who may act on an enrollment or certificate.

    Rules:
    - Enrollment-scoped operations: the enrollment owner, or an admin
    - Certificate decisions, revocation and re-issue: operators only

    Denials are logged at WARNING and recorded in the audit log before
    ``Forbidden`` is raised.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.event_store = EventStore(session)

    def can_access_enrollment(self, user: User, owner_id: uuid.UUID) -> bool:
        return user.id == owner_id or is_admin(user)

    async def require_enrollment_access(
        self,
        user: User,
        owner_id: uuid.UUID,
        entity_type: str,
        entity_id: uuid.UUID,
        action: str,
    ) -> None:
        if not self.can_access_enrollment(user, owner_id):
            await self.deny(user, entity_type, entity_id, action)

    async def require_operator(
        self,
        user: User,
        entity_type: str,
        entity_id: uuid.UUID,
        action: str,
    ) -> None:
        if not is_operator(user):
            await self.deny(user, entity_type, entity_id, action)

    async def deny(
        self,
        user: User,
        entity_type: str,
        entity_id: uuid.UUID,
        action: str,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        """Record a denied attempt and raise ``Forbidden``."""
        logger.warning(
            "Forbidden action",
            extra={
                "user_id": str(user.id),
                "role": enum_value(user.role),
                "action": action,
                "entity_type": entity_type,
                "entity_id": str(entity_id),
            },
        )
        await self.event_store.log(
            event_type=EventType.ACCESS_FORBIDDEN,
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user.id,
            payload={"action": action, "role": enum_value(user.role), **(details or {})},
        )
        # Denials are checked before any mutation; commit so the record
        # outlives the rollback that follows the raise.
        await self.session.commit()
        raise Forbidden(f"Not authorized to {action.replace('_', ' ')}")
