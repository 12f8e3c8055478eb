"""
Permission Core - dashboard routing and ownership checks.
"""

from bootcamp.kernel.permissions.access_guard import (
    AccessDecision,
    AccessGuard,
    AccessOutcome,
    RouteRequirement,
    get_access_guard,
    landing_path,
    normalize_role,
    requirement_for_path,
    resolve_route,
    role_home,
)
from bootcamp.kernel.permissions.permission_service import (
    PermissionService,
    is_admin,
    is_operator,
)

__all__ = [
    "AccessDecision",
    "AccessGuard",
    "AccessOutcome",
    "RouteRequirement",
    "get_access_guard",
    "landing_path",
    "normalize_role",
    "requirement_for_path",
    "resolve_route",
    "role_home",
    "PermissionService",
    "is_admin",
    "is_operator",
]
