"""
Access guard for dashboard navigation.

Decides, per navigation, whether an actor may view a path, must log in
first, or belongs on a different dashboard. The decision is pure: no I/O,
no caching, and it never raises.
"""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel

from bootcamp.config import get_settings
from bootcamp.kernel.models.user import COLLEGE_ROLES, UserRole
from bootcamp.logging_config import get_logger

logger = get_logger(__name__)


class RouteRequirement(str, Enum):
    """Which audience a path is meant for."""
    PUBLIC = "public"
    STUDENT = "student"
    ADMIN = "admin"
    COLLEGE = "college"


class AccessOutcome(str, Enum):
    ALLOW = "allow"
    REDIRECT_TO_LOGIN = "redirect_to_login"
    REDIRECT_TO_ROLE_HOME = "redirect_to_role_home"


class AccessDecision(BaseModel):
    """
    Result of a route check.

    ``target`` is where to send the actor (login page or role home);
    ``return_path`` is set for login redirects so the actor can come back.
    """

    outcome: AccessOutcome
    target: Optional[str] = None
    return_path: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.outcome == AccessOutcome.ALLOW


# Dashboard roots, matched on whole path segments
DASHBOARD_ROOTS: Dict[str, RouteRequirement] = {
    "/admin": RouteRequirement.ADMIN,
    "/college": RouteRequirement.COLLEGE,
    "/dashboard": RouteRequirement.STUDENT,
}

ROLE_HOMES: Dict[UserRole, str] = {
    UserRole.USER: "/dashboard",
    UserRole.ADMIN: "/admin",
    UserRole.COLLEGE_ADMIN: "/college",
    UserRole.TPO: "/college",
}


def _strip_query(path: str) -> str:
    for sep in ("?", "#"):
        path = path.split(sep, 1)[0]
    return path


def _normalize(path: str) -> str:
    """Drop query/fragment and trailing slashes; the root stays '/'."""
    return _strip_query(path).rstrip("/") or "/"


def requirement_for_path(path: str) -> RouteRequirement:
    """Derive the route requirement from the path prefix."""
    normalized = _normalize(path)
    for root, requirement in DASHBOARD_ROOTS.items():
        if normalized == root or normalized.startswith(root + "/"):
            return requirement
    return RouteRequirement.PUBLIC


def normalize_role(raw: Any) -> UserRole:
    """
    Map a stored role to ``UserRole``.

    Anything outside the known set is treated as ``USER`` and logged.
    """
    value = raw.value if hasattr(raw, "value") else raw
    try:
        return UserRole(value)
    except ValueError:
        logger.warning("Unknown role treated as user", extra={"role": str(value)})
        return UserRole.USER


def role_home(role: Any) -> str:
    return ROLE_HOMES[normalize_role(role)]


class AccessGuard:
    """
    Pure routing decisions for the three dashboards.

    An actor is anything with a ``role`` attribute; ``None`` means the
    visitor is not authenticated.
    """

    def __init__(self, login_path: str = "/login"):
        self.login_path = login_path

    def resolve_route(
        self,
        actor: Optional[Any],
        current_path: str,
        required_role: Optional[RouteRequirement] = None,
    ) -> AccessDecision:
        requirement = required_role or requirement_for_path(current_path)

        if requirement == RouteRequirement.PUBLIC:
            return AccessDecision(outcome=AccessOutcome.ALLOW)

        if actor is None:
            decision = AccessDecision(
                outcome=AccessOutcome.REDIRECT_TO_LOGIN,
                target=self.login_path,
                return_path=current_path,
            )
            return self._break_loop(decision, current_path)

        role = normalize_role(getattr(actor, "role", None))
        home = ROLE_HOMES[role]

        misrouted = (
            (requirement == RouteRequirement.ADMIN and role != UserRole.ADMIN)
            or (requirement == RouteRequirement.STUDENT and role in COLLEGE_ROLES)
            or (requirement == RouteRequirement.COLLEGE and role not in COLLEGE_ROLES)
        )
        if not misrouted:
            return AccessDecision(outcome=AccessOutcome.ALLOW)

        decision = AccessDecision(outcome=AccessOutcome.REDIRECT_TO_ROLE_HOME, target=home)
        return self._break_loop(decision, current_path)

    def landing_path(self, actor: Optional[Any], return_path: Optional[str] = None) -> str:
        """
        Where to send an actor right after login.

        The saved return path wins when it is a local path other than '/'
        and the actor may view it; otherwise the role home.
        """
        if actor is None:
            return self.login_path

        if (
            return_path
            and return_path.startswith("/")
            and not return_path.startswith("//")
            and _normalize(return_path) != "/"
            and self.resolve_route(actor, return_path).allowed
        ):
            return return_path

        return role_home(getattr(actor, "role", None))

    @staticmethod
    def _break_loop(decision: AccessDecision, current_path: str) -> AccessDecision:
        # A redirect back onto the current page would never settle
        if decision.target is not None and _normalize(decision.target) == _normalize(current_path):
            return AccessDecision(outcome=AccessOutcome.ALLOW)
        return decision


_guard: Optional[AccessGuard] = None


def get_access_guard() -> AccessGuard:
    """Get or create the default guard, configured from settings."""
    global _guard
    if _guard is None:
        _guard = AccessGuard(login_path=get_settings().login_path)
    return _guard


def resolve_route(
    actor: Optional[Any],
    current_path: str,
    required_role: Optional[RouteRequirement] = None,
) -> AccessDecision:
    return get_access_guard().resolve_route(actor, current_path, required_role)


def landing_path(actor: Optional[Any], return_path: Optional[str] = None) -> str:
    return get_access_guard().landing_path(actor, return_path)
