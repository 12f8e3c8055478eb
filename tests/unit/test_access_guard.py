"""Unit tests for dashboard access decisions."""

import logging
from types import SimpleNamespace

import pytest

from bootcamp.kernel.models.user import UserRole
from bootcamp.kernel.permissions.access_guard import (
    AccessGuard,
    AccessOutcome,
    RouteRequirement,
    requirement_for_path,
)

ROOTS = ["/dashboard", "/admin", "/college"]


def actor(role):
    return SimpleNamespace(role=role)


def same_page(a: str, b: str) -> bool:
    return a.split("?")[0].rstrip("/") == b.split("?")[0].rstrip("/")


@pytest.fixture
def guard() -> AccessGuard:
    return AccessGuard(login_path="/login")


class TestRequirementForPath:
    """Tests for path prefix matching."""

    def test_roots(self):
        assert requirement_for_path("/admin") == RouteRequirement.ADMIN
        assert requirement_for_path("/college/students") == RouteRequirement.COLLEGE
        assert requirement_for_path("/dashboard/courses?tab=1") == RouteRequirement.STUDENT

    def test_whole_segment_only(self):
        """'/administrator' is not under '/admin'."""
        assert requirement_for_path("/administrator") == RouteRequirement.PUBLIC
        assert requirement_for_path("/dashboards") == RouteRequirement.PUBLIC

    def test_public(self):
        assert requirement_for_path("/") == RouteRequirement.PUBLIC
        assert requirement_for_path("/courses/full-stack") == RouteRequirement.PUBLIC


class TestResolveRoute:
    """Tests for AccessGuard.resolve_route."""

    def test_public_always_allowed(self, guard):
        assert guard.resolve_route(None, "/courses").allowed
        assert guard.resolve_route(actor("tpo"), "/").allowed

    def test_unauthenticated_goes_to_login_with_return_path(self, guard):
        decision = guard.resolve_route(None, "/dashboard/courses")
        assert decision.outcome == AccessOutcome.REDIRECT_TO_LOGIN
        assert decision.target == "/login"
        assert decision.return_path == "/dashboard/courses"

    @pytest.mark.parametrize("role,path,target", [
        ("user", "/admin", "/dashboard"),
        ("user", "/college/reports", "/dashboard"),
        ("college_admin", "/dashboard", "/college"),
        ("tpo", "/admin/users", "/college"),
        ("admin", "/college", "/admin"),
    ])
    def test_misrouted_roles_go_home(self, guard, role, path, target):
        decision = guard.resolve_route(actor(role), path)
        assert decision.outcome == AccessOutcome.REDIRECT_TO_ROLE_HOME
        assert decision.target == target

    def test_admin_may_view_student_dashboard(self, guard):
        assert guard.resolve_route(actor("admin"), "/dashboard/courses").allowed

    @pytest.mark.parametrize("role", [r.value for r in UserRole])
    @pytest.mark.parametrize("path", ROOTS)
    def test_no_redirect_loops(self, guard, role, path):
        """Following one redirect always lands on an allowed page."""
        decision = guard.resolve_route(actor(role), path)
        if decision.allowed:
            return
        assert decision.target != path
        follow = guard.resolve_route(actor(role), decision.target)
        assert follow.allowed

    @pytest.mark.parametrize("role", [None, *UserRole])
    @pytest.mark.parametrize("path", ROOTS + ["/login", "/dashboard/", "/admin/?tab=2"])
    @pytest.mark.parametrize(
        "required",
        [RouteRequirement.ADMIN, RouteRequirement.STUDENT, RouteRequirement.COLLEGE],
    )
    def test_forced_requirement_never_targets_current_page(self, guard, role, path, required):
        visitor = None if role is None else actor(role)
        decision = guard.resolve_route(visitor, path, required_role=required)
        if decision.allowed:
            return
        assert same_page(decision.target, path) is False

    def test_login_page_with_forced_requirement_allows_anonymous(self, guard):
        decision = guard.resolve_route(None, "/login?next=/dashboard", required_role=RouteRequirement.STUDENT)
        assert decision.outcome == AccessOutcome.ALLOW

    @pytest.mark.parametrize("role,path,required", [
        (UserRole.USER, "/dashboard", RouteRequirement.ADMIN),
        (UserRole.ADMIN, "/admin/", RouteRequirement.COLLEGE),
        (UserRole.TPO, "/college", RouteRequirement.STUDENT),
        (UserRole.COLLEGE_ADMIN, "/college?x=1", RouteRequirement.ADMIN),
    ])
    def test_redirect_onto_own_home_becomes_allow(self, guard, role, path, required):
        decision = guard.resolve_route(actor(role), path, required_role=required)
        assert decision.outcome == AccessOutcome.ALLOW

    def test_redirect_to_current_page_becomes_allow(self, guard):
        """A forced requirement that points back at the current page does not loop."""
        decision = guard.resolve_route(actor("user"), "/dashboard/", required_role=RouteRequirement.ADMIN)
        assert decision.allowed

    def test_unknown_role_treated_as_user(self, guard, caplog):
        caplog.set_level(logging.WARNING)
        decision = guard.resolve_route(actor("superuser"), "/admin")
        assert decision.outcome == AccessOutcome.REDIRECT_TO_ROLE_HOME
        assert decision.target == "/dashboard"
        assert "Unknown role" in caplog.text

    def test_accepts_enum_role(self, guard):
        assert guard.resolve_route(actor(UserRole.ADMIN), "/admin").allowed


class TestLandingPath:
    """Tests for AccessGuard.landing_path."""

    def test_return_path_used_when_allowed(self, guard):
        assert guard.landing_path(actor("user"), "/dashboard/courses") == "/dashboard/courses"

    def test_root_return_path_goes_home(self, guard):
        assert guard.landing_path(actor("user"), "/") == "/dashboard"

    def test_no_return_path_goes_home(self, guard):
        assert guard.landing_path(actor("tpo"), None) == "/college"
        assert guard.landing_path(actor("admin"), "") == "/admin"

    def test_disallowed_return_path_goes_home(self, guard):
        assert guard.landing_path(actor("college_admin"), "/dashboard/progress") == "/college"

    def test_external_return_path_ignored(self, guard):
        assert guard.landing_path(actor("admin"), "//evil.example.com/admin") == "/admin"
        assert guard.landing_path(actor("admin"), "https://evil.example.com") == "/admin"

    def test_anonymous_goes_to_login(self, guard):
        assert guard.landing_path(None, "/dashboard") == "/login"
