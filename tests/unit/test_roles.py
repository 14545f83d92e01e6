"""Tests for session and role resolution."""

from __future__ import annotations

import os
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[2]))

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_claims.db")
os.environ.setdefault("AWS_S3_BUCKET", "local")
os.environ.setdefault("LOCAL_STORAGE_PATH", "/tmp/aurelius-claims-tests")
os.environ.setdefault("AUTH_JWT_SECRET", "test-secret")

import pytest

from aurelius_claims.core.errors import AuthError, PermissionDeniedError, RoleConfigurationError
from aurelius_claims.core.security import resolve_profile, resolve_session
from aurelius_claims.db import get_engine, session_scope
from aurelius_claims.models import Profile, UserRole
from aurelius_claims.models.base import Base
from aurelius_claims.services.roles import (
    Anonymous,
    Authenticated,
    Caller,
    Role,
    landing_route,
    require_approver,
    require_lecturer,
    resolve_role,
)
from aurelius_claims.services.seed import seed_demo_users, seed_profile


@pytest.fixture(autouse=True)
def setup_database() -> None:  # type: ignore[no-untyped-def]
    engine = get_engine()
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("lecturer", Role.LECTURER),
        ("Coordinator", Role.COORDINATOR),
        (" academic_manager ", Role.ACADEMIC_MANAGER),
        ("admin", Role.UNKNOWN),
        ("unknown", Role.UNKNOWN),
        ("", Role.UNKNOWN),
        (None, Role.UNKNOWN),
    ],
)
def test_role_parse(value: str | None, expected: Role) -> None:
    assert Role.parse(value) is expected


def test_landing_routes() -> None:
    assert landing_route(Role.LECTURER) == "/lecturer-dashboard"
    assert landing_route(Role.COORDINATOR) == "/approver-dashboard"
    assert landing_route(Role.ACADEMIC_MANAGER) == "/approver-dashboard"
    assert landing_route(Role.UNKNOWN) == "/"


def test_resolve_role_reads_single_assignment() -> None:
    with session_scope() as session:
        seed_profile(session, user_id="u-1", email="u1@example.com", full_name="U One", role="coordinator")

    with session_scope() as session:
        assert resolve_role(session, "u-1") is Role.COORDINATOR


def test_resolve_role_without_assignment_is_configuration_error() -> None:
    with session_scope() as session:
        session.add(Profile(id="u-2", email="u2@example.com", full_name="U Two"))

    with session_scope() as session:
        with pytest.raises(RoleConfigurationError) as exc_info:
            resolve_role(session, "u-2")

    assert exc_info.value.status_code == 403


def test_resolve_role_with_multiple_assignments_is_configuration_error() -> None:
    with session_scope() as session:
        session.add(Profile(id="u-3", email="u3@example.com", full_name="U Three"))
        session.add_all([UserRole(user_id="u-3", role="lecturer"), UserRole(user_id="u-3", role="coordinator")])

    with session_scope() as session:
        with pytest.raises(RoleConfigurationError):
            resolve_role(session, "u-3")


def test_resolve_role_maps_unrecognized_value_to_unknown() -> None:
    with session_scope() as session:
        seed_profile(session, user_id="u-4", email="u4@example.com", full_name="U Four", role="dean")

    with session_scope() as session:
        assert resolve_role(session, "u-4") is Role.UNKNOWN


def test_resolve_session_without_token_is_anonymous() -> None:
    with session_scope() as session:
        state = resolve_session(session, None)

    assert isinstance(state, Anonymous)
    assert state.redirect_to == "/auth"


def test_resolve_session_routes_by_role() -> None:
    with session_scope() as session:
        seed_demo_users(session)

    with session_scope() as session:
        lecturer = resolve_session(session, {"sub": "demo-lecturer"})
        manager = resolve_session(session, {"sub": "demo-manager"})

    assert isinstance(lecturer, Authenticated)
    assert lecturer.landing == "/lecturer-dashboard"
    assert lecturer.caller.role is Role.LECTURER
    assert lecturer.caller.email == "lecturer@aurelius.example"
    assert isinstance(manager, Authenticated)
    assert manager.landing == "/approver-dashboard"
    assert manager.caller.is_approver


def test_resolve_profile_provisions_missing_profile() -> None:
    payload = {
        "sub": "new-user",
        "email": "new@example.com",
        "user_metadata": {"full_name": "Nia New"},
    }

    with session_scope() as session:
        profile = resolve_profile(session, payload)

    assert profile.full_name == "Nia New"
    with session_scope() as session:
        assert session.get(Profile, "new-user").email == "new@example.com"


def test_resolve_profile_requires_subject_and_email() -> None:
    with session_scope() as session:
        with pytest.raises(AuthError):
            resolve_profile(session, {"email": "x@example.com"})
        with pytest.raises(AuthError):
            resolve_profile(session, {"sub": "no-email"})


def test_seed_profile_replaces_existing_roles() -> None:
    with session_scope() as session:
        seed_profile(session, user_id="u-5", email="u5@example.com", full_name="U Five", role="lecturer")
    with session_scope() as session:
        result = seed_profile(session, user_id="u-5", email="u5@example.com", full_name="U Five", role="coordinator")

    assert result.role_updated is True
    assert result.profile_created is False
    with session_scope() as session:
        assert resolve_role(session, "u-5") is Role.COORDINATOR


def test_role_guards() -> None:
    lecturer = Caller(user_id="a", email="a@example.com", full_name="A", role=Role.LECTURER)
    unknown = Caller(user_id="b", email="b@example.com", full_name="B", role=Role.UNKNOWN)
    coordinator = Caller(user_id="c", email="c@example.com", full_name="C", role=Role.COORDINATOR)

    assert require_lecturer(lecturer) is lecturer
    assert require_approver(coordinator) is coordinator
    with pytest.raises(PermissionDeniedError):
        require_lecturer(unknown)
    with pytest.raises(PermissionDeniedError):
        require_approver(unknown)
    with pytest.raises(PermissionDeniedError):
        require_approver(lecturer)


def test_resolve_profile_rejects_email_owned_by_another_subject() -> None:
    with session_scope() as session:
        seed_profile(session, user_id="u-6", email="shared@example.com", full_name="U Six", role="coordinator")

    with session_scope() as session:
        with pytest.raises(AuthError) as exc_info:
            resolve_profile(session, {"sub": "u-7", "email": "shared@example.com"})
        assert session.get(Profile, "u-7") is None

    assert exc_info.value.status_code == 401
    assert exc_info.value.detail == "Email already linked to another account"
    with session_scope() as session:
        assert session.get(Profile, "u-6").email == "shared@example.com"
