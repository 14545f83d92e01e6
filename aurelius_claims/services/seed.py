"""Utilities for seeding development data."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.orm import Session

from aurelius_claims.models import Profile, UserRole

DEMO_USERS: tuple[tuple[str, str, str, str], ...] = (
    ("demo-lecturer", "lecturer@aurelius.example", "Demo Lecturer", "lecturer"),
    ("demo-coordinator", "coordinator@aurelius.example", "Demo Coordinator", "coordinator"),
    ("demo-manager", "manager@aurelius.example", "Demo Manager", "academic_manager"),
)


@dataclass
class SeedResult:
    """Information about a seeded profile and its role."""

    profile: Profile
    role: str
    profile_created: bool
    role_updated: bool


def seed_profile(
    session: Session,
    *,
    user_id: str,
    email: str,
    full_name: str,
    role: str,
) -> SeedResult:
    """Ensure a profile exists with exactly one role assignment.

    Existing profiles keep their id; their name, email and role are brought in
    line with the arguments.
    """

    profile = session.get(Profile, user_id)
    profile_created = False
    if profile is None:
        profile = Profile(id=user_id, email=email, full_name=full_name)
        session.add(profile)
        session.flush()
        profile_created = True
    else:
        if profile.email != email:
            profile.email = email
        if profile.full_name != full_name:
            profile.full_name = full_name

    assignments = session.query(UserRole).filter(UserRole.user_id == user_id).all()
    role_updated = [entry.role for entry in assignments] != [role]
    if role_updated:
        for entry in assignments:
            session.delete(entry)
        session.flush()
        session.add(UserRole(user_id=user_id, role=role))
        session.flush()

    return SeedResult(
        profile=profile,
        role=role,
        profile_created=profile_created,
        role_updated=role_updated,
    )


def seed_demo_users(session: Session) -> list[SeedResult]:
    """Provision one demo profile per recognised role."""

    return [
        seed_profile(session, user_id=user_id, email=email, full_name=name, role=role)
        for user_id, email, name, role in DEMO_USERS
    ]
