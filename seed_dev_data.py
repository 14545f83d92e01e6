"""Seed the development database with demo profiles for every role."""

from aurelius_claims.db import get_engine, session_scope
from aurelius_claims.models.base import Base
from aurelius_claims.services.seed import seed_demo_users


def main() -> None:
    """Create tables (if needed) and ensure the demo profiles exist."""

    engine = get_engine()
    Base.metadata.create_all(bind=engine)

    with session_scope() as session:
        results = seed_demo_users(session)
        session.flush()

        print("✅ Development data ready!")
        for result in results:
            profile_status = "created" if result.profile_created else "unchanged"
            role_status = "assigned" if result.role_updated else "unchanged"
            print(
                f"{result.profile.full_name} <{result.profile.email}> "
                f"[id={result.profile.id}, profile {profile_status}, "
                f"role={result.role} {role_status}]"
            )
        print()
        print("Issue tokens whose 'sub' matches one of the ids above to sign in as that user.")


if __name__ == "__main__":
    main()
