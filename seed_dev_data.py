"""Seed the development database with a demo seller profile and contractor."""

import os
import uuid

from app.backend.src.db import Base, get_engine, session_scope
from app.backend.src.services.seed import DEFAULT_USER_ID, seed_development_profile


def main() -> None:
    """Create tables (if needed) and ensure the demo profile exists."""

    engine = get_engine()
    Base.metadata.create_all(bind=engine)

    raw_user_id = os.environ.get("DEMO_USER_ID")
    user_id = uuid.UUID(raw_user_id) if raw_user_id else DEFAULT_USER_ID

    with session_scope() as session:
        result = seed_development_profile(session, user_id=user_id)

        print("✅ Development data ready!")
        profile_status = "created" if result.profile_created else "completed"
        contractor_status = "created" if result.contractor_created else "unchanged"
        print(
            f"Profile ({profile_status}): {result.profile.company_name} "
            f"[id={result.profile.id}, counter={result.profile.invoice_number_counter}]"
        )
        print(
            f"Contractor ({contractor_status}): {result.contractor.name} "
            f"[id={result.contractor.id}, nip={result.contractor.nip}]"
        )
        print()
        if raw_user_id:
            print(f"Seeded profile for user {raw_user_id}")
        else:
            print("Set DEMO_USER_ID to the identity provider's user id to seed your own account.")


if __name__ == "__main__":
    main()
