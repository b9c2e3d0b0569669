"""Admin account seeding.

Run ``python -m issueboard.seed`` to create (or promote) the admin account and
print its API token.
"""

from __future__ import annotations

import logging
import os

from issueboard.issue_store import IssueStore, User, UserRole

logger = logging.getLogger(__name__)

DEFAULT_ADMIN_NAME = "Admin User"
DEFAULT_ADMIN_EMAIL = "admin@example.com"


def ensure_admin(
    store: IssueStore,
    name: str = DEFAULT_ADMIN_NAME,
    email: str = DEFAULT_ADMIN_EMAIL,
) -> User:
    """Create the admin user, or make sure the existing one is an admin.

    Args:
        store: IssueStore to seed.
        name: Display name for a newly created admin.
        email: Email identifying the admin account.

    Returns:
        The admin user.
    """
    existing = store.get_user_by_email(email)
    if existing is None:
        admin = store.create_user(name=name, email=email, role=UserRole.ADMIN)
        logger.info("Admin user created: %s", email)
        return admin
    if existing.role != UserRole.ADMIN.value:
        existing = store.update_user_role(existing.id, UserRole.ADMIN)
        logger.info("Admin role ensured for %s", email)
    else:
        logger.info("Admin user already exists: %s", email)
    return existing


def main() -> None:
    from issueboard.logging import setup_logging  # noqa: PLC0415

    setup_logging(console=True)
    store = IssueStore(os.environ.get("ISSUEBOARD_DB_PATH", "issueboard.db"))
    try:
        admin = ensure_admin(
            store,
            name=os.environ.get("ISSUEBOARD_ADMIN_NAME", DEFAULT_ADMIN_NAME),
            email=os.environ.get("ISSUEBOARD_ADMIN_EMAIL", DEFAULT_ADMIN_EMAIL),
        )
        print(f"Admin token: {admin.api_token}", flush=True)
    finally:
        store.close()


if __name__ == "__main__":
    main()
