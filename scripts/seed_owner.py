"""
Seed script to create or promote the site OWNER.

The OWNER role cannot be assigned through the API (nobody outranks it), so
the first owner account is written directly. Set OWNER_APPWRITE_ID and
OWNER_EMAIL (and optionally OWNER_NAME) in the environment or .env first.

Usage:
    uv run python -m scripts.seed_owner
"""
import asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import config
from app.core.database.engine import get_db, init_db
from app.features.permissions.rbac import Role
from app.features.users.models import User
from app.utils import get_logger


log = get_logger(__name__)


async def seed_owner(
    db: AsyncSession,
    appwrite_id: str,
    email: str,
    name: str = "Site Owner",
) -> User:
    """
    Create the owner account, or promote an existing account to OWNER.

    Returns:
        The owner User
    """
    result = await db.execute(select(User).where(User.appwrite_id == appwrite_id))
    user = result.scalar_one_or_none()

    if user is None:
        user = User(appwrite_id=appwrite_id, email=email, name=name, role=Role.OWNER)
        db.add(user)
        log.info("Created owner account %s", email)
    elif user.role is not Role.OWNER:
        log.info("Promoting %s from %s to OWNER", user.email, Role(user.role).value)
        user.role = Role.OWNER
        user.is_active = True
    else:
        log.debug("%s is already OWNER, skipping", user.email)

    await db.commit()
    await db.refresh(user)
    return user


async def main():
    """Main function to seed the owner account."""
    if not (config.OWNER_APPWRITE_ID and config.OWNER_EMAIL):
        raise SystemExit("OWNER_APPWRITE_ID and OWNER_EMAIL must be set")

    log.info("Initializing database tables...")
    await init_db()

    async for db in get_db():
        try:
            user = await seed_owner(db, config.OWNER_APPWRITE_ID, config.OWNER_EMAIL, config.OWNER_NAME)
            log.info("Owner seeding completed: %s (id=%s)", user.email, user.id)
        except Exception as e:
            log.error("Error seeding owner: %s", e, exc_info=True)
            await db.rollback()
            raise

        break  # Only use first session


if __name__ == "__main__":
    asyncio.run(main())
