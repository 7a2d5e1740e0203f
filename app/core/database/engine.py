"""
Database engine configuration and session management.

Holds the actor records the authorization engine is fed from: users with
their role and explicit permission grants. Content records (colleges, blogs,
programs) live in the CMS and are passed to the engine as snapshots.

SQLite via aiosqlite by default; point DATABASE_URL at
postgresql+asyncpg://... to switch without code changes.
"""
from collections.abc import AsyncGenerator
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

from app.core import config


def build_engine(url: str) -> AsyncEngine:
    """Create an async engine; SQLite gets NullPool to avoid sharing connections across tasks."""
    return create_async_engine(
        url,
        poolclass=NullPool if url.startswith("sqlite") else None,
        echo=False,
        future=True,
    )


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


engine = build_engine(config.SQLALCHEMY_DATABASE_URL)
AsyncSessionLocal = build_session_factory(engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency for getting async database sessions.

    Usage in FastAPI routes:
        @router.get("/{user_id}")
        async def get_user(user_id: str, db: AsyncSession = Depends(get_db)):
            return await db.get(User, user_id)
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_db(bind: AsyncEngine | None = None) -> None:
    """
    Create all tables. Called on application startup and by the seed script.
    """
    from app.core.database.base import Base

    # Import all models to ensure they're registered with SQLAlchemy
    from app.features.users.models import User  # noqa: F401
    from app.features.permissions.models import UserPermission  # noqa: F401

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
