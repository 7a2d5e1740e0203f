"""
FastAPI dependencies that resolve the caller into an authorization Actor.
"""
from typing import Annotated, Optional
from datetime import datetime, timezone
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.features.permissions.abac import ANONYMOUS, Actor
from app.features.permissions.rbac import Role
from app.features.users.models import User
from app.features.users.auth import verify_jwt_token, get_appwrite_user


security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)


def actor_from_user(user: User) -> Actor:
    """
    Snapshot a user record into the immutable Actor the engine consumes.

    Only active grants are carried over.
    """
    return Actor(
        id=user.id,
        role=Role(user.role),
        name=user.name,
        email=user.email,
        grants=frozenset(
            (grant.action, grant.resource) for grant in user.permissions if grant.is_active
        ),
    )


async def _load_user(token: str, db: AsyncSession) -> User:
    appwrite_user_id = verify_jwt_token(token)

    result = await db.execute(
        select(User).where(User.appwrite_id == appwrite_user_id)
    )
    user = result.scalar_one_or_none()

    # First sighting: confirm with Appwrite and create a GUEST account
    if user is None:
        identity = await get_appwrite_user(appwrite_user_id)
        user = User(
            appwrite_id=appwrite_user_id,
            email=identity["email"] or None,
            name=identity["name"],
            role=Role.GUEST,
            last_login_at=datetime.now(timezone.utc),
        )
        db.add(user)
    else:
        user.last_login_at = datetime.now(timezone.utc)

    await db.commit()
    await db.refresh(user)

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is deactivated",
        )

    return user


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)]
) -> User:
    """
    Authenticated user for the bearer token; 401/403 otherwise.

    Usage:
        @router.get("/me")
        async def get_me(user: User = Depends(get_current_user)):
            return user
    """
    return await _load_user(credentials.credentials, db)


async def get_optional_user(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(optional_security)],
    db: Annotated[AsyncSession, Depends(get_db)]
) -> Optional[User]:
    """Like get_current_user but None when no token is sent."""
    if credentials is None:
        return None
    return await _load_user(credentials.credentials, db)


async def get_current_actor(
    user: Annotated[User, Depends(get_current_user)]
) -> Actor:
    return actor_from_user(user)


async def get_optional_actor(
    user: Annotated[Optional[User], Depends(get_optional_user)]
) -> Actor:
    """Actor for the caller, or the anonymous guest when unauthenticated."""
    if user is None:
        return ANONYMOUS
    return actor_from_user(user)


def get_authorization_header(request) -> str:
    """
    Extract authorization header for rate limiting.
    Used with slowapi Limiter.
    """
    auth = request.headers.get("Authorization", "")
    return auth or "anonymous"
