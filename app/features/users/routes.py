"""
User feature routes.

Role changes and deactivation go through the authorization engine: the caller
needs the USER permission from the matrix and must be allowed to manage the
target account's role.
"""
from typing import Annotated
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.features.permissions.abac import Actor
from app.features.permissions.dependencies import permission_denied, require_action
from app.features.permissions.engine import can_assign_role, can_delete_user, can_edit_user
from app.features.permissions.rbac import Action, Resource
from app.features.users.models import User
from app.features.users.schemas import ProfileUpdate, RoleChange, UserDetail, UserSummary
from app.features.users.dependencies import actor_from_user, get_current_actor, get_current_user
from app.utils import get_logger


log = get_logger(__name__)
router = APIRouter(tags=["users"])


async def _get_user_or_404(db: AsyncSession, user_id: str) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )
    return user


@router.get("/me", response_model=UserDetail)
async def get_current_user_profile(
    user: Annotated[User, Depends(get_current_user)]
):
    """Profile of the calling user."""
    return user


@router.patch("/me", response_model=UserDetail)
async def update_current_user_profile(
    changes: ProfileUpdate,
    user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Edit own name, avatar or bio."""
    for key, value in changes.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(user, key, value)

    await db.commit()
    await db.refresh(user)
    return user


@router.get("/", response_model=list[UserSummary])
async def list_users(
    db: Annotated[AsyncSession, Depends(get_db)],
    actor: Annotated[Actor, Depends(require_action(Action.VIEW, Resource.USER))],
    skip: int = 0,
    limit: int = 50
):
    """List active users."""
    result = await db.execute(
        select(User)
        .where(User.is_active == True)  # noqa: E712
        .order_by(User.created_at)
        .offset(skip)
        .limit(limit)
    )
    return result.scalars().all()


@router.get("/{user_id}", response_model=UserDetail)
async def get_user_by_id(
    user_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    actor: Annotated[Actor, Depends(require_action(Action.VIEW, Resource.USER))]
):
    """Get a user profile by ID."""
    return await _get_user_or_404(db, user_id)


@router.patch("/{user_id}/role", response_model=UserDetail)
async def change_user_role(
    user_id: str,
    change: RoleChange,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """
    Change another user's role.

    The caller needs EDIT on USER and must be able to manage the target's
    current role (``can_edit_user``) and hand out the new one (``can_assign_role``).
    """
    user = await _get_user_or_404(db, user_id)

    if user.id == actor.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot modify your own role"
        )

    if not can_edit_user(actor, actor_from_user(user)) or not can_assign_role(actor, change.role):
        log.info("Rejected role change of user=%s to %s by user=%s", user_id, change.role.value, actor.id)
        raise permission_denied(Action.EDIT, Resource.USER)

    log.info("User %s role %s -> %s by user=%s", user_id, user.role.value, change.role.value, actor.id)
    user.role = change.role
    await db.commit()
    await db.refresh(user)
    return user


@router.delete("/{user_id}")
async def deactivate_user(
    user_id: str,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Deactivate a user account."""
    user = await _get_user_or_404(db, user_id)

    if user.id == actor.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot deactivate your own account"
        )

    if not can_delete_user(actor, actor_from_user(user)):
        raise permission_denied(Action.DELETE, Resource.USER)

    user.is_active = False
    await db.commit()

    log.info("User %s deactivated by user=%s", user_id, actor.id)
    return {"message": "User deactivated successfully"}
