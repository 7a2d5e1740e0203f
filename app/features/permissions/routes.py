"""
Permission API routes.

Decision endpoints answer for the calling actor (anonymous callers are
evaluated as GUEST). Grant endpoints manage explicit per-user permissions and
are themselves guarded by the PERMISSION resource.
"""
from typing import Annotated, List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError

from app.core.database.engine import get_db
from app.features.permissions import engine as permission_engine
from app.features.permissions import ui
from app.features.permissions.abac import Actor
from app.features.permissions.dependencies import require_action
from app.features.permissions.models import UserPermission
from app.features.permissions.rbac import Action, Resource, matrix_entries
from app.features.permissions.schemas import (
    BatchCheckRequest,
    BatchCheckResponse,
    GrantCreate,
    GrantResponse,
    MatrixEntryResponse,
    PermissionCheckRequest,
    PermissionCheckResponse,
    PermissionSummaryResponse,
    VisibilityResponse,
)
from app.features.users.dependencies import actor_from_user, get_optional_actor
from app.features.users.models import User
from app.utils import get_logger


log = get_logger(__name__)
router = APIRouter()


# ============================================================================
# Decision Routes
# ============================================================================

@router.get("/matrix", response_model=List[MatrixEntryResponse])
async def get_matrix():
    """Minimum role for every (resource, action) pair. Null means OWNER only."""
    return [entry._asdict() for entry in matrix_entries()]


@router.get("/me", response_model=PermissionSummaryResponse)
async def get_my_permissions(
    actor: Annotated[Actor, Depends(get_optional_actor)]
):
    """Summary of what the caller may do."""
    return {"user_id": actor.id, **permission_engine.permission_summary(actor)}


@router.post("/check", response_model=PermissionCheckResponse)
async def check_permission(
    request: PermissionCheckRequest,
    actor: Annotated[Actor, Depends(get_optional_actor)]
):
    """Decide a single (action, resource[, instance]) question."""
    decision = permission_engine.check(
        request.action,
        request.resource,
        actor,
        request.instance.to_instance() if request.instance else None,
    )
    return PermissionCheckResponse.from_decision(decision)


def _batch_response(request: BatchCheckRequest, actor: Actor, require_all: bool) -> BatchCheckResponse:
    checks = [c.to_check() for c in request.checks]
    decisions = permission_engine.evaluate_checks(checks, actor)
    if require_all:
        allowed = permission_engine.has_all_permissions(checks, actor)
    else:
        allowed = permission_engine.has_any_permission(checks, actor)
    return BatchCheckResponse(
        allowed=allowed,
        results=[PermissionCheckResponse.from_decision(d) for d in decisions],
    )


@router.post("/check/any", response_model=BatchCheckResponse)
async def check_any_permission(
    request: BatchCheckRequest,
    actor: Annotated[Actor, Depends(get_optional_actor)]
):
    """True if at least one check passes; an empty list is denied."""
    return _batch_response(request, actor, require_all=False)


@router.post("/check/all", response_model=BatchCheckResponse)
async def check_all_permissions(
    request: BatchCheckRequest,
    actor: Annotated[Actor, Depends(get_optional_actor)]
):
    """True if every check passes; an empty list is allowed."""
    return _batch_response(request, actor, require_all=True)


@router.get("/ui/{resource}", response_model=VisibilityResponse)
async def get_visibility(
    resource: Resource,
    actor: Annotated[Actor, Depends(get_optional_actor)],
    actions: Optional[List[Action]] = Query(default=None, description="Toolbar actions; all actions if omitted")
):
    """Show/hide flags for the controls of one resource type."""
    return ui.visibility(resource, actor, actions)


# ============================================================================
# Grant Routes
# ============================================================================

async def _get_user_or_404(db: AsyncSession, user_id: str) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


async def _get_grant_or_404(db: AsyncSession, grant_id: str) -> UserPermission:
    grant = await db.get(UserPermission, grant_id)
    if grant is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Grant not found")
    return grant


def _ensure_can_delegate(actor: Actor, target: User, action: Action, resource: Resource) -> None:
    if not permission_engine.can_delegate_grant(actor, actor_from_user(target), action, resource):
        log.info(
            "Rejected grant of %s on %s to user=%s by user=%s", action.value, resource.value, target.id, actor.id
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Cannot grant {action.value} on {resource.value} to this user"
        )


@router.get("/users/{user_id}/grants", response_model=List[GrantResponse])
async def list_user_grants(
    user_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    actor: Annotated[Actor, Depends(require_action(Action.VIEW, Resource.PERMISSION))],
    include_inactive: bool = True
):
    """List explicit grants held by a user."""
    await _get_user_or_404(db, user_id)

    stmt = select(UserPermission).where(UserPermission.user_id == user_id)
    if not include_inactive:
        stmt = stmt.where(UserPermission.is_active == True)  # noqa: E712
    result = await db.execute(stmt.order_by(UserPermission.created_at))
    return result.scalars().all()


@router.post("/users/{user_id}/grants", response_model=GrantResponse, status_code=status.HTTP_201_CREATED)
async def create_user_grant(
    user_id: str,
    grant: GrantCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    actor: Annotated[Actor, Depends(require_action(Action.CREATE, Resource.PERMISSION))]
):
    """
    Give a user an explicit (action, resource) permission.

    The caller's role must already allow the pair and cover the target's role;
    only OWNER may grant to itself.
    """
    target = await _get_user_or_404(db, user_id)
    _ensure_can_delegate(actor, target, grant.action, grant.resource)

    db_grant = UserPermission(user_id=user_id, granted_by_id=actor.id, **grant.model_dump())
    db.add(db_grant)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"User already holds a grant for {grant.action.value} on {grant.resource.value}"
        )
    await db.refresh(db_grant)

    log.info(
        "Grant %s (%s on %s) given to user=%s by user=%s",
        db_grant.id, grant.action.value, grant.resource.value, user_id, actor.id,
    )
    return db_grant


@router.patch("/grants/{grant_id}/toggle", response_model=GrantResponse)
async def toggle_grant(
    grant_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    actor: Annotated[Actor, Depends(require_action(Action.EDIT, Resource.PERMISSION))]
):
    """Flip a grant between active and inactive."""
    db_grant = await _get_grant_or_404(db, grant_id)
    target = await _get_user_or_404(db, db_grant.user_id)
    _ensure_can_delegate(actor, target, db_grant.action, db_grant.resource)

    db_grant.is_active = not db_grant.is_active
    await db.commit()
    await db.refresh(db_grant)

    log.info("Grant %s set active=%s by user=%s", grant_id, db_grant.is_active, actor.id)
    return db_grant


@router.delete("/grants/{grant_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_grant(
    grant_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    actor: Annotated[Actor, Depends(require_action(Action.DELETE, Resource.PERMISSION))]
):
    """Remove a grant permanently."""
    db_grant = await _get_grant_or_404(db, grant_id)
    await db.delete(db_grant)
    await db.commit()

    log.info("Grant %s deleted by user=%s", grant_id, actor.id)
