"""
FastAPI glue between routes and the authorization engine.

Implements:
- ``require_action``: dependency that rejects the request before the handler runs
- ``ensure_allowed``: instance-level check for handlers that first load the record
"""
from typing import Annotated, Optional
from fastapi import Depends, HTTPException, status

from app.features.permissions.abac import Actor, ResourceInstance
from app.features.permissions.engine import check
from app.features.permissions.rbac import Action, Resource
from app.features.users.dependencies import get_current_actor
from app.utils import get_logger


log = get_logger(__name__)


def permission_denied(action: Action, resource: Resource) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail=f"Permission denied: {action.value} on {resource.value}"
    )


def ensure_allowed(
    action: Action,
    resource: Resource,
    actor: Actor,
    instance: Optional[ResourceInstance] = None,
) -> None:
    """
    Raise 403 unless the actor may perform the action.

    Call this after fetching the record and before writing anything.

    Raises:
        HTTPException: 403 on denial
    """
    decision = check(action, resource, actor, instance)
    if not decision.allowed:
        log.info(
            "Rejected %s on %s for user=%s role=%s reason=%s",
            action.value, resource.value, actor.id, actor.role.value, decision.reason.value,
        )
        raise permission_denied(action, resource)


def require_action(action: Action, resource: Resource):
    """
    FastAPI dependency requiring a coarse (action, resource) permission.

    Usage:
        @router.get("/users/{user_id}/grants")
        async def list_grants(
            actor: Actor = Depends(require_action(Action.VIEW, Resource.PERMISSION))
        ):
            ...

    Returns:
        Dependency function that returns the caller's Actor if allowed

    Raises:
        HTTPException: 401 without a valid token, 403 if denied
    """
    async def permission_dependency(
        actor: Annotated[Actor, Depends(get_current_actor)]
    ) -> Actor:
        ensure_allowed(action, resource, actor)
        return actor

    return permission_dependency
