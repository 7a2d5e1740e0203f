"""
Pydantic schemas for the permissions API.

Unknown role/resource/action tags are rejected here, at the edge, so the
engine only ever sees well-typed values.
"""
from datetime import datetime
from typing import Dict, List, Optional
from pydantic import BaseModel, Field, ConfigDict

from app.features.permissions.abac import GrantDecision, GrantReason, ResourceInstance
from app.features.permissions.engine import PermissionCheck
from app.features.permissions.rbac import Action, Resource, Role


# ============================================================================
# Decision Schemas
# ============================================================================

class ResourceInstanceSchema(BaseModel):
    """Instance attributes used by ABAC refinement."""
    owner_id: Optional[str] = Field(None, description="Id of the user owning the record")
    is_public: Optional[bool] = Field(None, description="False restricts VIEW to owner and ADMIN+")
    is_active: Optional[bool] = Field(None, description="Passed through; does not gate any action")

    def to_instance(self) -> ResourceInstance:
        return ResourceInstance(owner_id=self.owner_id, is_public=self.is_public, is_active=self.is_active)


class PermissionCheckRequest(BaseModel):
    """One authorization question for the calling actor."""
    action: Action
    resource: Resource
    instance: Optional[ResourceInstanceSchema] = Field(None, description="Omit for a coarse check")

    def to_check(self) -> PermissionCheck:
        return PermissionCheck(
            action=self.action,
            resource=self.resource,
            instance=self.instance.to_instance() if self.instance else None,
        )


class PermissionCheckResponse(BaseModel):
    action: Action
    resource: Resource
    allowed: bool
    reason: GrantReason

    @classmethod
    def from_decision(cls, decision: GrantDecision) -> "PermissionCheckResponse":
        return cls(
            action=decision.action,
            resource=decision.resource,
            allowed=decision.allowed,
            reason=decision.reason,
        )


class BatchCheckRequest(BaseModel):
    checks: List[PermissionCheckRequest] = Field(default_factory=list)


class BatchCheckResponse(BaseModel):
    """Combined answer plus the per-check breakdown."""
    allowed: bool
    results: List[PermissionCheckResponse] = []


# ============================================================================
# Matrix / Summary Schemas
# ============================================================================

class MatrixEntryResponse(BaseModel):
    resource: Resource
    action: Action
    minimum_role: Optional[Role] = Field(None, description="Null means only OWNER")


class PermissionSummaryResponse(BaseModel):
    """Everything the caller may do, by resource."""
    user_id: Optional[str]
    role: Role
    level: int
    is_owner: bool
    is_super_admin: bool
    is_admin: bool
    is_guest: bool
    resources: List[Resource] = []
    permissions: Dict[Resource, List[Action]] = {}
    role_permissions: int
    explicit_permissions: int
    total_permissions: int


class VisibilityResponse(BaseModel):
    """Show/hide flags for one resource. Advisory only."""
    resource: Resource
    show_view_button: bool
    show_create_button: bool
    show_edit_button: bool
    show_delete_button: bool
    show_action_buttons: bool


# ============================================================================
# Grant Schemas
# ============================================================================

class GrantCreate(BaseModel):
    """Schema for granting a user an explicit permission."""
    action: Action
    resource: Resource
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    is_active: bool = True


class GrantResponse(BaseModel):
    id: str
    user_id: str
    action: Action
    resource: Resource
    title: str
    description: Optional[str]
    is_active: bool
    granted_by_id: Optional[str]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
