"""
Request and response bodies for CMS accounts.

``role`` is read-only everywhere except ``RoleChange``, which goes through the
authorization engine before it is applied.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field

from app.features.permissions.rbac import Role


class ProfileUpdate(BaseModel):
    """Fields a user may change on their own account. Unknown keys are ignored."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    avatar_url: Optional[str] = Field(None, max_length=500)
    bio: Optional[str] = Field(None, max_length=1000)


class RoleChange(BaseModel):
    role: Role = Field(..., description="GUEST, ADMIN, SUPERADMIN or OWNER")


class UserSummary(BaseModel):
    """What other staff see in listings."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    role: Role
    avatar_url: Optional[str] = None


class UserDetail(UserSummary):
    model_config = ConfigDict(from_attributes=True)

    email: Optional[EmailStr] = None
    bio: Optional[str] = None
    is_active: bool
    last_login_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
