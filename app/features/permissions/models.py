"""
Explicit per-user permission grants.

A grant gives one user one (action, resource) pair on top of what their role
allows in the matrix. Inactive grants are kept for history but never reach
the engine.
"""
from sqlalchemy import String, ForeignKey, Text, Boolean, UniqueConstraint, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database.base import Base, TimestampMixin, generate_ulid
from app.features.permissions.rbac import Action, Resource


class UserPermission(Base, TimestampMixin):
    """
    Explicit grant of ``action`` on ``resource`` to ``user_id``.

    Examples:
    - a GUEST editor allowed CREATE on BLOG
    - an ADMIN allowed VIEW on AUDIT_LOG
    """
    __tablename__ = "user_permissions"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)

    user_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    action: Mapped[Action] = mapped_column(SQLEnum(Action), nullable=False, index=True)
    resource: Mapped[Resource] = mapped_column(SQLEnum(Resource), nullable=False, index=True)

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    granted_by_id: Mapped[str | None] = mapped_column(
        String(26),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )

    user: Mapped["User"] = relationship(  # type: ignore
        "User",
        foreign_keys=[user_id],
        back_populates="permissions",
    )

    __table_args__ = (
        UniqueConstraint("user_id", "action", "resource", name="uq_user_permissions_user_action_resource"),
    )

    def __repr__(self) -> str:
        return f"<UserPermission(id={self.id}, user_id={self.user_id}, {self.action}:{self.resource}, active={self.is_active})>"
