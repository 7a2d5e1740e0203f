"""
Declarative base, ULID keys and timestamp columns shared by the models.
"""
from datetime import datetime
from sqlalchemy import DateTime, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from ulid import ULID


def generate_ulid() -> str:
    """New 26 character ULID; sorts by creation time."""
    return str(ULID())


class Base(DeclarativeBase):
    """
    Registry for the users and user_permissions tables.

    Usage:
        class UserPermission(Base, TimestampMixin):
            __tablename__ = "user_permissions"

            id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    """
    pass


class TimestampMixin:
    """Server-side created_at / updated_at."""
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
