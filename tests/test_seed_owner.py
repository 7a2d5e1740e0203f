"""Tests for the owner seed script."""

from __future__ import annotations

from app.features.permissions.rbac import Role
from scripts.seed_owner import seed_owner


class TestSeedOwner:
    async def test_creates_owner(self, db):
        user = await seed_owner(db, "aw-owner", "owner@university.edu", "Owner")
        assert user.role is Role.OWNER
        assert user.is_active is True

    async def test_promotes_existing_account(self, db, make_user):
        existing = await make_user(Role.GUEST, appwrite_id="aw-promote")
        user = await seed_owner(db, "aw-promote", existing.email)
        assert user.id == existing.id
        assert user.role is Role.OWNER

    async def test_is_idempotent(self, db):
        first = await seed_owner(db, "aw-owner", "owner@university.edu")
        second = await seed_owner(db, "aw-owner", "owner@university.edu")
        assert first.id == second.id
