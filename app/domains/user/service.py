# app/domains/user/service.py
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.exceptions.base import NotFoundError
from models import User


def _plan_from_claims(payload: dict) -> Optional[str]:
    """Read the membership plan from top-level or public-metadata claims."""
    plan = payload.get("plan_name")
    if plan is None:
        metadata = payload.get("public_metadata") or payload.get("metadata") or {}
        plan = metadata.get("plan_name") or metadata.get("plan")
    return plan


class UserService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user_by_clerk_id(self, clerk_user_id: str) -> Optional[User]:
        """Get a user by Clerk user ID."""
        result = await self.db.execute(select(User).where(User.clerk_user_id == clerk_user_id))
        return result.scalar_one_or_none()

    async def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        """Get a user by ID."""
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def require_active_user(self, user_id: UUID) -> User:
        """Get an active user or raise NotFoundError."""
        user = await self.get_user_by_id(user_id)
        if not user or not user.is_active:
            raise NotFoundError("User not found", details={"user_id": str(user_id)})
        return user

    async def create_user(
        self,
        clerk_user_id: str,
        email: str,
        username: str = None,
        full_name: str = None,
        plan_name: str = None,
    ) -> User:
        """Create a new user."""
        user = User(
            clerk_user_id=clerk_user_id,
            email=email,
            username=username,
            full_name=full_name,
            plan_name=plan_name,
        )

        try:
            self.db.add(user)
            await self.db.commit()
            await self.db.refresh(user)
            return user
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise e

    async def get_or_create_user(self, clerk_user_id: str, clerk_payload: dict) -> User:
        """Get existing user or create new one from Clerk payload.

        The plan claim is authoritative: when present it overwrites the stored
        plan so upgrades and downgrades take effect on the next request.
        """
        user = await self.get_user_by_clerk_id(clerk_user_id)
        plan_name = _plan_from_claims(clerk_payload)

        if not user:
            return await self.create_user(
                clerk_user_id=clerk_user_id,
                email=clerk_payload.get("email"),
                username=clerk_payload.get("username"),
                full_name=clerk_payload.get("name") or clerk_payload.get("full_name"),
                plan_name=plan_name,
            )

        if plan_name is not None and plan_name != user.plan_name:
            try:
                user.plan_name = plan_name
                await self.db.commit()
                await self.db.refresh(user)
            except SQLAlchemyError as e:
                await self.db.rollback()
                raise e
        return user

    @staticmethod
    def is_free_tier(user: User) -> bool:
        """Whether the user's plan is excluded from messaging.

        Users without an approved plan are treated as the public tier.
        """
        if not user.plan_name:
            return True
        return user.plan_name.casefold() in settings.free_plan_names_list
