import uuid
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from buspass.exceptions import NotFoundError
from buspass.models.enums import UserRole
from buspass.models.user import User
from buspass.schemas.user import UserResponse


class UserService:
    """Read access to the user directory. Accounts are provisioned upstream or by the seeder."""

    async def list_users(
        self, db: AsyncSession, role: Optional[UserRole] = None
    ) -> List[UserResponse]:
        query = select(User).order_by(User.created_at.desc(), User.email)
        if role is not None:
            query = query.where(User.role == role)
        result = await db.execute(query)
        return [UserResponse.model_validate(u) for u in result.scalars().all()]

    async def get_user(self, db: AsyncSession, user_id: uuid.UUID) -> UserResponse:
        user = await db.get(User, user_id)
        if user is None:
            raise NotFoundError(resource="user", resource_id=str(user_id))
        return UserResponse.model_validate(user)


user_service = UserService()
