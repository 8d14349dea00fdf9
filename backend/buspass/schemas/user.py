import uuid
from datetime import datetime

from pydantic import BaseModel

from buspass.models.enums import UserRole


class UserSummary(BaseModel):
    """The slice of a user attached to applications and passes."""
    id: uuid.UUID
    full_name: str
    email: str

    model_config = {"from_attributes": True}


class UserResponse(UserSummary):
    role: UserRole
    is_active: bool
    created_at: datetime
