"""
Bus Pass Backend — User SQLAlchemy Model
========================================

What:  The `users` table: every passenger, admin and conductor.
Who:   Referenced by applications (owner), approvals (admin), scans (conductor).

Credentials are not stored here; the upstream identity provider owns login and
hands the backend a trusted (user id, role) pair on every request.
"""

import uuid
from datetime import datetime
from typing import List, TYPE_CHECKING

from sqlalchemy import Boolean, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from buspass.database import Base
from buspass.models.enums import UserRole
from buspass.models.types import UTCDateTime, enum_column_type, new_uuid, utcnow

if TYPE_CHECKING:
    from buspass.models.application import Application


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_uuid)
    full_name: Mapped[str] = mapped_column(String(120), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    role: Mapped[UserRole] = mapped_column(
        enum_column_type(UserRole, "user_role"),
        nullable=False,
        default=UserRole.PASSENGER,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("true")
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    applications: Mapped[List["Application"]] = relationship(back_populates="user")

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', role='{self.role.value}')>"
