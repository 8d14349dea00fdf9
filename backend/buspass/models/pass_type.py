"""
Bus Pass Backend — PassType SQLAlchemy Model
============================================

What:  The `pass_types` catalog: name, price, validity duration, daily scan limit.
Who:   Managed by admins through CatalogService; referenced by every Application.

Name uniqueness is case-insensitive. The service checks it before writing and
the functional unique index on lower(name) stops two concurrent creates that
both passed the check.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, Index, Integer, Numeric, String, Text, Uuid, func, text
from sqlalchemy.orm import Mapped, mapped_column

from buspass.database import Base
from buspass.models.types import UTCDateTime, new_uuid, utcnow


class PassType(Base):
    """
    A purchasable pass product.

    Editable by admins at any time; applications read the current price when
    paying and the current duration when approved.
    """

    __tablename__ = "pass_types"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_uuid)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    duration_days: Mapped[int] = mapped_column(Integer, nullable=False)
    per_day_limit: Mapped[int] = mapped_column(
        Integer, nullable=False, default=2, server_default=text("2")
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("true")
    )

    # ── Audit ─────────────────────────────────────────────────────────────
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    updated_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utcnow, server_default=text("CURRENT_TIMESTAMP")
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    def __repr__(self) -> str:
        return (
            f"<PassType(name='{self.name}', price={self.price}, "
            f"duration_days={self.duration_days}, per_day_limit={self.per_day_limit})>"
        )


Index("uq_pass_types_name_lower", func.lower(PassType.name), unique=True)
