"""
Bus Pass Backend — BusPass SQLAlchemy Model
===========================================

What:  The issued travel credential. Created exactly once, inside the approval
       transaction; afterwards only `is_active` may change.

Validity window is half-open: a pass is usable for valid_from <= t < valid_until.

Query Patterns:
    - Conductor lookup by pass_number  → unique index
    - Passenger "my passes"            → join through applications.user_id
    - Reporting active / expired       → idx_bus_passes_valid_until
"""

import uuid
from datetime import datetime
from typing import List, TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, Index, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from buspass.database import Base
from buspass.models.types import UTCDateTime, new_uuid, utcnow

if TYPE_CHECKING:
    from buspass.models.application import Application
    from buspass.models.scan import PassScan


class BusPass(Base):
    __tablename__ = "bus_passes"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_uuid)
    application_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("applications.id", ondelete="RESTRICT"), nullable=False, unique=True
    )
    pass_number: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    valid_from: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    valid_until: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("true")
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utcnow, server_default=text("CURRENT_TIMESTAMP")
    )

    application: Mapped["Application"] = relationship(back_populates="bus_pass")
    scans: Mapped[List["PassScan"]] = relationship(back_populates="bus_pass")

    __table_args__ = (
        Index("idx_bus_passes_valid_until", "valid_until"),
    )

    def __repr__(self) -> str:
        return (
            f"<BusPass(pass_number='{self.pass_number}', valid_from='{self.valid_from}', "
            f"valid_until='{self.valid_until}', is_active={self.is_active})>"
        )
