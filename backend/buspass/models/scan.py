"""
Bus Pass Backend — PassScan SQLAlchemy Model
============================================

What:  Append-only audit log of conductor verifications.
How:   VerificationService inserts one row per accepted attempt; nothing in the
       codebase updates or deletes these rows.

Query Patterns:
    - Daily limit:    count by (pass_id, scanned_at >= start of day)   → idx_pass_scans_pass_time
    - Dashboard:      by (conductor_id, scanned_at >= start of day)    → idx_pass_scans_conductor_time
    - History:        by conductor_id, newest first, optional range    → idx_pass_scans_conductor_time
"""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, Index, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from buspass.database import Base
from buspass.models.enums import ScanMethod
from buspass.models.types import UTCDateTime, enum_column_type, new_uuid, utcnow

if TYPE_CHECKING:
    from buspass.models.bus_pass import BusPass


class PassScan(Base):
    __tablename__ = "pass_scans"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_uuid)
    pass_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("bus_passes.id", ondelete="RESTRICT"), nullable=False
    )
    conductor_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False
    )
    scan_method: Mapped[ScanMethod] = mapped_column(
        enum_column_type(ScanMethod, "scan_method"), nullable=False
    )
    is_valid: Mapped[bool] = mapped_column(Boolean, nullable=False)
    remark: Mapped[str] = mapped_column(String(100), nullable=False)
    scanned_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utcnow, server_default=text("CURRENT_TIMESTAMP")
    )

    bus_pass: Mapped["BusPass"] = relationship(back_populates="scans")

    __table_args__ = (
        Index("idx_pass_scans_pass_time", "pass_id", "scanned_at"),
        Index("idx_pass_scans_conductor_time", "conductor_id", "scanned_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<PassScan(pass_id={self.pass_id}, method='{self.scan_method.value}', "
            f"is_valid={self.is_valid}, scanned_at='{self.scanned_at}')>"
        )
