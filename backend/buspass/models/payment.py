"""
Bus Pass Backend — Payment SQLAlchemy Model
===========================================

What:  The `payments` ledger. One row per application, written by
       PaymentService in the same transaction that flips the application's
       payment_status to COMPLETED.

The unique index on application_id is the store-level guarantee behind
"exactly one payment per application" when two pay requests race.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional, TYPE_CHECKING

from sqlalchemy import ForeignKey, Numeric, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from buspass.database import Base
from buspass.models.enums import PaymentMethod, PaymentStatus
from buspass.models.types import UTCDateTime, enum_column_type, new_uuid, utcnow

if TYPE_CHECKING:
    from buspass.models.application import Application


class Payment(Base):
    __tablename__ = "payments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_uuid)
    application_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("applications.id", ondelete="RESTRICT"), nullable=False, unique=True
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    method: Mapped[PaymentMethod] = mapped_column(
        enum_column_type(PaymentMethod, "payment_method"), nullable=False
    )
    status: Mapped[PaymentStatus] = mapped_column(
        enum_column_type(PaymentStatus, "payment_status"),
        nullable=False,
        default=PaymentStatus.PENDING,
    )
    transaction_ref: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    paid_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utcnow, server_default=text("CURRENT_TIMESTAMP")
    )

    application: Mapped["Application"] = relationship(back_populates="payment")

    def __repr__(self) -> str:
        return (
            f"<Payment(ref='{self.transaction_ref}', amount={self.amount}, "
            f"status='{self.status.value}')>"
        )
