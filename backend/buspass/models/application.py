"""
Bus Pass Backend — Application Aggregate Models
===============================================

What:  `applications` (aggregate root) plus its owned `documents` and
       `approvals` rows.
Who:   Written by ApplicationService (submit, decide) and PaymentService
       (payment status); read by admins, passengers, reporting.

Lifecycle:
    status:          PENDING ──▶ APPROVED   (only with payment COMPLETED; issues a BusPass)
                             └─▶ REJECTED   (only with payment COMPLETED)
    payment_status:  PENDING ──▶ COMPLETED  (exactly one Payment row)

Store-level guards:
    uq_applications_user_pending   at most one PENDING application per user
    documents.application_id       unique (one document per application)
    approvals.application_id       unique (one approval record per application)
"""

import uuid
from datetime import datetime
from typing import Optional, TYPE_CHECKING

from sqlalchemy import ForeignKey, Index, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from buspass.database import Base
from buspass.models.enums import ApplicationStatus, PaymentStatus
from buspass.models.types import UTCDateTime, enum_column_type, new_uuid, utcnow

if TYPE_CHECKING:
    from buspass.models.bus_pass import BusPass
    from buspass.models.pass_type import PassType
    from buspass.models.payment import Payment
    from buspass.models.user import User


class Application(Base):
    __tablename__ = "applications"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_uuid)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False
    )
    pass_type_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("pass_types.id", ondelete="RESTRICT"), nullable=False
    )
    status: Mapped[ApplicationStatus] = mapped_column(
        enum_column_type(ApplicationStatus, "application_status"),
        nullable=False,
        default=ApplicationStatus.PENDING,
    )
    payment_status: Mapped[PaymentStatus] = mapped_column(
        enum_column_type(PaymentStatus, "application_payment_status"),
        nullable=False,
        default=PaymentStatus.PENDING,
    )
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

    user: Mapped["User"] = relationship(back_populates="applications")
    pass_type: Mapped["PassType"] = relationship()
    document: Mapped[Optional["Document"]] = relationship(
        back_populates="application", cascade="all, delete-orphan"
    )
    approval: Mapped[Optional["Approval"]] = relationship(
        back_populates="application", cascade="all, delete-orphan"
    )
    payment: Mapped[Optional["Payment"]] = relationship(back_populates="application")
    bus_pass: Mapped[Optional["BusPass"]] = relationship(back_populates="application")

    __table_args__ = (
        Index(
            "uq_applications_user_pending",
            "user_id",
            unique=True,
            postgresql_where=text("status = 'PENDING'"),
            sqlite_where=text("status = 'PENDING'"),
        ),
        Index("idx_applications_status", "status"),
        Index("idx_applications_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<Application(id={self.id}, status='{self.status.value}', "
            f"payment_status='{self.payment_status.value}')>"
        )


class Document(Base):
    """Supporting document uploaded with an application (ID proof, student card)."""

    __tablename__ = "documents"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_uuid)
    application_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("applications.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    document_type: Mapped[str] = mapped_column(String(50), nullable=False)
    document_path: Mapped[str] = mapped_column(String(500), nullable=False)
    uploaded_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utcnow, server_default=text("CURRENT_TIMESTAMP")
    )

    application: Mapped["Application"] = relationship(back_populates="document")


class Approval(Base):
    """The admin's decision record for an application."""

    __tablename__ = "approvals"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_uuid)
    application_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("applications.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    admin_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False
    )
    status: Mapped[ApplicationStatus] = mapped_column(
        enum_column_type(ApplicationStatus, "approval_status"), nullable=False
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
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

    application: Mapped["Application"] = relationship(back_populates="approval")
