"""
Bus Pass Backend — Application Workflow Schemas
===============================================

What:  Request/response models for applications, decisions, payments and
       issued passes.
Who:   Passenger routes (submit, pay, my passes) and admin routes (list,
       details, decide).

Response models are built from ORM objects with `model_validate(obj)`; the
services eager-load every relationship a model reads, so validation never
triggers a lazy load outside the async context.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from buspass.models.enums import (
    ApplicationStatus,
    PaymentMethod,
    PaymentStatus,
)
from buspass.schemas.catalog import PassTypeResponse
from buspass.schemas.user import UserSummary


# ══════════════════════════════════════════════════════════════════════════
# Child records
# ══════════════════════════════════════════════════════════════════════════


class DocumentResponse(BaseModel):
    id: uuid.UUID
    document_type: str
    document_path: str = Field(description="URL returned by document storage")
    uploaded_at: datetime

    model_config = {"from_attributes": True}


class ApprovalResponse(BaseModel):
    id: uuid.UUID
    application_id: uuid.UUID
    admin_id: uuid.UUID
    status: ApplicationStatus
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class PaymentResponse(BaseModel):
    id: uuid.UUID
    application_id: uuid.UUID
    amount: Decimal
    method: PaymentMethod
    status: PaymentStatus
    transaction_ref: str
    paid_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class BusPassResponse(BaseModel):
    id: uuid.UUID
    application_id: uuid.UUID
    pass_number: str
    valid_from: datetime
    valid_until: datetime
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


# ══════════════════════════════════════════════════════════════════════════
# Applications
# ══════════════════════════════════════════════════════════════════════════


class ApplicationResponse(BaseModel):
    """Application with the pass type and owner summary attached."""
    id: uuid.UUID
    user_id: uuid.UUID
    pass_type_id: uuid.UUID
    status: ApplicationStatus
    payment_status: PaymentStatus
    created_at: datetime
    updated_at: datetime
    pass_type: PassTypeResponse
    user: UserSummary
    document: Optional[DocumentResponse] = None

    model_config = {"from_attributes": True}


class ApplicationDetail(ApplicationResponse):
    """Admin view: everything the aggregate owns."""
    approval: Optional[ApprovalResponse] = None
    payment: Optional[PaymentResponse] = None
    bus_pass: Optional[BusPassResponse] = None


class DecisionRequest(BaseModel):
    status: ApplicationStatus = Field(description="APPROVED or REJECTED")
    remarks: Optional[str] = Field(default=None, max_length=2000)


class DecisionResponse(BaseModel):
    application_id: uuid.UUID
    status: ApplicationStatus
    approval: ApprovalResponse
    bus_pass: Optional[BusPassResponse] = Field(
        default=None, description="Issued pass; present only for APPROVED decisions"
    )


# ══════════════════════════════════════════════════════════════════════════
# Payments
# ══════════════════════════════════════════════════════════════════════════


class PaymentRequest(BaseModel):
    application_id: uuid.UUID
    payment_method: PaymentMethod
    amount: Optional[Decimal] = Field(
        default=None,
        ge=0,
        description="Optional; if sent it must equal the pass type price",
    )


# ══════════════════════════════════════════════════════════════════════════
# Passenger pass views
# ══════════════════════════════════════════════════════════════════════════


class PassApplicationSummary(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    status: ApplicationStatus
    payment_status: PaymentStatus
    pass_type: PassTypeResponse
    payment: Optional[PaymentResponse] = None

    model_config = {"from_attributes": True}


class PassWithApplication(BusPassResponse):
    application: PassApplicationSummary


class PassDetailResponse(PassWithApplication):
    qr_code: Optional[str] = Field(
        default=None, description="PNG data URL encoding the pass payload"
    )
