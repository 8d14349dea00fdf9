"""
Bus Pass Backend — Verification Schemas
=======================================

What:  Conductor-facing request/response models and the QR payload.
Who:   Conductor routes and VerificationService; QRCodec for the payload.
"""

import uuid
from datetime import datetime
from typing import List

from pydantic import BaseModel, Field

from buspass.models.enums import ScanMethod
from buspass.schemas.application import BusPassResponse
from buspass.schemas.catalog import PassTypeResponse
from buspass.schemas.user import UserSummary


class QRPayload(BaseModel):
    """What a pass QR code carries. Serialized as compact JSON."""
    pass_id: uuid.UUID = Field(alias="passId")
    pass_number: str = Field(alias="passNumber")
    user_id: uuid.UUID = Field(alias="userId")
    valid_from: datetime = Field(alias="validFrom")
    valid_to: datetime = Field(alias="validTo")

    model_config = {"populate_by_name": True}


class VerifyPassRequest(BaseModel):
    """Manual entry of a pass number. QR scans go through VerifyQRRequest."""
    pass_number: str = Field(min_length=1, max_length=32)


class VerifyQRRequest(BaseModel):
    qr_data: str = Field(min_length=2, max_length=4096, description="Decoded QR text (JSON)")


class VerifiedPass(BusPassResponse):
    holder: UserSummary
    pass_type: PassTypeResponse


class VerificationResult(BaseModel):
    scan_id: uuid.UUID
    is_valid: bool
    remark: str
    scan_method: ScanMethod
    scanned_at: datetime
    bus_pass: VerifiedPass


class ScanResponse(BaseModel):
    id: uuid.UUID
    pass_id: uuid.UUID
    pass_number: str
    conductor_id: uuid.UUID
    scan_method: ScanMethod
    is_valid: bool
    remark: str
    scanned_at: datetime


class DashboardStats(BaseModel):
    total_scans: int = 0
    valid_scans: int = 0
    invalid_scans: int = 0
    qr_scans: int = 0
    manual_scans: int = 0


class DashboardResponse(BaseModel):
    recent_scans: List[ScanResponse] = Field(description="Newest first, capped")
    stats: DashboardStats = Field(description="Aggregates over the whole day")
    day_start: datetime
