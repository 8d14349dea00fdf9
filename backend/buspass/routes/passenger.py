"""
Bus Pass Backend — Passenger Routes
===================================

What:  Everything a passenger does: browse pass types, apply with a
       document, pay, and view issued passes (with QR code).
Who:   Callers whose gateway identity has role PASSENGER.

Submission flow:
    ┌──────────────┐   ┌────────────────────┐   ┌─────────────────────┐
    │ multipart in │──▶│ storage.upload()   │──▶│ submit_application  │
    └──────────────┘   │ validate + write   │   │ (one transaction)   │
                       └────────────────────┘   └─────────────────────┘
                                                   │ any failure
                                                   ▼
                                          storage.cleanup_file()
"""

import logging
import uuid
from typing import List

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from buspass.auth import Identity, require_role
from buspass.database import get_db_session
from buspass.exceptions import FileStorageError
from buspass.models.enums import UserRole
from buspass.routes.files import get_storage_service
from buspass.schemas.application import (
    ApplicationResponse,
    PassDetailResponse,
    PassWithApplication,
    PaymentRequest,
    PaymentResponse,
)
from buspass.schemas.catalog import PassTypeResponse
from buspass.schemas.common import ApiResponse
from buspass.services.application_service import application_service
from buspass.services.catalog_service import catalog_service
from buspass.services.payment_service import payment_service
from buspass.services.storage_service import StorageService

logger = logging.getLogger(__name__)

passenger_only = require_role(UserRole.PASSENGER)

router = APIRouter(
    prefix="/passenger",
    tags=["Passenger"],
    dependencies=[Depends(passenger_only)],
)


@router.get(
    "/pass-types",
    response_model=ApiResponse[List[PassTypeResponse]],
    summary="List pass types open for application",
)
async def list_pass_types(db: AsyncSession = Depends(get_db_session)):
    pass_types = await catalog_service.list_pass_types(db, active_only=True)
    return ApiResponse(data=pass_types, message="Pass types retrieved")


@router.post(
    "/applications",
    response_model=ApiResponse[ApplicationResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Apply for a pass",
    description=(
        "Multipart form: `pass_type_id`, `document_type` and the supporting "
        "`document` (PDF, PNG or JPEG)."
    ),
)
async def submit_application(
    pass_type_id: uuid.UUID = Form(...),
    document_type: str = Form(..., min_length=1, max_length=50),
    document: UploadFile = File(...),
    identity: Identity = Depends(passenger_only),
    db: AsyncSession = Depends(get_db_session),
    storage: StorageService = Depends(get_storage_service),
):
    content = await document.read()
    stored = await storage.upload(document.filename or "", content, document.content_type)
    if not stored.success:
        raise FileStorageError(message=stored.message or "Document upload failed")

    try:
        application = await application_service.submit_application(
            db,
            user_id=identity.user_id,
            pass_type_id=pass_type_id,
            document_type=document_type.strip(),
            document_link=stored.file_url,
        )
    except Exception:
        await storage.cleanup_file(stored.path)
        raise

    return ApiResponse(data=application, message="Application submitted")


@router.post(
    "/payments",
    response_model=ApiResponse[PaymentResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Pay for an application",
)
async def process_payment(
    body: PaymentRequest,
    identity: Identity = Depends(passenger_only),
    db: AsyncSession = Depends(get_db_session),
):
    payment = await payment_service.process_payment(
        db,
        user_id=identity.user_id,
        application_id=body.application_id,
        method=body.payment_method,
        amount=body.amount,
    )
    return ApiResponse(data=payment, message="Payment processed successfully")


@router.get(
    "/passes",
    response_model=ApiResponse[List[PassWithApplication]],
    summary="List my passes",
)
async def list_my_passes(
    identity: Identity = Depends(passenger_only),
    db: AsyncSession = Depends(get_db_session),
):
    passes = await application_service.list_user_passes(db, identity.user_id)
    return ApiResponse(data=passes, message="Passes retrieved")


@router.get(
    "/passes/{pass_id}",
    response_model=ApiResponse[PassDetailResponse],
    summary="Pass details with QR code",
)
async def get_pass(
    pass_id: uuid.UUID,
    identity: Identity = Depends(passenger_only),
    db: AsyncSession = Depends(get_db_session),
):
    detail = await application_service.get_pass_details(db, pass_id, identity.user_id)
    return ApiResponse(data=detail, message="Pass retrieved")
