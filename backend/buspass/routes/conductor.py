"""
Conductor routes: verify a presented pass (typed number or scanned QR), the
day's dashboard, and paginated scan history.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from buspass.auth import Identity, require_role
from buspass.config import settings
from buspass.database import get_db_session
from buspass.models.enums import UserRole
from buspass.schemas.common import ApiResponse, Page
from buspass.schemas.verification import (
    DashboardResponse,
    ScanResponse,
    VerificationResult,
    VerifyPassRequest,
    VerifyQRRequest,
)
from buspass.services.verification_service import verification_service

conductor_only = require_role(UserRole.CONDUCTOR)

router = APIRouter(
    prefix="/conductor",
    tags=["Conductor"],
    dependencies=[Depends(conductor_only)],
)


def _result_message(result: VerificationResult) -> str:
    return "Pass verified" if result.is_valid else result.remark


@router.post(
    "/verify-pass",
    response_model=ApiResponse[VerificationResult],
    summary="Verify a pass by its number",
)
async def verify_pass(
    body: VerifyPassRequest,
    identity: Identity = Depends(conductor_only),
    db: AsyncSession = Depends(get_db_session),
):
    result = await verification_service.verify_pass(
        db,
        pass_number=body.pass_number,
        conductor_id=identity.user_id,
    )
    return ApiResponse(data=result, message=_result_message(result))


@router.post(
    "/verify-qr",
    response_model=ApiResponse[VerificationResult],
    summary="Verify a pass from scanned QR text",
)
async def verify_qr(
    body: VerifyQRRequest,
    identity: Identity = Depends(conductor_only),
    db: AsyncSession = Depends(get_db_session),
):
    result = await verification_service.verify_qr(
        db, qr_data=body.qr_data, conductor_id=identity.user_id
    )
    return ApiResponse(data=result, message=_result_message(result))


@router.get(
    "/dashboard",
    response_model=ApiResponse[DashboardResponse],
    summary="Today's scans and totals",
)
async def get_dashboard(
    identity: Identity = Depends(conductor_only),
    db: AsyncSession = Depends(get_db_session),
):
    dashboard = await verification_service.get_dashboard(db, identity.user_id)
    return ApiResponse(data=dashboard, message="Dashboard retrieved")


@router.get(
    "/verifications",
    response_model=ApiResponse[Page[ScanResponse]],
    summary="Scan history",
)
async def get_verification_history(
    page: int = Query(default=1),
    limit: int = Query(default=settings.default_page_size),
    start_date: Optional[datetime] = Query(default=None),
    end_date: Optional[datetime] = Query(default=None),
    identity: Identity = Depends(conductor_only),
    db: AsyncSession = Depends(get_db_session),
):
    history = await verification_service.get_verification_history(
        db,
        identity.user_id,
        page=page,
        limit=limit,
        start_date=start_date,
        end_date=end_date,
    )
    return ApiResponse(data=history, message="Verification history retrieved")
