"""
Bus Pass Backend — Admin Routes
===============================

What:  Application review and decisions, pass type catalog, statistics and
       the user directory.
Who:   Callers whose gateway identity has role ADMIN.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from buspass.auth import Identity, require_role
from buspass.config import settings
from buspass.database import get_db_session
from buspass.models.enums import ApplicationStatus, UserRole
from buspass.schemas.application import (
    ApplicationDetail,
    ApplicationResponse,
    DecisionRequest,
    DecisionResponse,
)
from buspass.schemas.catalog import PassTypeCreate, PassTypeResponse, PassTypeUpdate
from buspass.schemas.common import ApiResponse, Page
from buspass.schemas.report import StatisticsResponse
from buspass.schemas.user import UserResponse
from buspass.services.application_service import application_service
from buspass.services.catalog_service import catalog_service
from buspass.services.reporting_service import reporting_service
from buspass.services.user_service import user_service

admin_only = require_role(UserRole.ADMIN)

router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
    dependencies=[Depends(admin_only)],
)


# ── Applications ──────────────────────────────────────────────────────────


@router.get(
    "/applications",
    response_model=ApiResponse[Page[ApplicationResponse]],
    summary="List applications",
    description=(
        "Filter by `status`; sort by createdAt, updatedAt, status or "
        "paymentStatus in asc or desc order."
    ),
)
async def list_applications(
    status_filter: Optional[ApplicationStatus] = Query(default=None, alias="status"),
    page: int = Query(default=1),
    limit: int = Query(default=settings.default_page_size),
    sort_by: str = Query(default="createdAt"),
    sort_order: str = Query(default="desc"),
    db: AsyncSession = Depends(get_db_session),
):
    result = await application_service.list_applications(
        db,
        status=status_filter,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return ApiResponse(data=result, message="Applications retrieved")


@router.get(
    "/applications/{application_id}",
    response_model=ApiResponse[ApplicationDetail],
    summary="Application details",
)
async def get_application(
    application_id: uuid.UUID,
    db: AsyncSession = Depends(get_db_session),
):
    detail = await application_service.get_application_details(db, application_id)
    return ApiResponse(data=detail, message="Application retrieved")


@router.put(
    "/applications/{application_id}/decision",
    response_model=ApiResponse[DecisionResponse],
    summary="Approve or reject a paid application",
)
async def decide_application(
    application_id: uuid.UUID,
    body: DecisionRequest,
    identity: Identity = Depends(admin_only),
    db: AsyncSession = Depends(get_db_session),
):
    decision = await application_service.decide_application(
        db,
        application_id=application_id,
        status=body.status,
        remarks=body.remarks,
        admin_id=identity.user_id,
    )
    return ApiResponse(data=decision, message=f"Application {decision.status.value.lower()}")


# ── Pass types ────────────────────────────────────────────────────────────


@router.get(
    "/pass-types",
    response_model=ApiResponse[List[PassTypeResponse]],
    summary="List all pass types, including inactive ones",
)
async def list_pass_types(db: AsyncSession = Depends(get_db_session)):
    pass_types = await catalog_service.list_pass_types(db)
    return ApiResponse(data=pass_types, message="Pass types retrieved")


@router.get("/pass-types/{pass_type_id}", response_model=ApiResponse[PassTypeResponse])
async def get_pass_type(pass_type_id: uuid.UUID, db: AsyncSession = Depends(get_db_session)):
    pass_type = await catalog_service.get_pass_type(db, pass_type_id)
    return ApiResponse(data=pass_type, message="Pass type retrieved")


@router.post(
    "/pass-types",
    response_model=ApiResponse[PassTypeResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create a pass type",
)
async def create_pass_type(
    body: PassTypeCreate,
    identity: Identity = Depends(admin_only),
    db: AsyncSession = Depends(get_db_session),
):
    pass_type = await catalog_service.create_pass_type(db, body, admin_id=identity.user_id)
    return ApiResponse(data=pass_type, message="Pass type created")


@router.put(
    "/pass-types/{pass_type_id}",
    response_model=ApiResponse[PassTypeResponse],
    summary="Update a pass type (partial)",
)
async def update_pass_type(
    pass_type_id: uuid.UUID,
    body: PassTypeUpdate,
    identity: Identity = Depends(admin_only),
    db: AsyncSession = Depends(get_db_session),
):
    pass_type = await catalog_service.update_pass_type(
        db, pass_type_id, body, admin_id=identity.user_id
    )
    return ApiResponse(data=pass_type, message="Pass type updated")


# ── Reporting & users ─────────────────────────────────────────────────────


@router.get(
    "/statistics",
    response_model=ApiResponse[StatisticsResponse],
    summary="Application, pass and revenue statistics",
)
async def get_statistics(
    start_date: Optional[datetime] = Query(default=None),
    end_date: Optional[datetime] = Query(default=None),
    db: AsyncSession = Depends(get_db_session),
):
    stats = await reporting_service.get_statistics(db, start_date=start_date, end_date=end_date)
    return ApiResponse(data=stats, message="Statistics retrieved")


@router.get("/users", response_model=ApiResponse[List[UserResponse]], summary="List users")
async def list_users(
    role: Optional[UserRole] = Query(default=None),
    db: AsyncSession = Depends(get_db_session),
):
    users = await user_service.list_users(db, role=role)
    return ApiResponse(data=users, message="Users retrieved")
