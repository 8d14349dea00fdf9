"""
Bus Pass Backend — Application Workflow Service
===============================================

What:  Submission, admin decision, and the read side of the application
       aggregate (admin listing/details, passenger passes).
Who:   Passenger and admin routes.

Workflow:
    ┌────────────┐   pay    ┌────────────────────┐  decide  ┌──────────────────────┐
    │  PENDING   │────────▶│ PENDING / COMPLETED │────────▶│ APPROVED + BusPass    │
    │  PENDING   │         │ (status / payment)  │    └───▶│ REJECTED              │
    └────────────┘         └────────────────────┘          └──────────────────────┘

Transaction Rules:
    submit_application   user row locked, pending check, Application + Document in one commit
    decide_application   application row locked and re-read; Approval write, BusPass insert
                         and status change commit together or not at all

Design Decision:
    ApplicationService is stateless; the session is an argument of every
    method. Routes pass the request-scoped session, tests pass an in-memory
    SQLite session, and nothing holds a global ORM client.
"""

import logging
import secrets
import uuid
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from buspass.config import settings
from buspass.database import atomic
from buspass.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from buspass.models.application import Application, Approval, Document
from buspass.models.bus_pass import BusPass
from buspass.models.enums import ApplicationStatus, PaymentStatus
from buspass.models.pass_type import PassType
from buspass.models.types import utcnow
from buspass.models.user import User
from buspass.schemas.application import (
    ApplicationDetail,
    ApplicationResponse,
    ApprovalResponse,
    BusPassResponse,
    DecisionResponse,
    PassDetailResponse,
    PassWithApplication,
)
from buspass.schemas.common import Page, PaginationMeta
from buspass.services.qr_codec import qr_codec

logger = logging.getLogger(__name__)

# Uppercase alphanumerics without the look-alikes 0/O and 1/I
PASS_NUMBER_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
PASS_NUMBER_ATTEMPTS = 5

PENDING_EXISTS_MESSAGE = "You already have a pending application"

SORT_FIELDS = {
    "created_at": Application.created_at,
    "createdAt": Application.created_at,
    "updated_at": Application.updated_at,
    "updatedAt": Application.updated_at,
    "status": Application.status,
    "payment_status": Application.payment_status,
    "paymentStatus": Application.payment_status,
}


def generate_pass_number(length: Optional[int] = None) -> str:
    length = length or settings.pass_number_length
    return "".join(secrets.choice(PASS_NUMBER_ALPHABET) for _ in range(length))


def compute_validity(valid_from: datetime, duration_days: int) -> datetime:
    """validUntil for a pass issued at valid_from; the window is [valid_from, result)."""
    return valid_from + timedelta(days=duration_days)


def validate_page(page: int, limit: int) -> None:
    if page < 1:
        raise ValidationError(message="page must be 1 or greater", field="page")
    if limit < 1 or limit > settings.max_page_size:
        raise ValidationError(
            message=f"limit must be between 1 and {settings.max_page_size}",
            field="limit",
        )


def _summary_options():
    return (
        selectinload(Application.user),
        selectinload(Application.pass_type),
        selectinload(Application.document),
    )


def _detail_options():
    return _summary_options() + (
        selectinload(Application.approval),
        selectinload(Application.payment),
        selectinload(Application.bus_pass),
    )


def _pass_options():
    return (
        selectinload(BusPass.application).selectinload(Application.pass_type),
        selectinload(BusPass.application).selectinload(Application.payment),
    )


class ApplicationService:
    """
    Business logic for the application aggregate.

    Responsibilities:
        - submit_application(): passenger submission with its document
        - decide_application(): admin approve/reject, issuing the BusPass
        - list_applications() / get_application_details(): admin reads
        - list_user_passes() / get_pass_details(): passenger reads
    """

    # ══════════════════════════════════════════════════════════════════════
    # Writes
    # ══════════════════════════════════════════════════════════════════════

    async def submit_application(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        pass_type_id: uuid.UUID,
        document_type: str,
        document_link: str,
    ) -> ApplicationResponse:
        """
        Create a PENDING application together with its document.

        Raises:
            NotFoundError: user missing, or pass type missing / inactive
            ConflictError: the user already has a PENDING application
        """
        async with atomic(db, conflict_message=PENDING_EXISTS_MESSAGE):
            # Locking the user row serializes concurrent submissions by the same user
            user = (
                await db.execute(select(User).where(User.id == user_id).with_for_update())
            ).scalar_one_or_none()
            if user is None:
                raise NotFoundError(resource="user", resource_id=str(user_id))

            pass_type = await db.get(PassType, pass_type_id)
            if pass_type is None or not pass_type.is_active:
                raise NotFoundError(resource="pass type", resource_id=str(pass_type_id))

            pending = (
                await db.execute(
                    select(Application.id)
                    .where(
                        Application.user_id == user_id,
                        Application.status == ApplicationStatus.PENDING,
                    )
                    .limit(1)
                )
            ).scalar_one_or_none()
            if pending is not None:
                raise ConflictError(
                    message=PENDING_EXISTS_MESSAGE,
                    context={"pending_application_id": str(pending)},
                )

            application = Application(
                user=user,
                pass_type=pass_type,
                status=ApplicationStatus.PENDING,
                payment_status=PaymentStatus.PENDING,
                document=Document(document_type=document_type, document_path=document_link),
            )
            db.add(application)
            await db.flush()

        logger.info(
            "Application %s submitted by user %s for pass type '%s'",
            application.id,
            user_id,
            pass_type.name,
        )
        return ApplicationResponse.model_validate(application)

    async def decide_application(
        self,
        db: AsyncSession,
        application_id: uuid.UUID,
        status: ApplicationStatus,
        remarks: Optional[str],
        admin_id: uuid.UUID,
        now: Optional[datetime] = None,
    ) -> DecisionResponse:
        """
        Approve or reject a paid application.

        Precondition checks, in order, all against the locked row:
            1. application exists                      → NotFoundError
            2. acting admin exists                     → NotFoundError
            3. no BusPass issued yet                   → ConflictError
            4. payment_status is COMPLETED             → ConflictError
            5. requested status differs from current   → ConflictError
            6. application is still PENDING            → ConflictError

        Effects (one transaction):
            - Approval row inserted, or updated if one already exists
            - APPROVED: BusPass with valid_from = now and
              valid_until = now + pass_type.duration_days, status APPROVED
            - REJECTED: status REJECTED
        """
        status = ApplicationStatus(status)
        if not status.is_decision:
            raise ValidationError(
                message="Decision must be APPROVED or REJECTED",
                field="status",
                context={"status": status.value},
            )
        now = now or utcnow()

        async with atomic(db, conflict_message="Application has already been decided"):
            application = await self._lock_application(db, application_id)
            if application is None:
                raise NotFoundError(resource="application", resource_id=str(application_id))
            if await db.get(User, admin_id) is None:
                raise NotFoundError(resource="admin", resource_id=str(admin_id))

            if application.bus_pass is not None:
                raise ConflictError(
                    message="A pass has already been issued for this application",
                    context={"pass_number": application.bus_pass.pass_number},
                )
            if application.payment_status is not PaymentStatus.COMPLETED:
                raise ConflictError(
                    message="Payment must be completed before the application can be decided",
                    context={"payment_status": application.payment_status.value},
                )
            if application.status is status:
                raise ConflictError(message=f"Application is already {status.value.lower()}")
            if application.status is not ApplicationStatus.PENDING:
                raise ConflictError(
                    message="Application has already been decided",
                    context={"status": application.status.value},
                )

            approval = application.approval
            if approval is None:
                approval = Approval(
                    application=application,
                    admin_id=admin_id,
                    status=status,
                    notes=remarks,
                )
                db.add(approval)
            else:
                approval.admin_id = admin_id
                approval.status = status
                approval.notes = remarks
                approval.updated_at = now

            bus_pass: Optional[BusPass] = None
            if status is ApplicationStatus.APPROVED:
                bus_pass = BusPass(
                    application=application,
                    pass_number=await self._allocate_pass_number(db),
                    valid_from=now,
                    valid_until=compute_validity(now, application.pass_type.duration_days),
                    is_active=True,
                )
                db.add(bus_pass)

            application.status = status
            application.updated_at = now
            await db.flush()

        logger.info(
            "Application %s %s by admin %s%s",
            application_id,
            status.value,
            admin_id,
            f" (pass {bus_pass.pass_number})" if bus_pass else "",
        )
        return DecisionResponse(
            application_id=application.id,
            status=application.status,
            approval=ApprovalResponse.model_validate(approval),
            bus_pass=BusPassResponse.model_validate(bus_pass) if bus_pass else None,
        )

    async def _lock_application(
        self, db: AsyncSession, application_id: uuid.UUID
    ) -> Optional[Application]:
        result = await db.execute(
            select(Application)
            .where(Application.id == application_id)
            .options(*_detail_options())
            .with_for_update(of=Application)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _allocate_pass_number(self, db: AsyncSession) -> str:
        for _ in range(PASS_NUMBER_ATTEMPTS):
            candidate = generate_pass_number()
            taken = (
                await db.execute(select(BusPass.id).where(BusPass.pass_number == candidate))
            ).scalar_one_or_none()
            if taken is None:
                return candidate
            logger.warning("Pass number collision on %s; regenerating", candidate)
        raise ConflictError(message="Could not allocate a unique pass number. Please retry.")

    # ══════════════════════════════════════════════════════════════════════
    # Admin reads
    # ══════════════════════════════════════════════════════════════════════

    async def list_applications(
        self,
        db: AsyncSession,
        status: Optional[ApplicationStatus] = None,
        page: int = 1,
        limit: int = 10,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> Page[ApplicationResponse]:
        """Paginated, filterable, sortable listing; totalPages = ceil(total / limit)."""
        validate_page(page, limit)
        column = SORT_FIELDS.get(sort_by)
        if column is None:
            raise ValidationError(
                message=f"Cannot sort by '{sort_by}'",
                field="sort_by",
                context={"allowed": sorted(SORT_FIELDS)},
            )
        order = sort_order.lower()
        if order not in ("asc", "desc"):
            raise ValidationError(message="sort_order must be 'asc' or 'desc'", field="sort_order")

        query = select(Application).options(*_summary_options())
        count_query = select(func.count(Application.id))
        if status is not None:
            query = query.where(Application.status == status)
            count_query = count_query.where(Application.status == status)

        ordering = column.asc() if order == "asc" else column.desc()
        query = query.order_by(ordering, Application.id).offset((page - 1) * limit).limit(limit)

        items = (await db.execute(query)).scalars().all()
        total = (await db.execute(count_query)).scalar() or 0

        return Page[ApplicationResponse](
            items=[ApplicationResponse.model_validate(a) for a in items],
            pagination=PaginationMeta.build(page=page, limit=limit, total=total),
        )

    async def get_application_details(
        self, db: AsyncSession, application_id: uuid.UUID
    ) -> ApplicationDetail:
        result = await db.execute(
            select(Application)
            .where(Application.id == application_id)
            .options(*_detail_options())
        )
        application = result.scalar_one_or_none()
        if application is None:
            raise NotFoundError(resource="application", resource_id=str(application_id))
        return ApplicationDetail.model_validate(application)

    # ══════════════════════════════════════════════════════════════════════
    # Passenger reads
    # ══════════════════════════════════════════════════════════════════════

    async def list_user_passes(
        self, db: AsyncSession, user_id: uuid.UUID
    ) -> List[PassWithApplication]:
        result = await db.execute(
            select(BusPass)
            .join(BusPass.application)
            .where(Application.user_id == user_id)
            .options(*_pass_options())
            .order_by(BusPass.created_at.desc())
        )
        return [PassWithApplication.model_validate(p) for p in result.scalars().all()]

    async def get_pass_details(
        self,
        db: AsyncSession,
        pass_id: uuid.UUID,
        user_id: uuid.UUID,
        include_qr: bool = True,
    ) -> PassDetailResponse:
        """
        One of the caller's passes, with a QR code while the pass is active.

        Raises:
            NotFoundError:  no such pass
            ForbiddenError: the pass belongs to another user
        """
        result = await db.execute(
            select(BusPass).where(BusPass.id == pass_id).options(*_pass_options())
        )
        bus_pass = result.scalar_one_or_none()
        if bus_pass is None:
            raise NotFoundError(resource="pass", resource_id=str(pass_id))
        if bus_pass.application.user_id != user_id:
            raise ForbiddenError(message="This pass belongs to another user")

        detail = PassDetailResponse.model_validate(bus_pass)
        if include_qr and bus_pass.is_active:
            payload = qr_codec.payload_for(bus_pass, bus_pass.application.user_id)
            detail.qr_code = qr_codec.encode(payload)
        return detail


application_service = ApplicationService()
