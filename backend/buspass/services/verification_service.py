"""
Bus Pass Backend — Verification Engine
======================================

What:  Conductor field checks of a presented pass, plus the conductor's
       dashboard and scan history.
How:   One transaction per attempt with the pass row locked:

       ┌──────────────┐   ┌──────────────────┐   ┌──────────────┐   ┌──────────────┐
       │ resolve pass │──▶│ today's scans <  │──▶│ evaluate     │──▶│ append scan  │
       │ (number/QR)  │   │ per_day_limit ?  │   │ validity     │   │ record       │
       └──────────────┘   └──────────────────┘   └──────────────┘   └──────────────┘
         NotFound           Conflict, nothing       remark by          immutable
                            recorded                priority

Who:   Conductor routes.

Validity window is half-open [valid_from, valid_until). "Today" is the UTC
calendar day containing `now`. Scans rejected by the daily limit are not
recorded; expired, not-yet-started and inactive passes ARE recorded, with
is_valid = False, since the conductor did check them.
"""

import logging
import uuid
from datetime import datetime, time, timedelta, timezone
from typing import Optional, Tuple

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from buspass.config import settings
from buspass.database import atomic
from buspass.exceptions import ConflictError, NotFoundError, ValidationError
from buspass.models.application import Application
from buspass.models.bus_pass import BusPass
from buspass.models.enums import ScanMethod
from buspass.models.scan import PassScan
from buspass.models.types import utcnow
from buspass.models.user import User
from buspass.schemas.application import BusPassResponse
from buspass.schemas.catalog import PassTypeResponse
from buspass.schemas.common import Page, PaginationMeta
from buspass.schemas.user import UserSummary
from buspass.schemas.verification import (
    DashboardResponse,
    DashboardStats,
    ScanResponse,
    VerificationResult,
    VerifiedPass,
)
from buspass.services.application_service import validate_page
from buspass.services.qr_codec import qr_codec

logger = logging.getLogger(__name__)

REMARK_EXPIRED = "Pass has expired"
REMARK_NOT_STARTED = "Pass validity not started"
REMARK_INACTIVE = "Pass is not active"
REMARK_VALID = "Pass is valid"

DAILY_LIMIT_MESSAGE = "Daily scan limit exceeded for this pass"


def utc_day_bounds(now: datetime) -> Tuple[datetime, datetime]:
    """[start, end) of the UTC calendar day containing `now`."""
    day = now.astimezone(timezone.utc).date()
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    return start, start + timedelta(days=1)


def evaluate_validity(bus_pass: BusPass, now: datetime) -> Tuple[bool, str]:
    """
    Returns (is_valid, remark) for the pass at `now`.

    Remark priority when several conditions hold:
    expired > not yet started > inactive > valid.
    """
    is_expired = now >= bus_pass.valid_until
    is_not_started = now < bus_pass.valid_from

    if is_expired:
        return False, REMARK_EXPIRED
    if is_not_started:
        return False, REMARK_NOT_STARTED
    if not bus_pass.is_active:
        return False, REMARK_INACTIVE
    return True, REMARK_VALID


def _scan_response(scan: PassScan, pass_number: str) -> ScanResponse:
    return ScanResponse(
        id=scan.id,
        pass_id=scan.pass_id,
        pass_number=pass_number,
        conductor_id=scan.conductor_id,
        scan_method=scan.scan_method,
        is_valid=scan.is_valid,
        remark=scan.remark,
        scanned_at=scan.scanned_at,
    )


class VerificationService:
    """
    Pass verification and conductor reads.

    Both verify entry points funnel into `_verify_locked`, so the limit,
    validity and audit rules are identical for manual and QR checks.
    """

    async def verify_pass(
        self,
        db: AsyncSession,
        pass_number: str,
        conductor_id: uuid.UUID,
        now: Optional[datetime] = None,
    ) -> VerificationResult:
        """
        Verify by a pass number the conductor typed in; always recorded as MANUAL.

        Raises:
            NotFoundError: no pass with this number, or unknown conductor
            ConflictError: the pass already reached its daily scan limit
        """
        normalized = pass_number.strip().upper()
        async with atomic(db):
            bus_pass = await self._lock_pass(db, BusPass.pass_number == normalized)
            if bus_pass is None:
                raise NotFoundError(resource="pass", resource_id=normalized)
            result = await self._verify_locked(
                db, bus_pass, conductor_id, ScanMethod.MANUAL, now or utcnow()
            )
        return result

    async def verify_qr(
        self,
        db: AsyncSession,
        qr_data: str,
        conductor_id: uuid.UUID,
        now: Optional[datetime] = None,
    ) -> VerificationResult:
        """
        Verify from scanned QR text.

        The payload's pass id and pass number must name the same pass and its
        user id must match the holder; otherwise the code is not one this
        system issued for that pass.

        Raises:
            ValidationError: unparseable payload, or payload/holder mismatch
            NotFoundError:   the pass in the payload does not exist, or unknown conductor
            ConflictError:   daily scan limit reached
        """
        payload = qr_codec.decode(qr_data)

        async with atomic(db):
            bus_pass = await self._lock_pass(db, BusPass.id == payload.pass_id)
            if bus_pass is None or bus_pass.pass_number != payload.pass_number:
                raise NotFoundError(resource="pass", resource_id=payload.pass_number)
            if bus_pass.application.user_id != payload.user_id:
                raise ValidationError(
                    message="QR code does not belong to the pass holder",
                    field="qr_data",
                    context={"pass_number": bus_pass.pass_number},
                )
            result = await self._verify_locked(
                db, bus_pass, conductor_id, ScanMethod.QR, now or utcnow()
            )
        return result

    async def _lock_pass(self, db: AsyncSession, criterion) -> Optional[BusPass]:
        result = await db.execute(
            select(BusPass)
            .where(criterion)
            .options(
                selectinload(BusPass.application).selectinload(Application.pass_type),
                selectinload(BusPass.application).selectinload(Application.user),
            )
            .with_for_update(of=BusPass)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _verify_locked(
        self,
        db: AsyncSession,
        bus_pass: BusPass,
        conductor_id: uuid.UUID,
        scan_method: ScanMethod,
        now: datetime,
    ) -> VerificationResult:
        if await db.get(User, conductor_id) is None:
            raise NotFoundError(resource="conductor", resource_id=str(conductor_id))

        pass_type = bus_pass.application.pass_type
        day_start, day_end = utc_day_bounds(now)

        scans_today = (
            await db.execute(
                select(func.count(PassScan.id)).where(
                    PassScan.pass_id == bus_pass.id,
                    PassScan.scanned_at >= day_start,
                    PassScan.scanned_at < day_end,
                )
            )
        ).scalar() or 0

        if scans_today >= pass_type.per_day_limit:
            logger.info(
                "Scan refused for pass %s: %d/%d scans today",
                bus_pass.pass_number,
                scans_today,
                pass_type.per_day_limit,
            )
            raise ConflictError(
                message=DAILY_LIMIT_MESSAGE,
                context={
                    "pass_number": bus_pass.pass_number,
                    "scans_today": scans_today,
                    "per_day_limit": pass_type.per_day_limit,
                },
            )

        is_valid, remark = evaluate_validity(bus_pass, now)
        scan = PassScan(
            pass_id=bus_pass.id,
            conductor_id=conductor_id,
            scan_method=scan_method,
            is_valid=is_valid,
            remark=remark,
            scanned_at=now,
        )
        db.add(scan)
        await db.flush()

        logger.info(
            "Pass %s scanned by %s via %s: %s",
            bus_pass.pass_number,
            conductor_id,
            scan_method.value,
            remark,
        )
        return VerificationResult(
            scan_id=scan.id,
            is_valid=is_valid,
            remark=remark,
            scan_method=scan_method,
            scanned_at=now,
            bus_pass=VerifiedPass(
                **BusPassResponse.model_validate(bus_pass).model_dump(),
                holder=UserSummary.model_validate(bus_pass.application.user),
                pass_type=PassTypeResponse.model_validate(pass_type),
            ),
        )

    # ── Conductor reads ───────────────────────────────────────────────────

    async def get_dashboard(
        self,
        db: AsyncSession,
        conductor_id: uuid.UUID,
        now: Optional[datetime] = None,
    ) -> DashboardResponse:
        """Today's activity for one conductor: recent scans plus whole-day totals."""
        day_start, day_end = utc_day_bounds(now or utcnow())
        today = (
            PassScan.conductor_id == conductor_id,
            PassScan.scanned_at >= day_start,
            PassScan.scanned_at < day_end,
        )

        recent = await db.execute(
            select(PassScan, BusPass.pass_number)
            .join(BusPass, BusPass.id == PassScan.pass_id)
            .where(*today)
            .order_by(PassScan.scanned_at.desc(), PassScan.id)
            .limit(settings.dashboard_recent_scans)
        )
        recent_scans = [_scan_response(scan, number) for scan, number in recent.all()]

        totals = (
            await db.execute(
                select(
                    func.count(PassScan.id),
                    func.sum(case((PassScan.is_valid.is_(True), 1), else_=0)),
                    func.sum(case((PassScan.scan_method == ScanMethod.QR, 1), else_=0)),
                ).where(*today)
            )
        ).one()
        total, valid, qr = (int(v or 0) for v in totals)

        return DashboardResponse(
            recent_scans=recent_scans,
            stats=DashboardStats(
                total_scans=total,
                valid_scans=valid,
                invalid_scans=total - valid,
                qr_scans=qr,
                manual_scans=total - qr,
            ),
            day_start=day_start,
        )

    async def get_verification_history(
        self,
        db: AsyncSession,
        conductor_id: uuid.UUID,
        page: int = 1,
        limit: int = 10,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> Page[ScanResponse]:
        """Newest first. Each date bound is optional and applies on its own (inclusive)."""
        validate_page(page, limit)
        filters = [PassScan.conductor_id == conductor_id]
        if start_date is not None:
            filters.append(PassScan.scanned_at >= start_date)
        if end_date is not None:
            filters.append(PassScan.scanned_at <= end_date)

        rows = await db.execute(
            select(PassScan, BusPass.pass_number)
            .join(BusPass, BusPass.id == PassScan.pass_id)
            .where(*filters)
            .order_by(PassScan.scanned_at.desc(), PassScan.id)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        total = (
            await db.execute(select(func.count(PassScan.id)).where(*filters))
        ).scalar() or 0

        return Page[ScanResponse](
            items=[_scan_response(scan, number) for scan, number in rows.all()],
            pagination=PaginationMeta.build(page=page, limit=limit, total=total),
        )


verification_service = VerificationService()
