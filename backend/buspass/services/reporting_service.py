"""
Admin statistics: application counts by status, pass counts, revenue.

Read-only. Optional start/end bounds are inclusive and filter each entity by
its own creation time. "Active" and "expired" are evaluated at `now`.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from buspass.exceptions import ValidationError
from buspass.models.application import Application
from buspass.models.bus_pass import BusPass
from buspass.models.enums import ApplicationStatus, PaymentStatus
from buspass.models.payment import Payment
from buspass.models.types import utcnow
from buspass.schemas.report import (
    ApplicationCounts,
    PassCounts,
    RevenueSummary,
    StatisticsResponse,
)

logger = logging.getLogger(__name__)


def _count_where(condition):
    return func.sum(case((condition, 1), else_=0))


def _bounded(column, start_date: Optional[datetime], end_date: Optional[datetime]):
    filters = []
    if start_date is not None:
        filters.append(column >= start_date)
    if end_date is not None:
        filters.append(column <= end_date)
    return filters


class ReportingService:

    async def get_statistics(
        self,
        db: AsyncSession,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ) -> StatisticsResponse:
        if start_date and end_date and start_date > end_date:
            raise ValidationError(
                message="start_date must not be after end_date", field="start_date"
            )
        now = now or utcnow()

        app_row = (
            await db.execute(
                select(
                    func.count(Application.id),
                    _count_where(Application.status == ApplicationStatus.PENDING),
                    _count_where(Application.status == ApplicationStatus.APPROVED),
                    _count_where(Application.status == ApplicationStatus.REJECTED),
                ).where(*_bounded(Application.created_at, start_date, end_date))
            )
        ).one()
        total, pending, approved, rejected = (int(v or 0) for v in app_row)

        pass_row = (
            await db.execute(
                select(
                    func.count(BusPass.id),
                    _count_where(BusPass.is_active.is_(True) & (BusPass.valid_until >= now)),
                    _count_where(BusPass.valid_until < now),
                ).where(*_bounded(BusPass.created_at, start_date, end_date))
            )
        ).one()
        passes_total, passes_active, passes_expired = (int(v or 0) for v in pass_row)

        revenue_row = (
            await db.execute(
                select(func.sum(Payment.amount), func.count(Payment.id)).where(
                    Payment.status == PaymentStatus.COMPLETED,
                    *_bounded(Payment.created_at, start_date, end_date),
                )
            )
        ).one()
        revenue_total = Decimal(revenue_row[0] or 0)

        logger.debug("Statistics computed for range %s .. %s", start_date, end_date)
        return StatisticsResponse(
            applications=ApplicationCounts(
                total=total, pending=pending, approved=approved, rejected=rejected
            ),
            passes=PassCounts(total=passes_total, active=passes_active, expired=passes_expired),
            revenue=RevenueSummary(
                total=revenue_total, completed_payments=int(revenue_row[1] or 0)
            ),
            start_date=start_date,
            end_date=end_date,
            generated_at=now,
        )


reporting_service = ReportingService()
