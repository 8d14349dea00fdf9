"""
Bus Pass Backend — Payment Ledger Service
=========================================

What:  Records the single payment for an application.
How:   Locks the application row, checks ownership and payment status, then
       inserts a COMPLETED Payment and flips payment_status in one commit.
Who:   Passenger payment route.

There is no gateway integration: the amount charged is always the pass
type's current price and the payment completes immediately. A client may
echo the amount it displayed; if that differs from the price the request is
rejected rather than silently charging something else.
"""

import logging
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from buspass.database import atomic
from buspass.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from buspass.models.application import Application
from buspass.models.enums import PaymentMethod, PaymentStatus
from buspass.models.payment import Payment
from buspass.models.types import utcnow
from buspass.schemas.application import PaymentResponse

logger = logging.getLogger(__name__)

ALREADY_PAID_MESSAGE = "Payment has already been processed for this application"


def generate_transaction_ref() -> str:
    return f"TXN-{uuid.uuid4().hex[:20].upper()}"


class PaymentService:

    async def process_payment(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        application_id: uuid.UUID,
        method: PaymentMethod,
        amount: Optional[Decimal] = None,
        now: Optional[datetime] = None,
    ) -> PaymentResponse:
        """
        Pay for one application.

        Raises:
            NotFoundError:   application missing
            ForbiddenError:  caller does not own the application
            ConflictError:   payment already made (also on a racing duplicate,
                             via the unique index on payments.application_id)
            ValidationError: client amount differs from the pass type price
        """
        method = PaymentMethod(method)
        now = now or utcnow()

        async with atomic(db, conflict_message=ALREADY_PAID_MESSAGE):
            result = await db.execute(
                select(Application)
                .where(Application.id == application_id)
                .options(selectinload(Application.pass_type), selectinload(Application.payment))
                .with_for_update(of=Application)
                .execution_options(populate_existing=True)
            )
            application = result.scalar_one_or_none()
            if application is None:
                raise NotFoundError(resource="application", resource_id=str(application_id))
            if application.user_id != user_id:
                raise ForbiddenError(message="You can only pay for your own applications")
            if application.payment_status is not PaymentStatus.PENDING or application.payment:
                raise ConflictError(message=ALREADY_PAID_MESSAGE)

            price = application.pass_type.price
            if amount is not None and Decimal(amount) != price:
                raise ValidationError(
                    message=f"Payment amount must equal the pass price of {price}",
                    field="amount",
                    context={"expected": str(price), "received": str(amount)},
                )

            payment = Payment(
                application=application,
                amount=price,
                method=method,
                status=PaymentStatus.COMPLETED,
                transaction_ref=generate_transaction_ref(),
                paid_at=now,
            )
            db.add(payment)
            application.payment_status = PaymentStatus.COMPLETED
            application.updated_at = now
            await db.flush()

        logger.info(
            "Payment %s completed for application %s: %s via %s",
            payment.transaction_ref,
            application_id,
            price,
            method.value,
        )
        return PaymentResponse.model_validate(payment)


payment_service = PaymentService()
