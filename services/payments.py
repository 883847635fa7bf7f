from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models import Payment, Policy
from models.payment import PAYMENT_STATUSES, PREMIUM_PAYMENT_TYPE
from services.activity import Performer, SqlActivityLogger

logger = logging.getLogger(__name__)


async def list_payments(session: AsyncSession, policy_id: str) -> list[Payment]:
    result = await session.execute(
        select(Payment).where(Payment.policy_id == policy_id).order_by(Payment.created_at.asc())
    )
    return list(result.scalars().all())


async def completed_payment(
    session: AsyncSession, policy_id: str, payment_type: Optional[str] = None
) -> Optional[Payment]:
    """The authoritative payment for a policy, if it has been paid. Narrow to one payment type if given."""
    query = select(Payment).where(Payment.policy_id == policy_id, Payment.status == "COMPLETED")
    if payment_type is not None:
        query = query.where(Payment.type == payment_type)
    result = await session.execute(query)
    return result.scalars().first()


async def record_payment(
    session: AsyncSession,
    policy: Policy,
    amount: Decimal,
    performed_by: Performer,
    currency: str = "MXN",
    payment_type: str = PREMIUM_PAYMENT_TYPE,
    paid_by: Optional[str] = None,
    gateway_session_id: Optional[str] = None,
    gateway_intent_id: Optional[str] = None,
    notes: Optional[str] = None,
) -> Payment:
    payment = Payment(
        id=f"pay-{uuid.uuid4().hex[:12]}",
        policy_id=policy.id,
        type=payment_type,
        amount=amount,
        currency=currency.upper(),
        status="PENDING",
        paid_by=paid_by,
        gateway_session_id=gateway_session_id,
        gateway_intent_id=gateway_intent_id,
        notes=notes,
    )
    session.add(payment)
    await session.flush()
    await SqlActivityLogger(session).record(
        policy.id,
        "payment_created",
        performed_by,
        {"paymentId": payment.id, "amount": amount, "currency": payment.currency, "paidBy": paid_by},
        description=f"Pago registrado por {amount} {payment.currency}",
    )
    return payment


async def update_payment_status(
    session: AsyncSession, payment: Payment, status: str, performed_by: Performer
) -> Payment:
    status = status.upper()
    if status not in PAYMENT_STATUSES:
        raise ValueError(f"Unknown payment status: {status}")
    if status == payment.status:
        return payment
    if status == "COMPLETED":
        existing = await completed_payment(session, payment.policy_id)
        if existing is not None and existing.id != payment.id:
            raise ValueError(f"Policy already has a completed payment ({existing.id})")
        payment.paid_at = datetime.now(timezone.utc)

    previous = payment.status
    payment.status = status
    payment.updated_at = datetime.now(timezone.utc)
    await session.flush()
    await SqlActivityLogger(session).record(
        payment.policy_id,
        f"payment_{status.lower()}",
        performed_by,
        {"paymentId": payment.id, "previousStatus": previous, "newStatus": status},
        description=f"Pago {payment.id}: {previous} → {status}",
    )
    logger.info("Payment %s moved %s -> %s", payment.id, previous, status)
    return payment


async def get_payment(session: AsyncSession, payment_id: str) -> Optional[Payment]:
    result = await session.execute(select(Payment).where(Payment.id == payment_id))
    return result.scalar_one_or_none()
