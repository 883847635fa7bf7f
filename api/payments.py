from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_user, get_policy_or_404, require
from api.serializers import payment_to_response
from database import get_db
from schemas.payment import PaymentCreate, PaymentStatusUpdate
from services.activity import Performer
from services.auth import AuthUser
from services.payments import get_payment, list_payments, record_payment, update_payment_status
from services.permissions import Capability

router = APIRouter(tags=["payments"])


@router.get("/policies/{policy_id}/payments")
async def list_policy_payments(
    policy_id: str, user: AuthUser = Depends(get_current_user), db: AsyncSession = Depends(get_db)
):
    policy = await get_policy_or_404(policy_id, db)
    require(user, Capability.VIEW_POLICY, policy)
    return [payment_to_response(p) for p in await list_payments(db, policy.id)]


@router.post("/policies/{policy_id}/payments", status_code=201)
async def create_policy_payment(
    policy_id: str,
    body: PaymentCreate,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    require(user, Capability.RECORD_PAYMENT)
    policy = await get_policy_or_404(policy_id, db)
    payment = await record_payment(
        db,
        policy,
        body.amount,
        Performer.user(user.id),
        currency=body.currency,
        payment_type=body.type,
        paid_by=body.paid_by,
        gateway_session_id=body.gateway_session_id,
        gateway_intent_id=body.gateway_intent_id,
        notes=body.notes,
    )
    return payment_to_response(payment)


@router.put("/payments/{payment_id}/status")
async def update_status_of_payment(
    payment_id: str,
    body: PaymentStatusUpdate,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    require(user, Capability.RECORD_PAYMENT)
    payment = await get_payment(db, payment_id)
    if not payment:
        raise HTTPException(status_code=404, detail="Payment not found")
    try:
        payment = await update_payment_status(db, payment, body.status, Performer.user(user.id))
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return payment_to_response(payment)
