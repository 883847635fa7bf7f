from __future__ import annotations

import logging
import random
import re
import string
import uuid
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models import Policy
from schemas.policy import PolicyCreate
from services.activity import Performer, SqlActivityLogger
from services.actors import build_actor, replace_references
from services.completion import ActorType, GuarantorType
from services.pricing import PricingRates, calculate_pricing
from services.status_registry import PolicyStatus

logger = logging.getLogger(__name__)

POLICY_NUMBER_RE = re.compile(r"^POL-\d{8}-[A-Z0-9]{3}$")
_NUMBER_ATTEMPTS = 10


def generate_policy_number(now: Optional[datetime] = None) -> str:
    """POL-YYYYMMDD-XXX with XXX three random uppercase alphanumerics."""
    now = now or datetime.now()
    suffix = "".join(random.choices(string.ascii_uppercase + string.digits, k=3))
    return f"POL-{now:%Y%m%d}-{suffix}"


def is_valid_policy_number(value: str) -> bool:
    return bool(POLICY_NUMBER_RE.match(value or ""))


async def is_policy_number_unique(session: AsyncSession, policy_number: str) -> bool:
    result = await session.execute(select(Policy.id).where(Policy.policy_number == policy_number))
    return result.scalar_one_or_none() is None


async def assign_policy_number(session: AsyncSession, requested: Optional[str] = None) -> str:
    if requested:
        if not is_valid_policy_number(requested):
            raise ValueError("Formato inválido. Use: POL-YYYYMMDD-XXX")
        if not await is_policy_number_unique(session, requested):
            raise ValueError(f"Policy number {requested} is already in use")
        return requested
    for _ in range(_NUMBER_ATTEMPTS):
        candidate = generate_policy_number()
        if await is_policy_number_unique(session, candidate):
            return candidate
    raise RuntimeError("Could not generate a unique policy number")


def _actor_payload(data: Any) -> tuple[dict[str, Any], list[dict[str, Any]]]:
    fields = data.model_dump(exclude_unset=True, exclude={"references"}, by_alias=False)
    references = [r.model_dump(by_alias=False) for r in (data.references or [])]
    return fields, references


def _add_actor(policy: Policy, actor_type: ActorType, data: Any, token_days: int, is_primary: bool = False):
    fields, references = _actor_payload(data)
    actor = build_actor(actor_type, policy.id, fields, token_days, is_primary=is_primary)
    if references:
        replace_references(actor, references)
    return actor


async def create_policy(
    session: AsyncSession,
    body: PolicyCreate,
    created_by: Performer,
    rates: PricingRates,
    token_days: int,
    ip_address: Optional[str] = None,
) -> Policy:
    """Create a DRAFT policy with its actors and pricing, and log its creation."""
    guarantor_type = body.guarantor_type.value
    if body.joint_obligors and guarantor_type not in (GuarantorType.JOINT_OBLIGOR.value, GuarantorType.BOTH.value):
        raise ValueError(f"Guarantor type {guarantor_type} does not take joint obligors")
    if body.avals and guarantor_type not in (GuarantorType.AVAL.value, GuarantorType.BOTH.value):
        raise ValueError(f"Guarantor type {guarantor_type} does not take avals")

    pricing = calculate_pricing(
        body.rent_amount,
        rates,
        tenant_percentage=body.tenant_percentage,
        landlord_percentage=body.landlord_percentage,
        include_investigation_fee=body.include_investigation_fee,
    )
    policy = Policy(
        id=f"pol-{uuid.uuid4().hex[:12]}",
        policy_number=await assign_policy_number(session, body.policy_number),
        status=PolicyStatus.DRAFT.value,
        guarantor_type=guarantor_type,
        rent_amount=pricing.rent_amount,
        contract_length_months=body.contract_length_months,
        premium=pricing.premium,
        investigation_fee=pricing.investigation_fee,
        subtotal=pricing.subtotal,
        iva=pricing.iva,
        total_price=pricing.total_price,
        tenant_percentage=pricing.tenant_percentage,
        landlord_percentage=pricing.landlord_percentage,
        property_address=body.property_address,
        property_type=body.property_type,
        created_by_id=created_by.id,
    )
    policy.tenant = _add_actor(policy, ActorType.TENANT, body.tenant, token_days) if body.tenant is not None else None
    policy.landlords = [
        _add_actor(policy, ActorType.LANDLORD, l, token_days, is_primary=(i == 0)) for i, l in enumerate(body.landlords)
    ]
    policy.joint_obligors = [_add_actor(policy, ActorType.JOINT_OBLIGOR, j, token_days) for j in body.joint_obligors]
    policy.avals = [_add_actor(policy, ActorType.AVAL, a, token_days) for a in body.avals]
    session.add(policy)
    await session.flush()

    await SqlActivityLogger(session).record(
        policy.id,
        "created",
        created_by,
        {"policyNumber": policy.policy_number, "guarantorType": guarantor_type, "pricing": pricing.to_dict()},
        ip_address=ip_address,
        description=f"Protección {policy.policy_number} creada",
    )
    logger.info("Created policy %s (%s)", policy.id, policy.policy_number)
    return policy


async def list_policies(
    session: AsyncSession, status: Optional[PolicyStatus] = None, created_by_id: Optional[str] = None
) -> list[Policy]:
    query = select(Policy).order_by(Policy.updated_at.desc())
    if status is not None:
        query = query.where(Policy.status == status.value)
    if created_by_id is not None:
        query = query.where(Policy.created_by_id == created_by_id)
    result = await session.execute(query)
    return list(result.scalars().all())
