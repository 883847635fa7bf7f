"""
Policy status workflow.

Loads a policy, asks the transition validator (with the completion gate's
view of the actors and, for activation, whether the premium is paid),
commits the new status and milestone stamps, then appends the activity
entry. The status change is committed before the log
write; a failed log write is reported back as a warning and does not undo
the status change.
"""
from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from models import Policy, PolicyActivity
from models.payment import PREMIUM_PAYMENT_TYPE
from services.activity import ActivityLogger, Performer, SqlActivityLogger
from services.completion import ActorCompletionGate, CompletionGate
from services.errors import ErrorCode, StorageUnavailable
from services.payments import completed_payment
from services.status_registry import PolicyStatus, label_for, parse_status
from services.transitions import (
    PolicyTransitionValidator,
    TransitionContext,
    TransitionValidator,
    allowed_next_statuses,
)

logger = logging.getLogger(__name__)

# Timestamp column stamped the first time a policy enters each status.
MILESTONE_FIELDS: dict[PolicyStatus, str] = {
    PolicyStatus.UNDER_INVESTIGATION: "submitted_at",
    PolicyStatus.APPROVED: "approved_at",
    PolicyStatus.INVESTIGATION_REJECTED: "rejected_at",
    PolicyStatus.CONTRACT_SIGNED: "contract_signed_at",
    PolicyStatus.ACTIVE: "activated_at",
    PolicyStatus.CANCELLED: "cancelled_at",
}

REASON_FIELDS: dict[PolicyStatus, str] = {
    PolicyStatus.INVESTIGATION_REJECTED: "rejection_reason",
    PolicyStatus.CANCELLED: "cancellation_reason",
}

WORKFLOW_STEPS: list[dict[str, Any]] = [
    {"name": "Creación", "statuses": [PolicyStatus.DRAFT], "description": "Protección creada"},
    {
        "name": "Recolección de Información",
        "statuses": [PolicyStatus.COLLECTING_INFO],
        "description": "Recolectando información de actores",
    },
    {
        "name": "Investigación",
        "statuses": [PolicyStatus.UNDER_INVESTIGATION, PolicyStatus.INVESTIGATION_REJECTED],
        "description": "En proceso de investigación",
    },
    {
        "name": "Aprobación",
        "statuses": [PolicyStatus.PENDING_APPROVAL, PolicyStatus.APPROVED],
        "description": "Pendiente de aprobación",
    },
    {
        "name": "Contrato",
        "statuses": [PolicyStatus.CONTRACT_PENDING, PolicyStatus.CONTRACT_SIGNED],
        "description": "Generación y firma de contrato",
    },
    {"name": "Activación", "statuses": [PolicyStatus.ACTIVE, PolicyStatus.EXPIRED], "description": "Protección activa"},
]

NEXT_ACTIONS: dict[PolicyStatus, str] = {
    PolicyStatus.DRAFT: "Enviar invitaciones a actores",
    PolicyStatus.UNDER_INVESTIGATION: "Completar investigación",
    PolicyStatus.INVESTIGATION_REJECTED: "Revisar y reiniciar investigación",
    PolicyStatus.PENDING_APPROVAL: "Aprobar o rechazar protección",
    PolicyStatus.APPROVED: "Generar contrato",
    PolicyStatus.CONTRACT_PENDING: "Firmar contrato",
    PolicyStatus.CONTRACT_SIGNED: "Procesar pago y activar",
}


@dataclass
class TransitionOutcome:
    success: bool
    policy: Optional[Policy] = None
    activity: Optional[PolicyActivity] = None
    error: Optional[ErrorCode] = None
    message: str = ""
    missing_actors: list[str] = field(default_factory=list)
    # Set when the status change committed but the audit entry did not.
    warning: Optional[str] = None
    changed: bool = False


def add_months(value: datetime, months: int) -> datetime:
    """Same day-of-month `months` later, clamped to the last day of a shorter month."""
    index = value.month - 1 + months
    year, month = value.year + index // 12, index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


async def load_policy(session: AsyncSession, policy_id: str) -> Optional[Policy]:
    try:
        result = await session.execute(select(Policy).where(Policy.id == policy_id))
    except SQLAlchemyError as e:
        raise StorageUnavailable(f"Could not load policy {policy_id}", e) from e
    return result.scalar_one_or_none()


class PolicyWorkflow:
    def __init__(
        self,
        session: AsyncSession,
        validator: Optional[TransitionValidator] = None,
        gate: Optional[CompletionGate] = None,
        activity_logger: Optional[ActivityLogger] = None,
    ):
        self._session = session
        self._validator = validator or PolicyTransitionValidator()
        self._gate = gate or ActorCompletionGate()
        self._activity = activity_logger or SqlActivityLogger(session)

    async def transition(
        self,
        policy_id: str,
        requested_status: str,
        performed_by: Optional[Performer],
        reason: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> TransitionOutcome:
        policy = await load_policy(self._session, policy_id)
        if policy is None:
            return TransitionOutcome(
                success=False, error=ErrorCode.POLICY_NOT_FOUND, message=f"Policy {policy_id} not found"
            )

        previous = policy.status
        if requested_status == previous:
            return TransitionOutcome(success=True, policy=policy, message="No change")

        missing = [a.value for a in self._gate.missing_actors(policy)]
        context = TransitionContext(reason=reason, missing_actors=missing)
        if parse_status(requested_status) == PolicyStatus.ACTIVE:
            context.premium_paid = await self._premium_paid(policy_id)
        decision = self._validator.validate(previous, requested_status, context)
        if not decision.allowed:
            logger.info(
                "Refused transition %s -> %s for policy %s: %s", previous, requested_status, policy_id, decision.message
            )
            return TransitionOutcome(
                success=False,
                policy=policy,
                error=decision.reason,
                message=decision.message,
                missing_actors=[getattr(a, "value", a) for a in decision.missing_actors],
            )

        requested = parse_status(requested_status)
        now = datetime.now(timezone.utc)
        policy.status = requested.value
        policy.updated_at = now
        stamp = MILESTONE_FIELDS.get(requested)
        if stamp and getattr(policy, stamp) is None:
            setattr(policy, stamp, now)
        if requested == PolicyStatus.ACTIVE and policy.expires_at is None:
            policy.expires_at = add_months(now, policy.contract_length_months or 12)
        reason_text = (reason or "").strip() or None
        if reason_text and requested in REASON_FIELDS:
            setattr(policy, REASON_FIELDS[requested], reason_text)

        try:
            await self._session.commit()
        except SQLAlchemyError as e:
            await self._session.rollback()
            raise StorageUnavailable(f"Could not update status of policy {policy_id}", e) from e
        logger.info("Policy %s moved %s -> %s", policy_id, previous, requested.value)

        details: dict[str, Any] = {"previousStatus": previous, "newStatus": requested.value}
        if reason_text:
            details["reason"] = reason_text
        try:
            activity = await self._activity.record(
                policy_id,
                requested.value.lower(),
                performed_by,
                details,
                ip_address=ip_address,
                description=f"Estado cambiado de {label_for(previous)} a {label_for(requested)}",
            )
            await self._session.commit()
        except (StorageUnavailable, SQLAlchemyError) as e:
            logger.warning("Status of policy %s changed but activity was not recorded: %s", policy_id, e)
            await self._session.rollback()
            reloaded: Optional[Policy] = policy
            try:
                await self._session.refresh(policy)
            except SQLAlchemyError as refresh_error:
                # Rolled-back instances are expired and can no longer be read.
                logger.warning("Could not reload policy %s after the failed log write: %s", policy_id, refresh_error)
                reloaded = None
            return TransitionOutcome(
                success=True,
                policy=reloaded,
                changed=True,
                message=f"Status changed to {requested.value}",
                warning="Status updated but the activity log entry could not be written",
            )

        return TransitionOutcome(
            success=True,
            policy=policy,
            activity=activity,
            changed=True,
            message=f"Status changed to {requested.value}",
        )

    async def _premium_paid(self, policy_id: str) -> bool:
        try:
            payment = await completed_payment(self._session, policy_id, payment_type=PREMIUM_PAYMENT_TYPE)
        except SQLAlchemyError as e:
            raise StorageUnavailable(f"Could not read payments for policy {policy_id}", e) from e
        return payment is not None

    def allowed_next_statuses(self, policy: Policy) -> list[PolicyStatus]:
        return allowed_next_statuses(policy.status)

    def progress(self, policy: Policy) -> dict[str, Any]:
        status = parse_status(policy.status)
        current_index = 0
        for i, step in enumerate(WORKFLOW_STEPS):
            if status in step["statuses"]:
                current_index = i
                break
        if status == PolicyStatus.CANCELLED:
            current_index = 0

        steps = []
        for i, step in enumerate(WORKFLOW_STEPS):
            if status == PolicyStatus.CANCELLED:
                state = "cancelled"
            elif i < current_index:
                state = "completed"
            elif i == current_index:
                state = "current"
            else:
                state = "pending"
            steps.append({"name": step["name"], "status": state, "description": step["description"]})

        next_actions = []
        if status == PolicyStatus.COLLECTING_INFO:
            if self._gate.is_satisfied(policy):
                next_actions.append("Iniciar investigación")
            else:
                next_actions.append("Completar información de actores")
        elif status in NEXT_ACTIONS:
            next_actions.append(NEXT_ACTIONS[status])

        return {
            "current_status": policy.status,
            "progress": round(current_index / (len(WORKFLOW_STEPS) - 1) * 100),
            "steps": steps,
            "next_actions": next_actions,
            "allowed_next_statuses": [s.value for s in self.allowed_next_statuses(policy)],
        }
