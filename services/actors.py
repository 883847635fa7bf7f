"""
Actor onboarding: access tokens, field updates and the server-side completeness check.
"""
from __future__ import annotations

import logging
import re
import secrets
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Iterator, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from models import ACTOR_MODELS, ActorDocument, ActorReference, Landlord, Policy
from services.activity import Performer, SqlActivityLogger
from services.completion import ActorCompletionGate, ActorType
from services.errors import StorageUnavailable
from services.status_registry import PolicyStatus
from services.workflow import PolicyWorkflow, TransitionOutcome, load_policy

logger = logging.getLogger(__name__)

ID_PREFIXES = {
    ActorType.TENANT: "ten",
    ActorType.LANDLORD: "lan",
    ActorType.JOINT_OBLIGOR: "job",
    ActorType.AVAL: "avl",
}

# Never written from request payloads
PROTECTED_FIELDS = frozenset(
    {
        "id",
        "policy_id",
        "information_complete",
        "completed_at",
        "access_token",
        "token_expires_at",
        "created_at",
        "updated_at",
        "is_primary",
        "verification_status",
        "verified_by_id",
        "verified_at",
        "rejection_reason",
    }
)

PERSON_FIELDS = ("first_name", "paternal_last_name", "email", "phone", "address")
COMPANY_FIELDS = ("company_name", "company_rfc", "legal_rep_name", "email", "phone", "address")

TYPE_FIELDS: dict[ActorType, tuple[str, ...]] = {
    ActorType.TENANT: ("occupation", "monthly_income"),
    ActorType.LANDLORD: ("bank_name", "clabe"),
    ActorType.JOINT_OBLIGOR: ("relationship_to_tenant", "guarantee_method"),
    ActorType.AVAL: ("relationship_to_tenant", "guarantee_property_address", "guarantee_property_value"),
}

# Minimum references before the actor can submit
MIN_REFERENCES: dict[ActorType, int] = {
    ActorType.TENANT: 1,
    ActorType.LANDLORD: 0,
    ActorType.JOINT_OBLIGOR: 1,
    ActorType.AVAL: 1,
}

CLABE_RE = re.compile(r"^\d{18}$")
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def parse_actor_type(value: str) -> Optional[ActorType]:
    try:
        return ActorType(value.replace("-", "_").lower())
    except ValueError:
        return None


def new_token() -> str:
    return secrets.token_urlsafe(32)


def build_actor(
    actor_type: ActorType, policy_id: str, data: dict[str, Any], token_days: int, is_primary: bool = False
):
    model = ACTOR_MODELS[actor_type.value]
    actor = model(
        id=f"{ID_PREFIXES[actor_type]}-{uuid.uuid4().hex[:12]}",
        policy_id=policy_id,
        information_complete=False,
        access_token=new_token(),
        token_expires_at=datetime.now(timezone.utc) + timedelta(days=token_days),
        references=[],
        documents=[],
    )
    if isinstance(actor, Landlord):
        actor.is_primary = is_primary
    apply_fields(actor, data)
    return actor


def apply_fields(actor: Any, data: dict[str, Any]) -> list[str]:
    """Copy known, writable columns from data onto actor. Returns the names written."""
    columns = actor.__table__.columns
    written = []
    for key, value in data.items():
        if key in PROTECTED_FIELDS or key not in columns:
            continue
        if value is None and not columns[key].nullable:
            continue
        setattr(actor, key, value)
        written.append(key)
    return written


def replace_references(actor: Any, references: list[dict[str, Any]]) -> None:
    actor.references = [ActorReference(id=f"ref-{uuid.uuid4().hex[:12]}", **ref) for ref in references]


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def missing_fields(actor_type: ActorType, actor: Any) -> list[str]:
    """Required data the actor still lacks; empty means it may be marked complete."""
    base = COMPANY_FIELDS if actor.is_company else PERSON_FIELDS
    required = list(base) + list(TYPE_FIELDS[actor_type])
    if actor_type == ActorType.JOINT_OBLIGOR and getattr(actor, "guarantee_method", None) == "income":
        required.append("monthly_income")
    if actor_type == ActorType.TENANT and actor.is_company:
        required = [f for f in required if f != "occupation"]

    missing = [f for f in required if _blank(getattr(actor, f, None))]
    if actor.email and not EMAIL_RE.match(actor.email) and "email" not in missing:
        missing.append("email")
    if actor_type == ActorType.LANDLORD and actor.clabe and not CLABE_RE.match(actor.clabe):
        missing.append("clabe")
    if len(actor.references or []) < MIN_REFERENCES[actor_type]:
        missing.append("references")
    return missing


@dataclass
class SubmitResult:
    success: bool
    missing_fields: list[str] = field(default_factory=list)
    transition: Optional[TransitionOutcome] = None
    warning: Optional[str] = None


async def find_by_token(session: AsyncSession, actor_type: ActorType, token: str):
    """Actor holding a live token, or None if unknown or expired."""
    model = ACTOR_MODELS[actor_type.value]
    result = await session.execute(select(model).where(model.access_token == token))
    actor = result.scalar_one_or_none()
    if actor is None:
        return None
    expires = actor.token_expires_at
    if expires is not None:
        if expires.tzinfo is None:
            expires = expires.replace(tzinfo=timezone.utc)
        if expires < datetime.now(timezone.utc):
            logger.info("Expired %s token used for actor %s", actor_type.value, actor.id)
            return None
    return actor


async def find_by_id(session: AsyncSession, actor_type: ActorType, actor_id: str):
    model = ACTOR_MODELS[actor_type.value]
    result = await session.execute(select(model).where(model.id == actor_id))
    return result.scalar_one_or_none()


async def add_actor_to_policy(
    session: AsyncSession,
    policy: Policy,
    actor_type: ActorType,
    data: dict[str, Any],
    token_days: int,
    references: Optional[list[dict[str, Any]]] = None,
):
    if actor_type == ActorType.TENANT and policy.tenant is not None:
        raise ValueError("Policy already has a tenant")
    is_primary = actor_type == ActorType.LANDLORD and not policy.landlords
    actor = build_actor(actor_type, policy.id, data, token_days, is_primary=is_primary)
    if references:
        replace_references(actor, references)
    session.add(actor)
    await session.flush()
    return actor


async def submit_actor(
    session: AsyncSession,
    actor_type: ActorType,
    actor: Any,
    ip_address: Optional[str] = None,
) -> SubmitResult:
    """Re-validate the actor's data, mark it complete and advance the policy when every actor is done."""
    missing = missing_fields(actor_type, actor)
    if missing:
        return SubmitResult(success=False, missing_fields=missing)

    activity_logger = SqlActivityLogger(session)
    warning = None
    if not actor.information_complete:
        actor.information_complete = True
        actor.completed_at = datetime.now(timezone.utc)
        await session.commit()
        try:
            await activity_logger.record(
                actor.policy_id,
                "actor_information_completed",
                Performer.actor(actor_type.value, actor.id),
                {"actorType": actor_type.value, "actorId": actor.id, "actorName": actor.display_name},
                ip_address=ip_address,
                description=f"{actor_type.value} completó su información",
            )
            await session.commit()
        except (StorageUnavailable, SQLAlchemyError) as e:
            logger.warning("Actor %s marked complete but activity was not recorded: %s", actor.id, e)
            await session.rollback()
            warning = "Information saved but the activity log entry could not be written"

    policy = await load_policy(session, actor.policy_id)
    outcome = None
    if policy is not None and policy.status == PolicyStatus.COLLECTING_INFO.value:
        await session.refresh(policy)
        if ActorCompletionGate().is_satisfied(policy):
            outcome = await PolicyWorkflow(session, activity_logger=activity_logger).transition(
                policy.id,
                PolicyStatus.UNDER_INVESTIGATION.value,
                Performer.system(),
                reason="All actor information completed",
            )
    return SubmitResult(success=True, transition=outcome, warning=warning)


# Staff review of actors and their documents
REVIEW_STATUSES = {"approve": "APPROVED", "reject": "REJECTED"}


@dataclass
class VerifyResult:
    target: Any
    status: str
    # Set when the approval left every actor approved and the policy moved on.
    transition: Optional[TransitionOutcome] = None


def policy_actors(policy: Policy) -> Iterator[tuple[ActorType, Any]]:
    if policy.tenant is not None:
        yield ActorType.TENANT, policy.tenant
    for landlord in policy.landlords or []:
        yield ActorType.LANDLORD, landlord
    for obligor in policy.joint_obligors or []:
        yield ActorType.JOINT_OBLIGOR, obligor
    for aval in policy.avals or []:
        yield ActorType.AVAL, aval


def all_actors_approved(policy: Policy) -> bool:
    """Tenant and at least one landlord present, and every actor on the policy approved."""
    if policy.tenant is None or not policy.landlords:
        return False
    return all(actor.verification_status == "APPROVED" for _, actor in policy_actors(policy))


def find_policy_document(policy: Policy, document_id: str) -> Optional[tuple[ActorType, Any, ActorDocument]]:
    for actor_type, actor in policy_actors(policy):
        for document in actor.documents or []:
            if document.id == document_id:
                return actor_type, actor, document
    return None


def apply_review(target: Any, action: str, reviewer: Performer, reason: Optional[str] = None) -> str:
    status = REVIEW_STATUSES.get(action)
    if status is None:
        raise ValueError(f"Unknown verification action: {action}")
    reason_text = (reason or "").strip() or None
    if status == "REJECTED" and reason_text is None:
        raise ValueError("Rejection reason is required")
    target.verification_status = status
    target.verified_by_id = reviewer.id
    target.verified_at = datetime.now(timezone.utc)
    target.rejection_reason = reason_text if status == "REJECTED" else None
    return status


async def verify_actor(
    session: AsyncSession,
    policy: Policy,
    actor_type: ActorType,
    actor_id: str,
    action: str,
    reviewer: Performer,
    reason: Optional[str] = None,
    ip_address: Optional[str] = None,
) -> Optional[VerifyResult]:
    """
    Approve or reject an actor of the policy. Returns None when the actor does
    not belong to the policy. Approving the last pending actor of a policy under
    investigation moves it to PENDING_APPROVAL.
    """
    actor = await find_by_id(session, actor_type, actor_id)
    if actor is None or actor.policy_id != policy.id:
        return None

    status = apply_review(actor, action, reviewer, reason)
    await session.flush()
    approved = status == "APPROVED"
    details = {"actorType": actor_type.value, "actorId": actor.id, "verificationStatus": status}
    if actor.rejection_reason:
        details["reason"] = actor.rejection_reason
    await SqlActivityLogger(session).record(
        policy.id,
        f"{actor_type.value}_{'approved' if approved else 'rejected'}",
        reviewer,
        details,
        ip_address=ip_address,
        description=f"{actor.display_name or actor_type.value} fue {'aprobado' if approved else 'rechazado'}",
    )
    logger.info("Actor %s on policy %s marked %s", actor.id, policy.id, status)

    result = VerifyResult(target=actor, status=status)
    if approved and policy.status == PolicyStatus.UNDER_INVESTIGATION.value and all_actors_approved(policy):
        result.transition = await PolicyWorkflow(session).transition(
            policy.id,
            PolicyStatus.PENDING_APPROVAL.value,
            Performer.system(),
            reason="All actors approved",
        )
    return result


async def verify_document(
    session: AsyncSession,
    policy: Policy,
    document_id: str,
    action: str,
    reviewer: Performer,
    reason: Optional[str] = None,
    ip_address: Optional[str] = None,
) -> Optional[VerifyResult]:
    found = find_policy_document(policy, document_id)
    if found is None:
        return None
    actor_type, actor, document = found

    status = apply_review(document, action, reviewer, reason)
    await session.flush()
    details = {
        "documentId": document.id,
        "category": document.category,
        "actorType": actor_type.value,
        "actorId": actor.id,
        "verificationStatus": status,
    }
    if document.rejection_reason:
        details["reason"] = document.rejection_reason
    await SqlActivityLogger(session).record(
        policy.id,
        f"document_{status.lower()}",
        reviewer,
        details,
        ip_address=ip_address,
        description=f"Documento {document.file_name} {'aprobado' if status == 'APPROVED' else 'rechazado'}",
    )
    return VerifyResult(target=document, status=status)
