"""camelCase response bodies for the frontend."""
from typing import Any, Optional

from models import ActorDocument, ActorReference, Payment, Policy, PolicyActivity
from services.completion import ActorType, CompletionReport
from services.status_registry import describe
from utils.case import dict_keys_to_camel, iso, money

_ACTOR_MONEY = ("monthly_income", "guarantee_property_value")
_ACTOR_HIDDEN = ("access_token", "token_expires_at", "policy_id")


def reference_to_response(r: ActorReference) -> dict[str, Any]:
    return {
        "id": r.id,
        "kind": r.kind,
        "name": r.name,
        "phone": r.phone,
        "email": r.email,
        "relationshipType": r.relationship_type,
    }


def document_to_response(d: ActorDocument) -> dict[str, Any]:
    return {
        "id": d.id,
        "category": d.category,
        "fileName": d.file_name,
        "mimeType": d.mime_type,
        "verificationStatus": d.verification_status,
        "verifiedById": d.verified_by_id,
        "verifiedAt": iso(d.verified_at),
        "rejectionReason": d.rejection_reason,
        "createdAt": iso(d.created_at),
    }


def actor_to_response(actor: Any, actor_type: ActorType, include_token: bool = False) -> dict[str, Any]:
    out: dict[str, Any] = {"actorType": actor_type.value, "displayName": actor.display_name}
    for column in actor.__table__.columns.keys():
        if column in _ACTOR_HIDDEN:
            continue
        value = getattr(actor, column)
        if column in _ACTOR_MONEY:
            value = money(value)
        elif column.endswith("_at"):
            value = iso(value)
        out[column] = value
    if include_token:
        out["access_token"] = actor.access_token
        out["token_expires_at"] = iso(actor.token_expires_at)
    out = dict_keys_to_camel(out)
    out["references"] = [reference_to_response(r) for r in actor.references or []]
    out["documents"] = [document_to_response(d) for d in actor.documents or []]
    return out


def policy_to_response(p: Policy, include_actors: bool = True, include_tokens: bool = False) -> dict[str, Any]:
    out: dict[str, Any] = {
        "id": p.id,
        "policyNumber": p.policy_number,
        "status": p.status,
        "statusInfo": describe(p.status),
        "guarantorType": p.guarantor_type,
        "rentAmount": money(p.rent_amount),
        "contractLengthMonths": p.contract_length_months,
        "premium": money(p.premium),
        "investigationFee": money(p.investigation_fee),
        "subtotal": money(p.subtotal),
        "iva": money(p.iva),
        "totalPrice": money(p.total_price),
        "tenantPercentage": money(p.tenant_percentage),
        "landlordPercentage": money(p.landlord_percentage),
        "propertyAddress": p.property_address,
        "propertyType": p.property_type,
        "createdById": p.created_by_id,
        "submittedAt": iso(p.submitted_at),
        "approvedAt": iso(p.approved_at),
        "rejectedAt": iso(p.rejected_at),
        "contractSignedAt": iso(p.contract_signed_at),
        "activatedAt": iso(p.activated_at),
        "cancelledAt": iso(p.cancelled_at),
        "expiresAt": iso(p.expires_at),
        "rejectionReason": p.rejection_reason,
        "cancellationReason": p.cancellation_reason,
        "createdAt": iso(p.created_at),
        "updatedAt": iso(p.updated_at),
    }
    if include_actors:
        out["tenant"] = (
            actor_to_response(p.tenant, ActorType.TENANT, include_tokens) if p.tenant is not None else None
        )
        out["landlords"] = [actor_to_response(l, ActorType.LANDLORD, include_tokens) for l in p.landlords]
        out["jointObligors"] = [
            actor_to_response(j, ActorType.JOINT_OBLIGOR, include_tokens) for j in p.joint_obligors
        ]
        out["avals"] = [actor_to_response(a, ActorType.AVAL, include_tokens) for a in p.avals]
    return out


def activity_to_response(a: Optional[PolicyActivity]) -> Optional[dict[str, Any]]:
    if a is None:
        return None
    return {
        "id": a.id,
        "policyId": a.policy_id,
        "action": a.action,
        "description": a.description,
        "performedById": a.performed_by_id,
        "performedByType": a.performed_by_type,
        # Stored verbatim; keys are not rewritten
        "details": a.details or {},
        "ipAddress": a.ip_address,
        "createdAt": iso(a.created_at),
    }


def payment_to_response(p: Payment) -> dict[str, Any]:
    return {
        "id": p.id,
        "policyId": p.policy_id,
        "type": p.type,
        "amount": money(p.amount),
        "currency": p.currency,
        "status": p.status,
        "paidBy": p.paid_by,
        "gatewaySessionId": p.gateway_session_id,
        "gatewayIntentId": p.gateway_intent_id,
        "notes": p.notes,
        "paidAt": iso(p.paid_at),
        "createdAt": iso(p.created_at),
        "updatedAt": iso(p.updated_at),
    }


def completion_to_response(report: CompletionReport) -> dict[str, Any]:
    return {
        "satisfied": report.satisfied,
        "missingActors": [a.value for a in report.missing_actors],
        "roles": [
            {
                "actorType": r.actor_type.value,
                "required": r.required,
                "present": r.present,
                "complete": r.complete,
                "state": r.state,
            }
            for r in report.roles
        ],
        "messages": report.messages(),
    }
