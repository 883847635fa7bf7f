"""
Decides whether a policy may move from one status to another.
Pure functions: callers own persistence and logging.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Protocol, Sequence

from services.errors import ErrorCode
from services.status_registry import (
    REJECTION_STATUSES,
    PolicyStatus,
    is_terminal,
    label_for,
    parse_status,
    stage_of,
)

# Forward moves. Rejection/cancellation is handled separately.
FORWARD_TRANSITIONS: dict[PolicyStatus, tuple[PolicyStatus, ...]] = {
    PolicyStatus.DRAFT: (PolicyStatus.COLLECTING_INFO, PolicyStatus.UNDER_INVESTIGATION),
    PolicyStatus.COLLECTING_INFO: (PolicyStatus.UNDER_INVESTIGATION,),
    PolicyStatus.UNDER_INVESTIGATION: (PolicyStatus.PENDING_APPROVAL,),
    PolicyStatus.INVESTIGATION_REJECTED: (PolicyStatus.COLLECTING_INFO, PolicyStatus.UNDER_INVESTIGATION),
    PolicyStatus.PENDING_APPROVAL: (PolicyStatus.APPROVED,),
    PolicyStatus.APPROVED: (PolicyStatus.CONTRACT_PENDING,),
    PolicyStatus.CONTRACT_PENDING: (PolicyStatus.CONTRACT_SIGNED,),
    PolicyStatus.CONTRACT_SIGNED: (PolicyStatus.ACTIVE,),
    PolicyStatus.ACTIVE: (PolicyStatus.EXPIRED,),
    PolicyStatus.EXPIRED: (),
    PolicyStatus.CANCELLED: (),
}

# Forward moves into this stage or beyond need every required actor complete.
GATED_FROM_STAGE = stage_of(PolicyStatus.APPROVED)


@dataclass
class TransitionContext:
    reason: Optional[str] = None
    # Roles the completion gate reports as unfinished; empty means satisfied.
    missing_actors: Sequence[str] = field(default_factory=tuple)
    # Whether the policy premium has a COMPLETED payment.
    premium_paid: bool = False


@dataclass
class TransitionDecision:
    allowed: bool
    reason: Optional[ErrorCode] = None
    message: str = ""
    missing_actors: list[str] = field(default_factory=list)

    @classmethod
    def allow(cls, message: str = "") -> "TransitionDecision":
        return cls(allowed=True, message=message)

    @classmethod
    def deny(cls, reason: ErrorCode, message: str, missing_actors: Sequence[str] = ()) -> "TransitionDecision":
        return cls(allowed=False, reason=reason, message=message, missing_actors=list(missing_actors))


class TransitionValidator(Protocol):
    def validate(
        self, current_status: str, requested_status: str, context: TransitionContext
    ) -> TransitionDecision: ...


def allowed_next_statuses(current_status: str) -> list[PolicyStatus]:
    """Every status reachable in one step, ignoring reason and actor requirements."""
    current = parse_status(current_status)
    if current is None or is_terminal(current):
        return []
    out = list(FORWARD_TRANSITIONS[current])
    for status in (PolicyStatus.INVESTIGATION_REJECTED, PolicyStatus.CANCELLED):
        if status != current and status not in out:
            out.append(status)
    return out


def requires_complete_actors(requested: PolicyStatus) -> bool:
    return requested not in REJECTION_STATUSES and stage_of(requested) >= GATED_FROM_STAGE


class PolicyTransitionValidator:
    """Default rules for the policy lifecycle."""

    def validate(
        self, current_status: str, requested_status: str, context: TransitionContext
    ) -> TransitionDecision:
        requested = parse_status(requested_status)
        if requested is None:
            return TransitionDecision.deny(ErrorCode.INVALID_STATUS, f"Unknown policy status: {requested_status}")

        current = parse_status(current_status)
        if current is None:
            # Stored value outside the registry; nothing can be decided from it.
            return TransitionDecision.deny(
                ErrorCode.INVALID_TRANSITION, f"Policy is in an unrecognized status: {current_status}"
            )

        if requested == current:
            return TransitionDecision.allow("No change")

        if requested in REJECTION_STATUSES:
            if is_terminal(current):
                return TransitionDecision.deny(
                    ErrorCode.INVALID_TRANSITION,
                    f"Cannot transition from {current.value} to {requested.value}: policy is {label_for(current)}",
                )
            if not (context.reason or "").strip():
                return TransitionDecision.deny(
                    ErrorCode.MISSING_REASON, f"A reason is required to move a policy to {requested.value}"
                )
            return TransitionDecision.allow()

        if requested not in FORWARD_TRANSITIONS[current]:
            return TransitionDecision.deny(
                ErrorCode.INVALID_TRANSITION, f"Cannot transition from {current.value} to {requested.value}"
            )

        if requires_complete_actors(requested) and context.missing_actors:
            return TransitionDecision.deny(
                ErrorCode.INCOMPLETE_ACTORS,
                f"Actor information incomplete: {', '.join(context.missing_actors)}",
                missing_actors=context.missing_actors,
            )

        if requested == PolicyStatus.ACTIVE and not context.premium_paid:
            return TransitionDecision.deny(
                ErrorCode.PAYMENT_REQUIRED, "Policy premium must be paid before activation"
            )

        return TransitionDecision.allow()
