"""
Actor completion gate.

Projects the stored ``information_complete`` flags of the actors a policy
requires into a pass/fail answer. Field-level validation happens when an
actor submits (services.actors); nothing is re-checked here.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol


class ActorType(str, Enum):
    TENANT = "tenant"
    LANDLORD = "landlord"
    JOINT_OBLIGOR = "joint_obligor"
    AVAL = "aval"


class GuarantorType(str, Enum):
    NONE = "NONE"
    JOINT_OBLIGOR = "JOINT_OBLIGOR"
    AVAL = "AVAL"
    BOTH = "BOTH"


@dataclass
class RoleStatus:
    actor_type: ActorType
    required: bool
    present: int = 0
    complete: int = 0

    @property
    def satisfied(self) -> bool:
        return not self.required or (self.present > 0 and self.complete == self.present)

    @property
    def state(self) -> str:
        if not self.required:
            return "not_required"
        if self.present == 0:
            return "missing"
        return "complete" if self.satisfied else "incomplete"


@dataclass
class CompletionReport:
    roles: list[RoleStatus] = field(default_factory=list)

    @property
    def satisfied(self) -> bool:
        return all(r.satisfied for r in self.roles)

    @property
    def missing_actors(self) -> list[ActorType]:
        return [r.actor_type for r in self.roles if not r.satisfied]

    def messages(self) -> list[str]:
        out = []
        for r in self.roles:
            if r.state == "missing":
                out.append(f"{r.actor_type.value}: not yet created")
            elif r.state == "incomplete":
                out.append(f"{r.actor_type.value}: {r.present - r.complete} of {r.present} incomplete")
        return out


class CompletionGate(Protocol):
    def is_satisfied(self, policy: Any) -> bool: ...

    def missing_actors(self, policy: Any) -> list[ActorType]: ...


def required_actor_types(guarantor_type: str) -> list[ActorType]:
    required = [ActorType.TENANT, ActorType.LANDLORD]
    if guarantor_type in (GuarantorType.JOINT_OBLIGOR.value, GuarantorType.BOTH.value):
        required.append(ActorType.JOINT_OBLIGOR)
    if guarantor_type in (GuarantorType.AVAL.value, GuarantorType.BOTH.value):
        required.append(ActorType.AVAL)
    return required


def _actors_for(policy: Any, actor_type: ActorType) -> list[Any]:
    if actor_type == ActorType.TENANT:
        return [policy.tenant] if policy.tenant is not None else []
    if actor_type == ActorType.LANDLORD:
        # Only the primary landlord signs; co-owners do not hold the policy back.
        landlords = list(policy.landlords or [])
        primary = [l for l in landlords if l.is_primary]
        return primary or landlords[:1]
    if actor_type == ActorType.JOINT_OBLIGOR:
        return list(policy.joint_obligors or [])
    return list(policy.avals or [])


class ActorCompletionGate:
    def report(self, policy: Any) -> CompletionReport:
        guarantor_type = getattr(policy.guarantor_type, "value", policy.guarantor_type) or GuarantorType.NONE.value
        required = set(required_actor_types(guarantor_type))
        roles = []
        for actor_type in ActorType:
            actors = _actors_for(policy, actor_type)
            roles.append(
                RoleStatus(
                    actor_type=actor_type,
                    required=actor_type in required,
                    present=len(actors),
                    complete=sum(1 for a in actors if a.information_complete),
                )
            )
        return CompletionReport(roles=roles)

    def is_satisfied(self, policy: Any) -> bool:
        return self.report(policy).satisfied

    def missing_actors(self, policy: Any) -> list[ActorType]:
        return self.report(policy).missing_actors
