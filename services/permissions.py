"""Role capability checks. All route-level role decisions go through check_capability."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from services.auth import AuthUser, Role
from services.errors import ErrorCode


class Capability(str, Enum):
    VIEW_POLICY = "view_policy"
    CREATE_POLICY = "create_policy"
    DELETE_POLICY = "delete_policy"
    CHANGE_STATUS = "change_status"
    MANAGE_ACTORS = "manage_actors"
    RECORD_PAYMENT = "record_payment"
    VERIFY_ACTORS = "verify_actors"


ROLE_CAPABILITIES: dict[Role, frozenset[Capability]] = {
    Role.ADMIN: frozenset(Capability),
    Role.STAFF: frozenset(Capability),
    Role.BROKER: frozenset({Capability.VIEW_POLICY, Capability.CREATE_POLICY, Capability.MANAGE_ACTORS}),
}

# Brokers only act on the policies they created.
OWNERSHIP_SCOPED: frozenset[Role] = frozenset({Role.BROKER})


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    code: Optional[ErrorCode] = None
    message: str = ""


def check_capability(user: Optional[AuthUser], capability: Capability, policy: Any = None) -> AccessDecision:
    if user is None:
        return AccessDecision(False, ErrorCode.UNAUTHORIZED, "Authentication required")
    if capability not in ROLE_CAPABILITIES.get(user.role, frozenset()):
        return AccessDecision(False, ErrorCode.FORBIDDEN, f"Role {user.role.value} cannot {capability.value}")
    if policy is not None and user.role in OWNERSHIP_SCOPED and policy.created_by_id != user.id:
        return AccessDecision(False, ErrorCode.FORBIDDEN, "Policy belongs to another broker")
    return AccessDecision(True)


def is_ownership_scoped(user: AuthUser) -> bool:
    return user.role in OWNERSHIP_SCOPED
