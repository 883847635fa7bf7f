"""
Policy lifecycle statuses and their display metadata.
Lookups only; nothing here changes state.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class PolicyStatus(str, Enum):
    DRAFT = "DRAFT"
    COLLECTING_INFO = "COLLECTING_INFO"
    UNDER_INVESTIGATION = "UNDER_INVESTIGATION"
    INVESTIGATION_REJECTED = "INVESTIGATION_REJECTED"
    PENDING_APPROVAL = "PENDING_APPROVAL"
    APPROVED = "APPROVED"
    CONTRACT_PENDING = "CONTRACT_PENDING"
    CONTRACT_SIGNED = "CONTRACT_SIGNED"
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"


@dataclass(frozen=True)
class StatusInfo:
    label: str
    color: str
    # Position along the lifecycle; branches share a stage.
    stage: int
    filterable: bool = True


STATUS_INFO: dict[PolicyStatus, StatusInfo] = {
    PolicyStatus.DRAFT: StatusInfo("Borrador", "gray", 0),
    PolicyStatus.COLLECTING_INFO: StatusInfo("Recolectando Información", "blue", 1),
    PolicyStatus.UNDER_INVESTIGATION: StatusInfo("En Investigación", "yellow", 2),
    PolicyStatus.INVESTIGATION_REJECTED: StatusInfo("Rechazado", "red", 3),
    PolicyStatus.PENDING_APPROVAL: StatusInfo("Pendiente de Aprobación", "emerald", 3),
    PolicyStatus.APPROVED: StatusInfo("Aprobada", "teal", 4),
    PolicyStatus.CONTRACT_PENDING: StatusInfo("Contrato Pendiente", "orange", 5),
    PolicyStatus.CONTRACT_SIGNED: StatusInfo("Contrato Firmado", "indigo", 6),
    PolicyStatus.ACTIVE: StatusInfo("Activa", "green", 7),
    PolicyStatus.EXPIRED: StatusInfo("Expirada", "gray", 8),
    PolicyStatus.CANCELLED: StatusInfo("Cancelada", "red", 8),
}

TERMINAL_STATUSES = frozenset({PolicyStatus.EXPIRED, PolicyStatus.CANCELLED})

# Entering one of these needs a written reason.
REJECTION_STATUSES = frozenset({PolicyStatus.INVESTIGATION_REJECTED, PolicyStatus.CANCELLED})


def parse_status(value: object) -> Optional[PolicyStatus]:
    """Return the registered status for value, or None if it is not one."""
    if isinstance(value, PolicyStatus):
        return value
    if not isinstance(value, str):
        return None
    try:
        return PolicyStatus(value)
    except ValueError:
        return None


def _info(status: PolicyStatus | str) -> Optional[StatusInfo]:
    parsed = parse_status(status)
    return STATUS_INFO[parsed] if parsed is not None else None


def label_for(status: PolicyStatus | str) -> str:
    """Spanish display label; unknown values are echoed back."""
    info = _info(status)
    if info is None:
        return str(status)
    return info.label


def color_for(status: PolicyStatus | str) -> str:
    info = _info(status)
    return info.color if info else "gray"


def is_filterable(status: PolicyStatus | str) -> bool:
    info = _info(status)
    return bool(info and info.filterable)


def is_terminal(status: PolicyStatus | str) -> bool:
    return parse_status(status) in TERMINAL_STATUSES


def stage_of(status: PolicyStatus | str) -> int:
    info = _info(status)
    if info is None:
        raise ValueError(f"Unknown policy status: {status}")
    return info.stage


def filterable_statuses() -> list[PolicyStatus]:
    return [s for s in PolicyStatus if STATUS_INFO[s].filterable]


def describe(status: PolicyStatus | str) -> dict[str, str]:
    """Status as shown in API payloads."""
    return {"value": str(getattr(status, "value", status)), "label": label_for(status), "color": color_for(status)}
