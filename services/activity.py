"""
Audit trail for policies.
Every status change and significant action appends one PolicyActivity row; rows are never edited.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping, Optional, Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from models import PolicyActivity
from services.errors import StorageUnavailable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Performer:
    """Who caused an activity. id is None for the system."""

    type: str
    id: Optional[str] = None

    @classmethod
    def system(cls) -> "Performer":
        return cls(type="system")

    @classmethod
    def user(cls, user_id: str) -> "Performer":
        return cls(type="user", id=user_id)

    @classmethod
    def actor(cls, actor_type: str, actor_id: str) -> "Performer":
        return cls(type=actor_type, id=actor_id)


class ActivityLogger(Protocol):
    async def record(
        self,
        policy_id: str,
        action: str,
        performed_by: Optional[Performer],
        details: Any = None,
        ip_address: Optional[str] = None,
        description: Optional[str] = None,
    ) -> PolicyActivity: ...


def to_jsonable(value: Any) -> Any:
    """Coerce arbitrary context into JSON-safe data without ever raising."""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, Enum):
        return to_jsonable(value.value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, Mapping):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_jsonable(v) for v in value]
    try:
        return str(value)
    except Exception:
        return repr(value)


def normalize_details(details: Any) -> dict[str, Any]:
    if details is None:
        return {}
    if isinstance(details, Mapping):
        return to_jsonable(details)
    return {"value": to_jsonable(details)}


class SqlActivityLogger:
    def __init__(self, session: AsyncSession):
        self._session = session

    async def record(
        self,
        policy_id: str,
        action: str,
        performed_by: Optional[Performer],
        details: Any = None,
        ip_address: Optional[str] = None,
        description: Optional[str] = None,
    ) -> PolicyActivity:
        performer = performed_by or Performer.system()
        activity = PolicyActivity(
            policy_id=policy_id,
            action=action,
            description=description,
            performed_by_id=performer.id,
            performed_by_type=performer.type,
            details=normalize_details(details),
            ip_address=ip_address,
            created_at=datetime.now(timezone.utc),
        )
        self._session.add(activity)
        try:
            await self._session.flush()
        except SQLAlchemyError as e:
            # The session needs a rollback before reuse; that is the caller's transaction.
            raise StorageUnavailable(f"Could not record activity '{action}' for policy {policy_id}", e) from e
        logger.debug("Recorded activity %s on policy %s", action, policy_id)
        return activity

    async def list_for_policy(self, policy_id: str, newest_first: bool = True) -> list[PolicyActivity]:
        order = (
            (PolicyActivity.created_at.desc(), PolicyActivity.id.desc())
            if newest_first
            else (PolicyActivity.created_at.asc(), PolicyActivity.id.asc())
        )
        try:
            result = await self._session.execute(
                select(PolicyActivity).where(PolicyActivity.policy_id == policy_id).order_by(*order)
            )
        except SQLAlchemyError as e:
            raise StorageUnavailable(f"Could not read activities for policy {policy_id}", e) from e
        return list(result.scalars().all())
