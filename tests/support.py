"""
Shared builders for tests: an in-memory database and policies with actors in a given state.
"""
import uuid
from decimal import Decimal

from config import Settings
from database import Database
from models import Policy
from services.actors import build_actor
from services.completion import ActorType

TEST_SECRET = "test-secret"


def memory_settings(**overrides) -> Settings:
    values = {"database_url": "sqlite+aiosqlite:///:memory:", "jwt_secret": TEST_SECRET}
    values.update(overrides)
    return Settings(**values)


async def memory_database() -> Database:
    database = Database(memory_settings())
    await database.init_db()
    return database


def _actor(actor_type: ActorType, policy_id: str, complete: bool, is_primary: bool = False):
    actor = build_actor(
        actor_type, policy_id, {"first_name": actor_type.value.title()}, token_days=30, is_primary=is_primary
    )
    actor.information_complete = complete
    return actor


def build_policy(
    status: str = "DRAFT",
    guarantor_type: str = "NONE",
    tenant=True,
    landlord=True,
    joint_obligor=None,
    aval=None,
    created_by_id: str = "staff-1",
) -> Policy:
    """
    Transient policy with actors. For each role pass True/False for an actor
    with that completion flag, or None to leave the role empty.
    """
    policy_id = f"pol-{uuid.uuid4().hex[:12]}"
    policy = Policy(
        id=policy_id,
        policy_number=f"POL-20250101-{uuid.uuid4().hex[:3].upper()}",
        status=status,
        guarantor_type=guarantor_type,
        rent_amount=Decimal("10000"),
        premium=Decimal("4000"),
        subtotal=Decimal("4000"),
        iva=Decimal("640"),
        total_price=Decimal("4640"),
        created_by_id=created_by_id,
    )
    policy.tenant = _actor(ActorType.TENANT, policy_id, tenant) if tenant is not None else None
    policy.landlords = [_actor(ActorType.LANDLORD, policy_id, landlord, is_primary=True)] if landlord is not None else []
    policy.joint_obligors = (
        [_actor(ActorType.JOINT_OBLIGOR, policy_id, joint_obligor)] if joint_obligor is not None else []
    )
    policy.avals = [_actor(ActorType.AVAL, policy_id, aval)] if aval is not None else []
    return policy


async def save_policy(database: Database, policy: Policy) -> str:
    async with database.session() as session:
        session.add(policy)
        await session.commit()
    return policy.id
