"""
Seed a demo policy with a tenant, a landlord and a joint obligor, and print
a staff bearer token plus each actor's form token.
Run: python -m scripts.seed_demo (from the project root).
"""
import asyncio
import os
import sys

# Add parent so we can import the top-level modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import select

from config import settings
from database import Database
from models import Policy
from schemas.policy import PolicyCreate
from services.activity import Performer
from services.auth import JWTAuthVerifier, Role
from services.policies import create_policy
from services.pricing import PricingRates

DEMO_POLICY_NUMBER = "POL-20250101-DMO"
DEMO_STAFF_ID = "staff-demo"

DEMO_POLICY = {
    "policyNumber": DEMO_POLICY_NUMBER,
    "rentAmount": "15000",
    "contractLengthMonths": 12,
    "guarantorType": "JOINT_OBLIGOR",
    "tenantPercentage": "50",
    "landlordPercentage": "50",
    "includeInvestigationFee": True,
    "propertyAddress": "Av. Insurgentes Sur 1234, CDMX",
    "propertyType": "apartment",
    "tenant": {
        "firstName": "María",
        "paternalLastName": "González",
        "email": "maria@example.com",
        "phone": "5512345678",
    },
    "landlords": [
        {
            "firstName": "Jorge",
            "paternalLastName": "Ramírez",
            "email": "jorge@example.com",
            "phone": "5587654321",
        }
    ],
    "jointObligors": [{"firstName": "Ana", "paternalLastName": "López", "email": "ana@example.com"}],
}


async def seed():
    database = Database(settings)
    await database.init_db()
    async with database.session() as session:
        existing = await session.execute(select(Policy).where(Policy.policy_number == DEMO_POLICY_NUMBER))
        if existing.scalar_one_or_none():
            print(f"Policy {DEMO_POLICY_NUMBER} already exists, skipping")
        else:
            policy = await create_policy(
                session,
                PolicyCreate.model_validate(DEMO_POLICY),
                Performer.user(DEMO_STAFF_ID),
                PricingRates.from_settings(settings),
                settings.actor_token_days,
            )
            await session.commit()
            print(f"Seeded policy {policy.policy_number} ({policy.id}), total {policy.total_price}")
            for actor in [policy.tenant, *policy.landlords, *policy.joint_obligors]:
                print(f"  {type(actor).__name__} {actor.display_name}: {actor.access_token}")
    await database.dispose()

    token = JWTAuthVerifier(settings.jwt_secret, settings.jwt_algorithm).issue(DEMO_STAFF_ID, Role.STAFF)
    print(f"Staff bearer token: {token}")
    print("Seed complete.")


if __name__ == "__main__":
    asyncio.run(seed())
