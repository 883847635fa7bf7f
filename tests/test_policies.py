"""
Tests for policy creation, numbering and payments.
Run: python -m pytest tests/test_policies.py -v
"""
import unittest
from datetime import datetime
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.exc import InvalidRequestError

from models import Payment, PolicyActivity
from schemas.policy import PolicyCreate
from services.activity import Performer
from services.payments import completed_payment, list_payments, record_payment, update_payment_status
from services.policies import (
    assign_policy_number,
    create_policy,
    generate_policy_number,
    is_valid_policy_number,
    list_policies,
)
from services.pricing import PricingRates
from services.status_registry import PolicyStatus
from services.workflow import load_policy
from tests.support import memory_database, memory_settings

STAFF = Performer.user("staff-1")


def _body(**overrides):
    data = {
        "rentAmount": "15000",
        "guarantorType": "AVAL",
        "tenant": {"firstName": "María", "email": "maria@example.com"},
        "landlords": [{"firstName": "Jorge"}, {"firstName": "Rosa"}],
        "avals": [{"firstName": "Ana"}],
    }
    data.update(overrides)
    return PolicyCreate.model_validate(data)


class TestPolicyNumbers(unittest.TestCase):
    def test_generated_format(self):
        number = generate_policy_number(datetime(2025, 3, 7))
        self.assertTrue(number.startswith("POL-20250307-"))
        self.assertTrue(is_valid_policy_number(number))

    def test_validation(self):
        self.assertTrue(is_valid_policy_number("POL-20250101-A1Z"))
        self.assertFalse(is_valid_policy_number("POL-2025011-A1Z"))
        self.assertFalse(is_valid_policy_number("pol-20250101-a1z"))
        self.assertFalse(is_valid_policy_number(""))

    def test_schema_requires_both_percentages(self):
        with self.assertRaises(ValueError):
            _body(tenantPercentage="60")


class ServiceTestCase(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.database = await memory_database()
        self.session = self.database.session()
        self.rates = PricingRates.from_settings(memory_settings())

    async def asyncTearDown(self):
        await self.session.close()
        await self.database.dispose()

    async def _create(self, **overrides):
        policy = await create_policy(self.session, _body(**overrides), STAFF, self.rates, token_days=30)
        await self.session.commit()
        return policy


class TestPolicyService(ServiceTestCase):
    async def test_create_policy(self):
        policy = await self._create()

        self.assertEqual(policy.status, PolicyStatus.DRAFT.value)
        self.assertTrue(is_valid_policy_number(policy.policy_number))
        self.assertEqual(policy.total_price, Decimal("6960.00"))
        self.assertEqual(policy.created_by_id, "staff-1")
        self.assertEqual(policy.tenant.first_name, "María")
        self.assertEqual([l.is_primary for l in policy.landlords], [True, False])
        self.assertEqual(len(policy.avals), 1)
        self.assertTrue(policy.tenant.access_token)

        result = await self.session.execute(select(PolicyActivity).where(PolicyActivity.policy_id == policy.id))
        created = result.scalars().one()
        self.assertEqual(created.action, "created")
        self.assertEqual(created.details["policyNumber"], policy.policy_number)

    async def test_requested_number_must_be_unique(self):
        await self._create(policyNumber="POL-20250101-AAA")
        with self.assertRaises(ValueError):
            await assign_policy_number(self.session, "POL-20250101-AAA")
        with self.assertRaises(ValueError):
            await assign_policy_number(self.session, "POL-1")

    async def test_guarantor_type_must_match_guarantors(self):
        with self.assertRaises(ValueError):
            await create_policy(
                self.session, _body(guarantorType="NONE"), STAFF, self.rates, token_days=30
            )

    async def test_list_policies_filters(self):
        mine = await self._create()
        await create_policy(self.session, _body(), Performer.user("broker-2"), self.rates, token_days=30)
        await self.session.commit()

        self.assertEqual(len(await list_policies(self.session)), 2)
        owned = await list_policies(self.session, created_by_id="staff-1")
        self.assertEqual([p.id for p in owned], [mine.id])
        self.assertEqual(await list_policies(self.session, status=PolicyStatus.ACTIVE), [])

    async def test_delete_cascades(self):
        policy = await self._create()
        await record_payment(self.session, policy, Decimal("6960"), STAFF)
        await self.session.commit()

        await self.session.delete(await load_policy(self.session, policy.id))
        await self.session.commit()

        self.assertEqual((await self.session.execute(select(PolicyActivity))).scalars().all(), [])
        self.assertEqual((await self.session.execute(select(Payment))).scalars().all(), [])

    async def test_activities_and_payments_are_not_loaded_through_policy(self):
        policy = await self._create()
        await record_payment(self.session, policy, Decimal("6960"), STAFF)
        await self.session.commit()

        loaded = await load_policy(self.session, policy.id)
        with self.assertRaises(InvalidRequestError):
            loaded.activities
        with self.assertRaises(InvalidRequestError):
            loaded.payments
        self.assertEqual(len(await list_payments(self.session, policy.id)), 1)


class TestPayments(ServiceTestCase):
    async def test_single_completed_payment(self):
        policy = await self._create()
        first = await record_payment(self.session, policy, Decimal("3480"), STAFF, paid_by="tenant")
        second = await record_payment(self.session, policy, Decimal("3480"), STAFF, paid_by="tenant")
        await self.session.commit()

        await update_payment_status(self.session, first, "COMPLETED", STAFF)
        await self.session.commit()
        self.assertIsNotNone(first.paid_at)
        self.assertEqual((await completed_payment(self.session, policy.id)).id, first.id)

        with self.assertRaises(ValueError):
            await update_payment_status(self.session, second, "COMPLETED", STAFF)
        self.assertEqual(len(await list_payments(self.session, policy.id)), 2)

    async def test_unknown_payment_status(self):
        policy = await self._create()
        payment = await record_payment(self.session, policy, Decimal("100"), STAFF)
        with self.assertRaises(ValueError):
            await update_payment_status(self.session, payment, "LOST", STAFF)


if __name__ == "__main__":
    unittest.main()
