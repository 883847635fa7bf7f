"""
Tests for actor onboarding (tokens, required fields, submit, automatic advance) and staff review.
Run: python -m pytest tests/test_actors.py -v
"""
import unittest
from datetime import datetime, timedelta, timezone

from models import ActorDocument
from services.activity import Performer, SqlActivityLogger
from services.actors import (
    all_actors_approved,
    apply_fields,
    build_actor,
    find_by_token,
    missing_fields,
    parse_actor_type,
    replace_references,
    submit_actor,
    verify_actor,
    verify_document,
)
from services.completion import ActorType
from services.workflow import load_policy
from tests.support import build_policy, memory_database, save_policy

REVIEWER = Performer.user("staff-1")

COMPLETE_TENANT = {
    "first_name": "María",
    "paternal_last_name": "González",
    "email": "maria@example.com",
    "phone": "5512345678",
    "address": "Calle 1, CDMX",
    "occupation": "Ingeniera",
    "monthly_income": 45000,
}


class TestActorFields(unittest.TestCase):
    def test_parse_actor_type(self):
        self.assertEqual(parse_actor_type("joint-obligor"), ActorType.JOINT_OBLIGOR)
        self.assertEqual(parse_actor_type("Tenant"), ActorType.TENANT)
        self.assertIsNone(parse_actor_type("broker"))

    def test_protected_fields_are_not_written(self):
        actor = build_actor(ActorType.TENANT, "pol-1", {}, token_days=30)
        token = actor.access_token
        written = apply_fields(
            actor, {"first_name": "Ana", "access_token": "x", "information_complete": True, "nope": 1}
        )
        self.assertEqual(written, ["first_name"])
        self.assertEqual(actor.access_token, token)
        self.assertFalse(actor.information_complete)

    def test_review_fields_are_not_written(self):
        actor = build_actor(ActorType.TENANT, "pol-1", {}, token_days=30)
        written = apply_fields(actor, {"verification_status": "APPROVED", "verified_by_id": "me", "phone": "55"})
        self.assertEqual(written, ["phone"])
        self.assertNotEqual(actor.verification_status, "APPROVED")

    def test_missing_fields_for_person(self):
        actor = build_actor(ActorType.TENANT, "pol-1", {"first_name": "Ana"}, token_days=30)
        missing = missing_fields(ActorType.TENANT, actor)
        self.assertIn("email", missing)
        self.assertIn("occupation", missing)
        self.assertIn("references", missing)
        self.assertNotIn("first_name", missing)

    def test_complete_tenant_has_nothing_missing(self):
        actor = build_actor(ActorType.TENANT, "pol-1", COMPLETE_TENANT, token_days=30)
        replace_references(actor, [{"name": "Luis", "phone": "5511111111"}])
        self.assertEqual(missing_fields(ActorType.TENANT, actor), [])

    def test_landlord_clabe_format(self):
        data = {**COMPLETE_TENANT, "bank_name": "BBVA", "clabe": "123"}
        actor = build_actor(ActorType.LANDLORD, "pol-1", data, token_days=30)
        self.assertEqual(missing_fields(ActorType.LANDLORD, actor), ["clabe"])
        actor.clabe = "012180001234567891"
        self.assertEqual(missing_fields(ActorType.LANDLORD, actor), [])

    def test_company_uses_company_fields(self):
        data = {
            "is_company": True,
            "company_name": "Rentas SA",
            "company_rfc": "RSA010101AAA",
            "legal_rep_name": "Pedro Ruiz",
            "email": "legal@rentas.mx",
            "phone": "5500000000",
            "address": "Reforma 10",
            "monthly_income": 900000,
        }
        actor = build_actor(ActorType.TENANT, "pol-1", data, token_days=30)
        replace_references(actor, [{"name": "Proveedor", "kind": "commercial"}])
        self.assertEqual(missing_fields(ActorType.TENANT, actor), [])


class TestActorSubmission(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.database = await memory_database()
        self.session = self.database.session()

    async def asyncTearDown(self):
        await self.session.close()
        await self.database.dispose()

    async def test_expired_token_is_rejected(self):
        policy = build_policy()
        policy.tenant.token_expires_at = datetime.now(timezone.utc) - timedelta(minutes=1)
        token = policy.tenant.access_token
        await save_policy(self.database, policy)

        self.assertIsNone(await find_by_token(self.session, ActorType.TENANT, token))
        self.assertIsNotNone(await find_by_token(self.session, ActorType.LANDLORD, policy.landlords[0].access_token))
        self.assertIsNone(await find_by_token(self.session, ActorType.TENANT, "unknown"))

    async def test_submit_with_missing_fields(self):
        policy = build_policy(status="COLLECTING_INFO", tenant=False)
        await save_policy(self.database, policy)
        tenant = await find_by_token(self.session, ActorType.TENANT, policy.tenant.access_token)

        result = await submit_actor(self.session, ActorType.TENANT, tenant)

        self.assertFalse(result.success)
        self.assertIn("email", result.missing_fields)
        self.assertFalse(tenant.information_complete)

    async def test_last_actor_submit_advances_policy(self):
        policy = build_policy(status="COLLECTING_INFO", tenant=False)
        await save_policy(self.database, policy)
        tenant = await find_by_token(self.session, ActorType.TENANT, policy.tenant.access_token)
        apply_fields(tenant, COMPLETE_TENANT)
        replace_references(tenant, [{"name": "Luis", "phone": "5511111111"}])
        await self.session.flush()

        result = await submit_actor(self.session, ActorType.TENANT, tenant, ip_address="10.0.0.1")

        self.assertTrue(result.success)
        self.assertIsNotNone(result.transition)
        self.assertTrue(result.transition.success)
        stored = await load_policy(self.session, policy.id)
        self.assertEqual(stored.status, "UNDER_INVESTIGATION")
        activities = await SqlActivityLogger(self.session).list_for_policy(policy.id, newest_first=False)
        self.assertEqual([a.action for a in activities], ["actor_information_completed", "under_investigation"])
        self.assertEqual(activities[0].performed_by_type, "tenant")
        self.assertEqual(activities[1].performed_by_type, "system")

    async def test_submit_does_not_advance_while_others_incomplete(self):
        policy = build_policy(status="COLLECTING_INFO", tenant=False, landlord=False)
        await save_policy(self.database, policy)
        tenant = await find_by_token(self.session, ActorType.TENANT, policy.tenant.access_token)
        apply_fields(tenant, COMPLETE_TENANT)
        replace_references(tenant, [{"name": "Luis"}])
        await self.session.flush()

        result = await submit_actor(self.session, ActorType.TENANT, tenant)

        self.assertTrue(result.success)
        self.assertIsNone(result.transition)
        stored = await load_policy(self.session, policy.id)
        self.assertEqual(stored.status, "COLLECTING_INFO")


class TestActorVerification(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.database = await memory_database()
        self.session = self.database.session()

    async def asyncTearDown(self):
        await self.session.close()
        await self.database.dispose()

    async def _policy(self, status="UNDER_INVESTIGATION"):
        policy = build_policy(status=status)
        policy.tenant.documents.append(
            ActorDocument(id=f"doc-{policy.id}", category="ine", file_name="ine.pdf", storage_key="docs/ine.pdf")
        )
        await save_policy(self.database, policy)
        return await load_policy(self.session, policy.id)

    async def test_approve_stamps_reviewer_and_logs(self):
        policy = await self._policy(status="COLLECTING_INFO")

        result = await verify_actor(
            self.session, policy, ActorType.TENANT, policy.tenant.id, "approve", REVIEWER, ip_address="10.0.0.2"
        )
        await self.session.commit()

        self.assertEqual(result.status, "APPROVED")
        self.assertIsNone(result.transition)
        tenant = result.target
        self.assertEqual(tenant.verification_status, "APPROVED")
        self.assertEqual(tenant.verified_by_id, "staff-1")
        self.assertIsNotNone(tenant.verified_at)
        self.assertIsNone(tenant.rejection_reason)
        activities = await SqlActivityLogger(self.session).list_for_policy(policy.id)
        self.assertEqual(activities[0].action, "tenant_approved")
        self.assertEqual(activities[0].ip_address, "10.0.0.2")
        self.assertEqual(activities[0].details["verificationStatus"], "APPROVED")

    async def test_reject_requires_reason(self):
        policy = await self._policy()
        landlord = policy.landlords[0]

        for reason in (None, "  "):
            with self.assertRaises(ValueError):
                await verify_actor(self.session, policy, ActorType.LANDLORD, landlord.id, "reject", REVIEWER, reason)
        self.assertEqual(landlord.verification_status, "PENDING")

        result = await verify_actor(
            self.session, policy, ActorType.LANDLORD, landlord.id, "reject", REVIEWER, reason="CLABE no coincide"
        )
        await self.session.commit()
        self.assertEqual(landlord.verification_status, "REJECTED")
        self.assertEqual(landlord.rejection_reason, "CLABE no coincide")
        activities = await SqlActivityLogger(self.session).list_for_policy(policy.id)
        self.assertEqual(activities[0].action, "landlord_rejected")
        self.assertEqual(activities[0].details["reason"], "CLABE no coincide")
        self.assertEqual(result.status, "REJECTED")

    async def test_actor_of_another_policy_is_not_found(self):
        policy = await self._policy()
        other = await self._policy()

        result = await verify_actor(self.session, policy, ActorType.TENANT, other.tenant.id, "approve", REVIEWER)

        self.assertIsNone(result)
        self.assertEqual(other.tenant.verification_status, "PENDING")

    async def test_last_approval_moves_policy_to_pending_approval(self):
        policy = await self._policy()
        await verify_actor(self.session, policy, ActorType.TENANT, policy.tenant.id, "approve", REVIEWER)
        self.assertFalse(all_actors_approved(policy))

        result = await verify_actor(
            self.session, policy, ActorType.LANDLORD, policy.landlords[0].id, "approve", REVIEWER
        )

        self.assertTrue(result.transition.success)
        stored = await load_policy(self.session, policy.id)
        self.assertEqual(stored.status, "PENDING_APPROVAL")
        activities = await SqlActivityLogger(self.session).list_for_policy(policy.id, newest_first=False)
        self.assertEqual([a.action for a in activities], ["tenant_approved", "landlord_approved", "pending_approval"])
        self.assertEqual(activities[-1].performed_by_type, "system")

    async def test_verify_document(self):
        policy = await self._policy()
        document_id = policy.tenant.documents[0].id

        missing = await verify_document(self.session, policy, "doc-unknown", "approve", REVIEWER)
        self.assertIsNone(missing)
        with self.assertRaises(ValueError):
            await verify_document(self.session, policy, document_id, "reject", REVIEWER)

        result = await verify_document(self.session, policy, document_id, "reject", REVIEWER, reason="Ilegible")
        await self.session.commit()

        document = result.target
        self.assertEqual(document.verification_status, "REJECTED")
        self.assertEqual(document.rejection_reason, "Ilegible")
        self.assertEqual(document.verified_by_id, "staff-1")
        activities = await SqlActivityLogger(self.session).list_for_policy(policy.id)
        self.assertEqual(activities[0].action, "document_rejected")
        self.assertEqual(activities[0].details["actorType"], "tenant")


if __name__ == "__main__":
    unittest.main()
