"""
Tests for the actor completion gate on transient (unsaved) policies.
Run: python -m pytest tests/test_completion_gate.py -v
"""
import unittest

from services.actors import build_actor
from services.completion import ActorCompletionGate, ActorType, required_actor_types
from tests.support import build_policy


class TestRequiredActorTypes(unittest.TestCase):
    def test_guarantor_types(self):
        self.assertEqual(required_actor_types("NONE"), [ActorType.TENANT, ActorType.LANDLORD])
        self.assertIn(ActorType.JOINT_OBLIGOR, required_actor_types("JOINT_OBLIGOR"))
        self.assertNotIn(ActorType.AVAL, required_actor_types("JOINT_OBLIGOR"))
        self.assertEqual(
            required_actor_types("BOTH"),
            [ActorType.TENANT, ActorType.LANDLORD, ActorType.JOINT_OBLIGOR, ActorType.AVAL],
        )


class TestActorCompletionGate(unittest.TestCase):
    def setUp(self):
        self.gate = ActorCompletionGate()

    def test_tenant_and_landlord_complete_without_guarantors(self):
        policy = build_policy(guarantor_type="NONE")
        self.assertTrue(self.gate.is_satisfied(policy))
        self.assertEqual(self.gate.missing_actors(policy), [])

    def test_both_with_incomplete_aval(self):
        policy = build_policy(guarantor_type="BOTH", joint_obligor=True, aval=False)
        self.assertFalse(self.gate.is_satisfied(policy))
        self.assertEqual(self.gate.missing_actors(policy), [ActorType.AVAL])

    def test_missing_role_counts_as_missing(self):
        policy = build_policy(guarantor_type="JOINT_OBLIGOR", tenant=None)
        self.assertEqual(self.gate.missing_actors(policy), [ActorType.TENANT, ActorType.JOINT_OBLIGOR])

    def test_report_tells_missing_from_incomplete(self):
        policy = build_policy(guarantor_type="AVAL", tenant=False, aval=None)
        report = self.gate.report(policy)
        states = {r.actor_type: r.state for r in report.roles}
        self.assertEqual(states[ActorType.TENANT], "incomplete")
        self.assertEqual(states[ActorType.AVAL], "missing")
        self.assertEqual(states[ActorType.JOINT_OBLIGOR], "not_required")
        self.assertEqual(states[ActorType.LANDLORD], "complete")
        self.assertEqual(len(report.messages()), 2)

    def test_unrequired_guarantor_does_not_block(self):
        policy = build_policy(guarantor_type="NONE", aval=False)
        self.assertTrue(self.gate.is_satisfied(policy))

    def test_only_primary_landlord_counts(self):
        policy = build_policy(guarantor_type="NONE")
        co_owner = build_actor(ActorType.LANDLORD, policy.id, {"first_name": "Co"}, token_days=30)
        policy.landlords.append(co_owner)
        self.assertFalse(co_owner.information_complete)
        self.assertTrue(self.gate.is_satisfied(policy))

    def test_first_landlord_used_when_none_primary(self):
        policy = build_policy(guarantor_type="NONE", landlord=False)
        policy.landlords[0].is_primary = False
        self.assertEqual(self.gate.missing_actors(policy), [ActorType.LANDLORD])


if __name__ == "__main__":
    unittest.main()
