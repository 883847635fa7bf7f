"""
Tests for bearer-token verification and role capabilities.
Run: python -m pytest tests/test_auth.py -v
"""
import unittest
from datetime import timedelta
from types import SimpleNamespace

import jwt

from services.auth import AuthUser, JWTAuthVerifier, Role
from services.errors import ErrorCode
from services.permissions import Capability, check_capability

SECRET = "test-secret"


class TestJWTAuthVerifier(unittest.TestCase):
    def setUp(self):
        self.verifier = JWTAuthVerifier(SECRET)

    def test_round_trip(self):
        token = self.verifier.issue("u-1", Role.BROKER, email="b@example.com")
        result = self.verifier.verify(token)
        self.assertTrue(result.success)
        self.assertEqual(result.user, AuthUser(id="u-1", role=Role.BROKER, email="b@example.com"))

    def test_missing_and_garbage_tokens(self):
        self.assertEqual(self.verifier.verify(None).error, "Missing bearer token")
        self.assertFalse(self.verifier.verify("abc.def.ghi").success)

    def test_expired(self):
        token = self.verifier.issue("u-1", Role.STAFF, expires_in=timedelta(seconds=-5))
        self.assertEqual(self.verifier.verify(token).error, "Token expired")

    def test_wrong_secret(self):
        token = JWTAuthVerifier("other").issue("u-1", Role.STAFF)
        self.assertEqual(self.verifier.verify(token).error, "Invalid token")

    def test_unknown_role(self):
        token = jwt.encode({"sub": "u-1", "role": "TENANT"}, SECRET, algorithm="HS256")
        self.assertEqual(self.verifier.verify(token).error, "Unknown role")

    def test_role_is_case_insensitive(self):
        token = jwt.encode({"sub": "u-1", "role": "admin"}, SECRET, algorithm="HS256")
        self.assertEqual(self.verifier.verify(token).user.role, Role.ADMIN)


class TestCapabilities(unittest.TestCase):
    def test_unauthenticated(self):
        decision = check_capability(None, Capability.VIEW_POLICY)
        self.assertEqual(decision.code, ErrorCode.UNAUTHORIZED)

    def test_staff_can_change_status(self):
        staff = AuthUser(id="s-1", role=Role.STAFF)
        self.assertTrue(check_capability(staff, Capability.CHANGE_STATUS).allowed)

    def test_broker_cannot_change_status(self):
        broker = AuthUser(id="b-1", role=Role.BROKER)
        decision = check_capability(broker, Capability.CHANGE_STATUS)
        self.assertFalse(decision.allowed)
        self.assertEqual(decision.code, ErrorCode.FORBIDDEN)

    def test_only_staff_and_admin_verify_actors(self):
        for role in (Role.STAFF, Role.ADMIN):
            self.assertTrue(check_capability(AuthUser(id="u-1", role=role), Capability.VERIFY_ACTORS).allowed)
        broker = check_capability(AuthUser(id="b-1", role=Role.BROKER), Capability.VERIFY_ACTORS)
        self.assertEqual(broker.code, ErrorCode.FORBIDDEN)

    def test_broker_scoped_to_own_policies(self):
        broker = AuthUser(id="b-1", role=Role.BROKER)
        self.assertTrue(check_capability(broker, Capability.VIEW_POLICY, SimpleNamespace(created_by_id="b-1")).allowed)
        other = check_capability(broker, Capability.VIEW_POLICY, SimpleNamespace(created_by_id="b-2"))
        self.assertEqual(other.code, ErrorCode.FORBIDDEN)

    def test_admin_not_scoped(self):
        admin = AuthUser(id="a-1", role=Role.ADMIN)
        self.assertTrue(check_capability(admin, Capability.DELETE_POLICY, SimpleNamespace(created_by_id="x")).allowed)


if __name__ == "__main__":
    unittest.main()
