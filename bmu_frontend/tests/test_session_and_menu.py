import os
import sys
import time
import unittest
from pathlib import Path

from jose import jwt

APP_DIR = Path(__file__).resolve().parents[1]
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

from services import vault_service
from services.session_service import build_menu, resolve_session


def _token(**claims):
    return jwt.encode(claims, "unrelated-secret", algorithm="HS256")


class SessionResolutionTests(unittest.TestCase):
    def test_claims_are_read_without_signature_check(self):
        token = _token(id="7", username="somchai", first_name="Somchai", last_name="Jaidee", role="Normal", exp=time.time() + 60)
        session = resolve_session(token)
        self.assertIsNotNone(session)
        self.assertEqual(session.user_id, 7)
        self.assertEqual(session.display_identity, "somchai")
        self.assertEqual(session.full_name, "Somchai Jaidee")
        self.assertFalse(session.is_elevated)

    def test_missing_or_garbage_token(self):
        self.assertIsNone(resolve_session(None))
        self.assertIsNone(resolve_session("   "))
        self.assertIsNone(resolve_session("abc.def"))

    def test_expired_token(self):
        token = _token(id=1, username="a", exp=1000)
        self.assertIsNone(resolve_session(token, now=1000))
        self.assertIsNotNone(resolve_session(token, now=999))

    def test_display_identity_fallbacks(self):
        self.assertEqual(resolve_session(_token(id=3, name="Nid")).display_identity, "Nid")
        self.assertEqual(resolve_session(_token(id=3)).display_identity, "User ID: 3")
        self.assertEqual(resolve_session(_token(id=3)).profile()["displayName"], "ผู้ใช้งาน")


class MenuTests(unittest.TestCase):
    def _names(self, role, pending=0):
        session = resolve_session(_token(id=1, username="u", role=role))
        return {item["name"]: item for item in build_menu(session, pending)}

    def test_normal_menu(self):
        names = self._names("Normal")
        self.assertIn("My Equipment", names)
        self.assertNotIn("Approval Requests", names)
        self.assertNotIn("User Management", names)
        self.assertNotIn("Password Manager", names)

    def test_elevated_roles_get_approvals_with_badge(self):
        for role in ("HR", "IT", "OwnerBMU", "Head"):
            names = self._names(role, pending=4)
            self.assertEqual(names["Approval Requests"]["badge"], 4)
            self.assertIn("User Management", names)

    def test_password_manager_only_for_it_and_owner(self):
        self.assertIn("Password Manager", self._names("IT"))
        self.assertIn("Password Manager", self._names("OwnerBMU"))
        self.assertNotIn("Password Manager", self._names("HR"))
        self.assertNotIn("Password Manager", self._names("Head"))

    def test_unknown_role_is_normal(self):
        self.assertNotIn("Approval Requests", self._names("Admin"))


class VaultPinTests(unittest.TestCase):
    def setUp(self):
        self.previous_pin = os.environ.pop("BMU_VAULT_PIN", None)

    def tearDown(self):
        os.environ.pop("BMU_VAULT_PIN", None)
        if self.previous_pin is not None:
            os.environ["BMU_VAULT_PIN"] = self.previous_pin

    def test_default_pin(self):
        self.assertTrue(vault_service.check_pin("9669"))
        self.assertFalse(vault_service.check_pin("1234"))
        self.assertFalse(vault_service.check_pin("96690"))
        self.assertFalse(vault_service.check_pin(None))

    def test_configured_pin(self):
        os.environ["BMU_VAULT_PIN"] = "2468"
        self.assertTrue(vault_service.check_pin("2468"))
        self.assertFalse(vault_service.check_pin("9669"))

    def test_failed_unlock_clears_flag(self):
        store = {}
        self.assertTrue(vault_service.unlock(store, "9669"))
        self.assertTrue(vault_service.is_unlocked(store))
        self.assertFalse(vault_service.unlock(store, "0000"))
        self.assertFalse(vault_service.is_unlocked(store))


if __name__ == "__main__":
    unittest.main()
