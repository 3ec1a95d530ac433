import sys
import unittest
from datetime import datetime
from pathlib import Path
from types import SimpleNamespace

APP_DIR = Path(__file__).resolve().parents[1]
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

from schemas.dashboard import DashboardSummary
from services import lifecycle
from services.dashboard_service import build_dashboard_view
from services.lifecycle import InvalidTransitionError, PermissionDeniedError, WorkflowError


class LifecycleTests(unittest.TestCase):
    def test_only_the_five_workflow_edges_are_allowed(self):
        allowed = {
            ("pending_borrow", "borrowed"),
            ("pending_borrow", "rejected"),
            ("borrowed", "pending_return"),
            ("pending_return", "returned"),
            ("pending_return", "rejected"),
        }
        states = ["pending_borrow", "borrowed", "pending_return", "returned", "rejected", "unknown"]
        for current in states:
            for target in states:
                with self.subTest(current=current, target=target):
                    expected = (current, target) in allowed
                    self.assertEqual(lifecycle.can_transition(current, target), expected)
                    if not expected:
                        with self.assertRaises(InvalidTransitionError):
                            lifecycle.ensure_transition(current, target)

    def test_terminal_states_have_no_exit(self):
        for state in lifecycle.TERMINAL_RECORD_STATES:
            for target in lifecycle.RECORD_TRANSITIONS:
                self.assertFalse(lifecycle.can_transition(state, target))

    def test_ensure_transition_raises_workflow_error(self):
        with self.assertRaises(InvalidTransitionError) as ctx:
            lifecycle.ensure_transition("returned", "borrowed")
        self.assertIsInstance(ctx.exception, WorkflowError)
        self.assertEqual(ctx.exception.current, "returned")

    def test_approval_target(self):
        self.assertEqual(lifecycle.approval_target("pending_borrow"), "borrowed")
        self.assertEqual(lifecycle.approval_target("pending_return"), "returned")
        with self.assertRaises(WorkflowError):
            lifecycle.approval_target("borrowed")

    def test_legacy_status_aliases(self):
        self.assertEqual(lifecycle.normalize_equipment_status("ว่าง"), "usable")
        self.assertEqual(lifecycle.normalize_equipment_status("รอซ่อม"), "needs_repair")
        self.assertTrue(lifecycle.is_free("ว่าง"))
        self.assertFalse(lifecycle.is_reportable("รอซ่อม"))

    def test_free_and_reportable_predicates(self):
        self.assertTrue(lifecycle.is_free("usable"))
        for status in ("in_use", "borrowed", "broken", "needs_repair", None):
            self.assertFalse(lifecycle.is_free(status))
        self.assertTrue(lifecycle.is_reportable("borrowed"))
        self.assertFalse(lifecycle.is_reportable("broken"))

    def test_in_use_label_names_holder(self):
        self.assertEqual(lifecycle.equipment_status_label("in_use", "somchai"), "ผู้กำลังใช้งาน: somchai")
        self.assertEqual(lifecycle.equipment_status_label("broken"), "เสีย")
        self.assertEqual(lifecycle.equipment_status_label("mystery"), "mystery")

    def test_require_helpers(self):
        with self.assertRaises(WorkflowError):
            lifecycle.require_text("   ", "required")
        self.assertEqual(lifecycle.require_text(" ok ", "required"), "ok")
        with self.assertRaises(PermissionDeniedError):
            lifecycle.require_elevated(SimpleNamespace(is_elevated=False))
        lifecycle.require_elevated(SimpleNamespace(is_elevated=True))

    def test_return_date_and_location_helpers(self):
        self.assertIsNone(lifecycle.format_return_date(None))
        self.assertEqual(lifecycle.format_return_date(datetime(2026, 10, 20, 17, 30)), "2026-10-20 17:30:00")
        self.assertEqual(lifecycle.toggle_location("office"), "home")
        self.assertEqual(lifecycle.toggle_location("home"), "office")
        self.assertEqual(lifecycle.toggle_location(None), "home")


class DashboardViewTests(unittest.TestCase):
    def test_cards_and_percentages(self):
        summary = DashboardSummary.model_validate(
            {
                "totalEquipment": 10,
                "brokenEquipment": 2,
                "borrowsThisMonth": 3,
                "categoryCounts": [{"name": "Notebook", "value": 3}, {"name": "Monitor", "value": 1}],
            }
        )
        view = build_dashboard_view(summary)
        self.assertEqual([card["key"] for card in view["cards"]], ["totalEquipment", "brokenEquipment", "borrowsThisMonth"])
        self.assertEqual([segment["percent"] for segment in view["pie"]["segments"]], [75, 25])
        self.assertEqual(view["pie"]["segments"][0]["label"], "Notebook 75%")

    def test_empty_categories(self):
        summary = DashboardSummary(totalEquipment=0, brokenEquipment=0, borrowsThisMonth=0)
        self.assertEqual(build_dashboard_view(summary)["pie"]["segments"], [])


if __name__ == "__main__":
    unittest.main()
