"""
Tests for the reconciliation engine
"""

import ipaddress
import random
import unittest
from unittest.mock import Mock

from geo_blackhole.bgp.attributes import AttributeEncoder
from geo_blackhole.models import Action, ReconciliationPlan
from geo_blackhole.reconcile import ReconciliationEngine, apply_plan_to_set
from geo_blackhole.utils.error_handling import RouteSubmissionError


class TestReconcile(unittest.TestCase):
    """Set difference in both directions"""

    def setUp(self):
        self.engine = ReconciliationEngine(AttributeEncoder("192.0.2.1", ["100:200"]))

    def test_end_to_end_example(self):
        plan = self.engine.reconcile(
            desired=["198.51.100.0/24", "192.0.2.0/24"],
            active=["203.0.113.0/24", "198.51.100.0/24"],
        )
        self.assertEqual(plan.to_withdraw, {"203.0.113.0/24"})
        self.assertEqual(plan.to_announce, {"192.0.2.0/24"})
        self.assertEqual(plan.unchanged, {"198.51.100.0/24"})

    def test_identical_sets_produce_empty_plan(self):
        prefixes = ["10.0.0.0/8", "172.16.0.0/12", "192.168.0.0/16"]
        plan = self.engine.reconcile(prefixes, list(reversed(prefixes)))
        self.assertTrue(plan.is_empty)
        self.assertEqual(plan.to_withdraw, frozenset())
        self.assertEqual(plan.to_announce, frozenset())

    def test_first_run_announces_everything(self):
        plan = self.engine.reconcile(["10.0.0.0/8"], [])
        self.assertEqual(plan.to_announce, {"10.0.0.0/8"})
        self.assertEqual(plan.to_withdraw, frozenset())

    def test_networks_and_strings_share_keys(self):
        plan = self.engine.reconcile([ipaddress.IPv4Network("10.0.0.0/8")], ["10.0.0.0/8"])
        self.assertTrue(plan.is_empty)

    def test_same_base_different_length_is_distinct(self):
        plan = self.engine.reconcile(["10.0.0.0/8"], ["10.0.0.0/9"])
        self.assertEqual(plan.to_withdraw, {"10.0.0.0/9"})
        self.assertEqual(plan.to_announce, {"10.0.0.0/8"})

    def test_randomized_plan_properties(self):
        rng = random.Random(42)
        universe = [f"10.{i}.0.0/16" for i in range(40)]
        for _ in range(50):
            desired = set(rng.sample(universe, rng.randint(0, 40)))
            active = set(rng.sample(universe, rng.randint(0, 40)))
            plan = self.engine.reconcile(desired, active)

            self.assertEqual(plan.to_withdraw & plan.to_announce, frozenset())
            self.assertEqual((active | plan.to_announce) - plan.to_withdraw, desired)
            self.assertEqual(set(apply_plan_to_set(active, plan)), desired)


class TestExecute(unittest.TestCase):
    """Sequential application with per-item failure isolation"""

    def setUp(self):
        self.engine = ReconciliationEngine(AttributeEncoder("192.0.2.1", ["100:200"]))
        self.plan = ReconciliationPlan(
            to_withdraw=frozenset({"203.0.113.0/24"}),
            to_announce=frozenset({"192.0.2.0/24", "10.0.0.0/8"}),
        )

    def test_withdrawals_then_announcements_in_address_order(self):
        submit = Mock()
        report = self.engine.execute(self.plan, submit)

        submitted = [(str(c.args[0].prefix), c.args[0].withdraw) for c in submit.call_args_list]
        self.assertEqual(submitted, [
            ("203.0.113.0/24", True),
            ("10.0.0.0/8", False),
            ("192.0.2.0/24", False),
        ])
        self.assertTrue(report.success)
        self.assertEqual(report.count(Action.WITHDRAW), 1)
        self.assertEqual(report.count(Action.ANNOUNCE), 2)

    def test_submitted_attributes_carry_encoding(self):
        submit = Mock()
        self.engine.execute(self.plan, submit)
        attributes = submit.call_args_list[0].args[0]
        self.assertEqual(attributes.origin, 0)
        self.assertEqual(str(attributes.next_hop), "192.0.2.1")
        self.assertEqual(attributes.communities, (0x00C80064,))

    def test_one_failure_does_not_abort_batch(self):
        def submit(attributes):
            if str(attributes.prefix) == "10.0.0.0/8":
                raise RouteSubmissionError("gobgp error (code 1)")

        report = self.engine.execute(self.plan, submit)

        self.assertEqual(len(report.results), 3)
        self.assertFalse(report.success)
        self.assertEqual([f.prefix for f in report.failures], ["10.0.0.0/8"])
        self.assertEqual(report.failures[0].action, Action.ANNOUNCE)
        self.assertIn("gobgp error", report.failures[0].error_message)
        self.assertIn("Failures: 1", report.to_summary())

    def test_failed_withdrawal_still_runs_announcements(self):
        submit = Mock(side_effect=[RuntimeError("boom"), None, None])
        report = self.engine.execute(self.plan, submit)
        self.assertEqual(submit.call_count, 3)
        self.assertEqual(report.count(Action.WITHDRAW, success=False), 1)
        self.assertEqual(report.count(Action.ANNOUNCE), 2)

    def test_dry_run_never_submits(self):
        submit = Mock()
        report = self.engine.execute(self.plan, submit, dry_run=True)

        submit.assert_not_called()
        self.assertTrue(report.dry_run)
        self.assertEqual(len(report.results), 3)
        self.assertTrue(all(r.success for r in report.results))

    def test_empty_plan(self):
        submit = Mock()
        report = self.engine.execute(ReconciliationPlan(), submit)
        submit.assert_not_called()
        self.assertTrue(report.success)
        self.assertEqual(report.results, [])


if __name__ == "__main__":
    unittest.main()
