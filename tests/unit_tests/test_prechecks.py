"""
Unit tests for InstancePreChecker.
"""

import unittest
from unittest.mock import MagicMock

from prechecks import CheckStatus, InstancePreChecker, PreCheckResult


def described(state="running", host_id="h-1", tenancy="host"):
    return {
        "instance_id": "i-1",
        "state": state,
        "placement": {"host_id": host_id, "tenancy": tenancy},
    }


class TestPreCheckResult(unittest.TestCase):
    """Tests for PreCheckResult class."""

    def test_to_dict(self):
        """Test PreCheckResult serialization to dictionary."""
        result = PreCheckResult(
            check_name="tenancy",
            status=CheckStatus.PASSED,
            message="Tenancy is host",
            details={"tenancy": "host"},
        )

        data = result.to_dict()

        self.assertEqual(data["check_name"], "tenancy")
        self.assertEqual(data["status"], "passed")
        self.assertEqual(data["details"]["tenancy"], "host")
        self.assertIn("timestamp", data)

    def test_warning_counts_as_passed(self):
        """Test only FAILED blocks eligibility."""
        self.assertTrue(PreCheckResult("x", CheckStatus.WARNING, "w").passed)
        self.assertFalse(PreCheckResult("x", CheckStatus.FAILED, "f").passed)
        self.assertEqual(PreCheckResult("x", CheckStatus.PASSED, "p").details, {})


class TestInstancePreChecker(unittest.TestCase):
    """Tests for the per-instance checks."""

    def setUp(self):
        self.api = MagicMock()
        self.checker = InstancePreChecker(self.api)

    def _statuses(self, data):
        self.api.describe_instance.return_value = data
        return {r.check_name: r.status for r in self.checker.check("i-1")}

    def test_eligible_instance(self):
        """Test a running host-tenancy instance passes every check."""
        statuses = self._statuses(described())

        self.assertEqual(
            statuses,
            {
                "instance_state": CheckStatus.PASSED,
                "dedicated_host": CheckStatus.PASSED,
                "tenancy": CheckStatus.PASSED,
            },
        )

    def test_not_running(self):
        """Test a stopped instance fails the state check."""
        statuses = self._statuses(described(state="stopped"))

        self.assertEqual(statuses["instance_state"], CheckStatus.FAILED)

    def test_busy_instance(self):
        """Test a transitioning instance is reported as busy."""
        self.api.describe_instance.return_value = described(state="stopping")
        result = self.checker.check("i-1")[0]

        self.assertEqual(result.status, CheckStatus.FAILED)
        self.assertEqual(result.details["reason"], "transition_in_progress")

    def test_not_on_host(self):
        """Test an instance without a host ID fails the host check."""
        statuses = self._statuses(described(host_id=None, tenancy="default"))

        self.assertEqual(statuses["dedicated_host"], CheckStatus.FAILED)
        self.assertEqual(statuses["tenancy"], CheckStatus.FAILED)

    def test_wrong_tenancy(self):
        """Test dedicated tenancy is not accepted as host tenancy."""
        statuses = self._statuses(described(tenancy="dedicated"))

        self.assertEqual(statuses["tenancy"], CheckStatus.FAILED)

    def test_describe_error(self):
        """Test an API error yields a single failed result."""
        self.api.describe_instance.side_effect = RuntimeError("Instance i-1 not found")

        results = self.checker.check("i-1")

        self.assertEqual(len(results), 1)
        self.assertEqual(results[0].status, CheckStatus.FAILED)
        self.assertEqual(results[0].details["reason"], "api_error")

    def test_validate_all_reports_without_filtering(self):
        """Test validate_all returns every instance, eligible or not."""
        self.api.describe_instance.side_effect = lambda iid: (
            described() if iid == "i-ok" else described(state="stopped")
        )

        with self.assertLogs("prechecks", level="INFO") as logs:
            report = self.checker.validate_all(["i-ok", "i-bad", "i-ok"])

        self.assertEqual(list(report), ["i-ok", "i-bad"])
        self.assertTrue(all(r.passed for r in report["i-ok"]))
        self.assertFalse(all(r.passed for r in report["i-bad"]))
        self.assertTrue(any("will still be migrated" in line for line in logs.output))

    def test_validate_all_logs_duplicate_entries(self):
        """Test a repeated ID is logged against its first entry and described once."""
        self.api.describe_instance.side_effect = lambda iid: described()

        with self.assertLogs("prechecks", level="INFO") as logs:
            report = self.checker.validate_all(["i-1", "i-2", "i-1"])

        self.assertEqual(list(report), ["i-1", "i-2"])
        self.assertEqual(self.api.describe_instance.call_count, 2)
        duplicates = [line for line in logs.output if "duplicate of entry" in line]
        self.assertEqual(len(duplicates), 1)
        self.assertIn("i-1 (entry 3): duplicate of entry 1", duplicates[0])


if __name__ == "__main__":
    unittest.main()
