"""
Unit tests for CLI module.
"""

import os
import tempfile
import unittest
from unittest.mock import MagicMock, patch

from cli import build_parser, confirm, main
from gateway_stubs import ScriptedGateway
from orchestrator import FleetMigrator

FAST_ARGS = [
    "--stop-poll-interval",
    "0.001",
    "--start-poll-interval",
    "0.001",
    "--conversion-poll-interval",
    "0.001",
    "--jitter-min-ms",
    "0",
    "--jitter-max-ms",
    "0",
    "--stagger-min-delay",
    "0",
    "--stagger-max-delay",
    "0",
]


class TestBuildParser(unittest.TestCase):
    """Test CLI argument parsing."""

    def test_parser_requires_input(self):
        """Test parser requires the input argument."""
        with self.assertRaises(SystemExit):
            build_parser().parse_args([])

    def test_parser_defaults(self):
        """Test default option values."""
        args = build_parser().parse_args(["--input", "fleet.csv"])

        self.assertEqual(args.input, "fleet.csv")
        self.assertIsNone(args.region)
        self.assertEqual(args.max_parallel, 10)
        self.assertEqual(args.target_tenancy, "default")
        self.assertEqual(args.destination_usage_operation, "RunInstances:0002")
        self.assertEqual(args.stop_escalation_threshold, 480.0)
        self.assertFalse(args.dry_run)
        self.assertFalse(args.yes)


class TestConfirm(unittest.TestCase):
    """Test the interactive confirmation gate."""

    def test_yes(self):
        self.assertTrue(confirm(input_fn=lambda _: "Y"))

    def test_no(self):
        self.assertFalse(confirm(input_fn=lambda _: " n "))

    @patch("builtins.print")
    def test_reprompts_until_valid(self, mock_print):
        """Test any other answer is rejected and asked again."""
        answers = iter(["maybe", "", "yes", "y"])
        prompts = []

        def fake_input(prompt):
            prompts.append(prompt)
            return next(answers)

        self.assertTrue(confirm(input_fn=fake_input))
        self.assertEqual(len(prompts), 4)
        self.assertEqual(mock_print.call_count, 3)


@patch("cli.setup_logging")
class TestMain(unittest.TestCase):
    """Test the CLI entry point."""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.csv = os.path.join(self.tmpdir.name, "instances.csv")
        with open(self.csv, "w") as f:
            f.write("i-1\n\ni-2\n")

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_missing_input_file(self, mock_setup_logging):
        """Test exit code 1 when the input file does not exist."""
        result = main(["--input", os.path.join(self.tmpdir.name, "missing.csv")])

        self.assertEqual(result, 1)

    def test_empty_input_file(self, mock_setup_logging):
        """Test exit code 1 when the file holds no IDs."""
        with open(self.csv, "w") as f:
            f.write("\n\n")

        self.assertEqual(main(["--input", self.csv]), 1)

    def test_invalid_max_parallel(self, mock_setup_logging):
        """Test a concurrency limit below 1 is rejected."""
        self.assertEqual(main(["--input", self.csv, "--max-parallel", "0"]), 1)

    @patch("cli.FleetMigrator")
    @patch("cli.Ec2TenancyClient")
    def test_dry_run_does_not_migrate(
        self, mock_client_class, mock_migrator_class, mock_setup_logging
    ):
        """Test dry-run prints pre-checks and exits 0 without migrating."""
        mock_client_class.return_value = ScriptedGateway()

        result = main(["--input", self.csv, "--dry-run"])

        self.assertEqual(result, 0)
        mock_migrator_class.assert_not_called()

    @patch("cli.confirm", return_value=False)
    @patch("cli.FleetMigrator")
    @patch("cli.Ec2TenancyClient")
    def test_declined_confirmation(
        self, mock_client_class, mock_migrator_class, mock_confirm, mock_setup_logging
    ):
        """Test answering 'n' exits 1 without migrating."""
        mock_client_class.return_value = ScriptedGateway()

        result = main(["--input", self.csv])

        self.assertEqual(result, 1)
        mock_confirm.assert_called_once()
        mock_migrator_class.assert_not_called()

    @patch("cli.Ec2TenancyClient", side_effect=RuntimeError("no credentials"))
    def test_setup_failure(self, mock_client_class, mock_setup_logging):
        """Test an exception during setup exits 1."""
        self.assertEqual(main(["--input", self.csv, "--yes"]), 1)

    @patch("cli.FleetMigrator")
    @patch("cli.Ec2TenancyClient")
    def test_failed_instances_still_exit_zero(
        self, mock_client_class, mock_migrator_class, mock_setup_logging
    ):
        """Test per-instance failures do not change the exit code."""
        mock_client_class.return_value = ScriptedGateway()
        summary = MagicMock(succeeded=0, failed=1, errored=1)
        mock_migrator_class.return_value.run.return_value = summary

        result = main(["--input", self.csv, "--yes", "--max-parallel", "3"])

        self.assertEqual(result, 0)
        mock_migrator_class.return_value.run.assert_called_once_with(["i-1", "i-2"], 3)

    @patch("cli.Ec2TenancyClient")
    def test_end_to_end_blank_row_skipped(self, mock_client_class, mock_setup_logging):
        """Test {"i-1", "", "i-2"} migrates two instances successfully."""
        api = ScriptedGateway(stop_polls_until_stopped=2)
        mock_client_class.return_value = api
        summaries = []
        real_run = FleetMigrator.run

        def capture(self, instance_ids, concurrency_limit=None):
            summary = real_run(self, instance_ids, concurrency_limit)
            summaries.append((list(instance_ids), summary))
            return summary

        with patch.object(FleetMigrator, "run", autospec=True, side_effect=capture):
            result = main(["--input", self.csv, "--yes"] + FAST_ARGS)

        self.assertEqual(result, 0)
        self.assertEqual(len(summaries), 1)
        ids, summary = summaries[0]
        self.assertEqual(ids, ["i-1", "i-2"])
        self.assertEqual(
            (summary.succeeded, summary.failed, summary.errored), (2, 0, 0)
        )
        self.assertEqual(len(api.calls_for("start_instance")), 2)


if __name__ == "__main__":
    unittest.main()
