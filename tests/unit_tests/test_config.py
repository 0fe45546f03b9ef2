"""
Unit tests for configuration.
"""

import unittest

from cli import build_parser
from config import MigratorConfig


class TestMigratorConfig(unittest.TestCase):
    """Test MigratorConfig data model."""

    def test_config_defaults(self):
        """Test default configuration values."""
        config = MigratorConfig()
        self.assertIsNone(config.region)
        self.assertEqual(config.max_parallel, 10)
        self.assertEqual(config.target_tenancy, "default")
        self.assertEqual(config.source_usage_operation, "RunInstances:0800")
        self.assertEqual(config.destination_usage_operation, "RunInstances:0002")
        self.assertEqual(config.stop_poll_interval, 10.0)
        self.assertEqual(config.start_poll_interval, 10.0)
        self.assertEqual(config.conversion_poll_interval, 30.0)
        self.assertEqual(config.stop_escalation_threshold, 480.0)
        self.assertEqual(config.stagger_batch_size, 5)
        self.assertEqual((config.stagger_min_delay, config.stagger_max_delay), (2.0, 5.0))
        self.assertEqual(config.progress_interval, 10.0)
        self.assertFalse(config.dry_run)
        self.assertFalse(config.assume_yes)

    def test_config_from_args(self):
        """Test creating config from command-line arguments."""
        args = build_parser().parse_args(
            [
                "--input",
                "fleet.csv",
                "--region",
                "eu-west-1",
                "--profile",
                "ops",
                "--max-parallel",
                "4",
                "--destination-usage-operation",
                "RunInstances:0200",
                "--stop-poll-interval",
                "5",
                "--stop-escalation-threshold",
                "300",
                "--jitter-min-ms",
                "100",
                "--jitter-max-ms",
                "200",
                "--dry-run",
                "--yes",
                "--verbose",
            ]
        )
        config = MigratorConfig.from_args(args)

        self.assertEqual(config.input_file, "fleet.csv")
        self.assertEqual(config.region, "eu-west-1")
        self.assertEqual(config.profile, "ops")
        self.assertEqual(config.max_parallel, 4)
        self.assertEqual(config.destination_usage_operation, "RunInstances:0200")
        self.assertEqual(config.stop_poll_interval, 5.0)
        self.assertEqual(config.stop_escalation_threshold, 300.0)
        self.assertEqual((config.jitter_min_ms, config.jitter_max_ms), (100, 200))
        self.assertTrue(config.dry_run)
        self.assertTrue(config.assume_yes)
        self.assertTrue(config.verbose)


if __name__ == "__main__":
    unittest.main()
