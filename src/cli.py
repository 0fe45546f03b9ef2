"""Console entry point for the EC2 Tenancy Migrator CLI."""

from __future__ import annotations

import argparse
import logging
from typing import Callable, List

from clients import Ec2TenancyClient
from config import MigratorConfig
from input_reader import InputFileError, read_instance_ids
from log_utils import setup_logging
from orchestrator import FleetMigrator
from prechecks import InstancePreChecker

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build and return the CLI argument parser."""
    parser = argparse.ArgumentParser(
        description=(
            "Migrate EC2 instances from Dedicated Host tenancy to default tenancy.\n\n"
            "Each instance is stopped, moved to the target tenancy, has its usage "
            "operation converted through License Manager, and is started again."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  # Check eligibility only\n"
            "  ec2-tenancy-migrator --input instances.csv --region eu-west-1 --dry-run\n\n"
            "  # Migrate, 5 at a time, converting to RunInstances:0200\n"
            "  ec2-tenancy-migrator --input instances.csv --max-parallel 5 \\\n"
            "      --destination-usage-operation RunInstances:0200\n"
        ),
    )

    required = parser.add_argument_group("required arguments")
    required.add_argument(
        "--input",
        required=True,
        metavar="CSV",
        help="CSV file with one instance ID per row",
    )

    aws = parser.add_argument_group("aws")
    aws.add_argument("--region", help="AWS region (default: SDK configuration)")
    aws.add_argument("--profile", help="Named AWS profile")

    migration = parser.add_argument_group("migration")
    migration.add_argument(
        "--max-parallel",
        type=int,
        default=10,
        metavar="N",
        help="Maximum number of instances migrated concurrently (default: 10)",
    )
    migration.add_argument("--target-tenancy", default="default")
    migration.add_argument(
        "--source-usage-operation",
        default="RunInstances:0800",
        help="Usage operation the instances currently bill under (default: RunInstances:0800)",
    )
    migration.add_argument(
        "--destination-usage-operation",
        default="RunInstances:0002",
        help="Usage operation to convert to (default: RunInstances:0002)",
    )
    migration.add_argument(
        "--dry-run",
        action="store_true",
        help="Run pre-checks and exit without changing anything",
    )
    migration.add_argument(
        "--yes", action="store_true", help="Skip the confirmation prompt"
    )

    timing = parser.add_argument_group("polling and throttling")
    timing.add_argument("--stop-poll-interval", type=float, default=10.0, metavar="SECONDS")
    timing.add_argument("--start-poll-interval", type=float, default=10.0, metavar="SECONDS")
    timing.add_argument(
        "--conversion-poll-interval", type=float, default=30.0, metavar="SECONDS"
    )
    timing.add_argument(
        "--stop-escalation-threshold",
        type=float,
        default=480.0,
        metavar="SECONDS",
        help="Re-issue a forced stop after this long without reaching 'stopped' (default: 480)",
    )
    timing.add_argument("--jitter-min-ms", type=int, default=500, metavar="MS")
    timing.add_argument("--jitter-max-ms", type=int, default=3000, metavar="MS")
    timing.add_argument(
        "--stagger-batch-size",
        type=int,
        default=5,
        metavar="N",
        help="Pause after every N submissions (default: 5)",
    )
    timing.add_argument("--stagger-min-delay", type=float, default=2.0, metavar="SECONDS")
    timing.add_argument("--stagger-max-delay", type=float, default=5.0, metavar="SECONDS")
    timing.add_argument("--progress-interval", type=float, default=10.0, metavar="SECONDS")

    parser.add_argument("--verbose", action="store_true")
    return parser


def confirm(
    prompt: str = "Proceed with migration? [y/n]: ",
    input_fn: Callable[[str], str] = input,
) -> bool:
    """Ask until the answer is y or n (case-insensitive)."""
    while True:
        answer = input_fn(prompt).strip().lower()
        if answer == "y":
            return True
        if answer == "n":
            return False
        print("Please answer 'y' or 'n'.")


def main(argv: List[str] | None = None) -> int:
    """CLI main for console_scripts entry point."""
    parser = build_parser()
    args = parser.parse_args(args=argv)

    setup_logging(verbose=args.verbose, log_file="tenancy-migration.log")
    config = MigratorConfig.from_args(args)

    if config.max_parallel < 1:
        logger.error("--max-parallel must be at least 1")
        return 1

    try:
        instance_ids = read_instance_ids(config.input_file)
    except InputFileError as e:
        logger.error(str(e))
        return 1

    if not instance_ids:
        logger.error(f"No instance IDs found in {config.input_file}")
        return 1

    try:
        api = Ec2TenancyClient(region=config.region, profile=config.profile)

        logger.info("=" * 70)
        logger.info("PRE-CHECKS")
        logger.info("=" * 70)
        InstancePreChecker(api).validate_all(instance_ids)

        if config.dry_run:
            logger.info("DRY RUN: no instances were changed")
            return 0

        if not config.assume_yes and not confirm(
            f"Migrate {len(instance_ids)} instance(s) to tenancy "
            f"'{config.target_tenancy}'? [y/n]: "
        ):
            logger.info("Migration declined")
            return 1

        summary = FleetMigrator(api, config).run(instance_ids, config.max_parallel)
    except Exception as e:
        logger.error(f"Migration aborted: {e}")
        return 1

    logger.info(
        f"Done: {summary.succeeded} succeeded, {summary.failed} failed, "
        f"{summary.errored} errored"
    )
    return 0
