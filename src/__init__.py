"""
EC2 Dedicated Host to default tenancy fleet migration tool.
"""

from clients import Ec2TenancyClient
from config import MigratorConfig
from instance_migration import InstanceMigration
from log_channel import LogChannel, ProgressCounter
from log_utils import setup_logging
from models import InstanceTask, LogEvent, MigrationResult, Outcome, Phase, RunSummary
from orchestrator import FleetMigrator
from prechecks import InstancePreChecker

__all__ = [
    "Ec2TenancyClient",
    "MigratorConfig",
    "InstanceMigration",
    "LogChannel",
    "ProgressCounter",
    "setup_logging",
    "InstanceTask",
    "LogEvent",
    "MigrationResult",
    "Outcome",
    "Phase",
    "RunSummary",
    "FleetMigrator",
    "InstancePreChecker",
]
