"""
Configuration management for the EC2 Tenancy Migrator.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class MigratorConfig:
    """Configuration for fleet tenancy migration runs."""

    input_file: str = ""
    region: Optional[str] = None
    profile: Optional[str] = None
    max_parallel: int = 10
    target_tenancy: str = "default"
    source_usage_operation: str = "RunInstances:0800"
    destination_usage_operation: str = "RunInstances:0002"
    stop_poll_interval: float = 10.0
    start_poll_interval: float = 10.0
    conversion_poll_interval: float = 30.0
    stop_escalation_threshold: float = 480.0
    jitter_min_ms: int = 500
    jitter_max_ms: int = 3000
    stagger_batch_size: int = 5
    stagger_min_delay: float = 2.0
    stagger_max_delay: float = 5.0
    progress_interval: float = 10.0
    drain_interval: float = 0.5
    dry_run: bool = False
    assume_yes: bool = False
    verbose: bool = False

    @classmethod
    def from_args(cls, args) -> "MigratorConfig":
        """
        Create configuration from command-line arguments.

        Args:
            args: Parsed argparse arguments

        Returns:
            MigratorConfig instance
        """
        return cls(
            input_file=args.input,
            region=args.region,
            profile=args.profile,
            max_parallel=args.max_parallel,
            target_tenancy=args.target_tenancy,
            source_usage_operation=args.source_usage_operation,
            destination_usage_operation=args.destination_usage_operation,
            stop_poll_interval=args.stop_poll_interval,
            start_poll_interval=args.start_poll_interval,
            conversion_poll_interval=args.conversion_poll_interval,
            stop_escalation_threshold=args.stop_escalation_threshold,
            jitter_min_ms=args.jitter_min_ms,
            jitter_max_ms=args.jitter_max_ms,
            stagger_batch_size=args.stagger_batch_size,
            stagger_min_delay=args.stagger_min_delay,
            stagger_max_delay=args.stagger_max_delay,
            progress_interval=args.progress_interval,
            dry_run=args.dry_run,
            assume_yes=args.yes,
            verbose=args.verbose,
        )
