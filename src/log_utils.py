"""
Logging utilities for the EC2 Tenancy Migrator.
"""

import logging
import sys

# AWS SDK loggers are chatty at DEBUG; keep them out of --verbose output.
NOISY_LOGGERS = ("boto3", "botocore", "urllib3", "s3transfer")


def setup_logging(
    verbose: bool = False, log_file: str = "tenancy-migration.log"
) -> logging.Logger:
    """
    Set up logging configuration.

    Args:
        verbose: Enable verbose (DEBUG) logging
        log_file: Path to log file

    Returns:
        Logger instance
    """
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(log_file),
        ],
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logging.getLogger("tenancy_migrator")


def format_duration(seconds: float) -> str:
    """Render a duration as '42.0s', '3m 07s' or '1h 02m 05s'."""
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes, secs = divmod(int(round(seconds)), 60)
    if minutes < 60:
        return f"{minutes}m {secs:02d}s"
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h {minutes:02d}m {secs:02d}s"
