"""
Pre-migration eligibility checks for EC2 instances.

An instance is eligible when it is running on a Dedicated Host with
tenancy=host. Results are reported for every instance; they do not remove
anything from the migration batch.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)


class CheckStatus(Enum):
    """Status codes for pre-check validations."""

    PASSED = "passed"
    WARNING = "warning"
    FAILED = "failed"


class PreCheckResult:
    """Result of a single pre-check validation."""

    def __init__(
        self,
        check_name: str,
        status: CheckStatus,
        message: str,
        details: Optional[Dict] = None,
    ):
        self.check_name = check_name
        self.status = status
        self.message = message
        self.details = details or {}
        self.timestamp = datetime.now()

    @property
    def passed(self) -> bool:
        return self.status is not CheckStatus.FAILED

    def to_dict(self) -> Dict:
        """Convert to dictionary for logging/reporting."""
        return {
            "check_name": self.check_name,
            "status": self.status.value,
            "message": self.message,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
        }


class InstancePreChecker:
    """Runs eligibility checks against the gateway's describe call."""

    def __init__(self, api, source_tenancy: str = "host"):
        self.api = api
        self.source_tenancy = source_tenancy

    def _check_instance_state(self, data: Dict) -> PreCheckResult:
        state = data.get("state", "unknown")
        if state == "running":
            return PreCheckResult(
                check_name="instance_state",
                status=CheckStatus.PASSED,
                message="Instance is running",
                details={"state": state},
            )
        if state in {"pending", "stopping", "shutting-down"}:
            return PreCheckResult(
                check_name="instance_state",
                status=CheckStatus.FAILED,
                message=f"Instance is busy: {state}",
                details={"state": state, "reason": "transition_in_progress"},
            )
        return PreCheckResult(
            check_name="instance_state",
            status=CheckStatus.FAILED,
            message=f"Instance is not running: {state}",
            details={"state": state, "reason": "not_running"},
        )

    def _check_dedicated_host(self, data: Dict) -> PreCheckResult:
        host_id = (data.get("placement") or {}).get("host_id")
        if host_id:
            return PreCheckResult(
                check_name="dedicated_host",
                status=CheckStatus.PASSED,
                message=f"Instance is placed on host {host_id}",
                details={"host_id": host_id},
            )
        return PreCheckResult(
            check_name="dedicated_host",
            status=CheckStatus.FAILED,
            message="Instance is not placed on a Dedicated Host",
            details={"reason": "no_host"},
        )

    def _check_tenancy(self, data: Dict) -> PreCheckResult:
        tenancy = (data.get("placement") or {}).get("tenancy")
        if tenancy == self.source_tenancy:
            return PreCheckResult(
                check_name="tenancy",
                status=CheckStatus.PASSED,
                message=f"Tenancy is {tenancy}",
                details={"tenancy": tenancy},
            )
        return PreCheckResult(
            check_name="tenancy",
            status=CheckStatus.FAILED,
            message=f"Unexpected tenancy: {tenancy} (expected {self.source_tenancy})",
            details={"tenancy": tenancy, "reason": "wrong_tenancy"},
        )

    def check(self, instance_id: str) -> List[PreCheckResult]:
        """
        Run all pre-checks for one instance.

        Args:
            instance_id: EC2 instance ID

        Returns:
            List of PreCheckResult (a single failed instance_state result if
            the instance cannot be described)
        """
        try:
            data = self.api.describe_instance(instance_id)
        except Exception as e:
            return [
                PreCheckResult(
                    check_name="instance_state",
                    status=CheckStatus.FAILED,
                    message=f"Cannot read instance: {e}",
                    details={"error": str(e), "reason": "api_error"},
                )
            ]

        return [
            self._check_instance_state(data),
            self._check_dedicated_host(data),
            self._check_tenancy(data),
        ]

    def validate_all(self, instance_ids: Iterable[str]) -> Dict[str, List[PreCheckResult]]:
        """
        Check every instance and log the outcome.

        Each distinct ID is described once; repeated entries are logged as
        duplicates of the first one and still count as separate runs.

        Args:
            instance_ids: Instance IDs in input order

        Returns:
            Mapping of instance ID to its check results
        """
        report: Dict[str, List[PreCheckResult]] = {}
        first_seen: Dict[str, int] = {}
        for position, instance_id in enumerate(instance_ids, start=1):
            if instance_id in report:
                logger.info(
                    f"= {instance_id} (entry {position}): duplicate of entry "
                    f"{first_seen[instance_id]}, see above"
                )
                continue
            first_seen[instance_id] = position
            results = self.check(instance_id)
            report[instance_id] = results
            if all(r.passed for r in results):
                logger.info(f"✓ {instance_id}: eligible")
                continue
            for r in results:
                if not r.passed:
                    logger.warning(f"✗ {instance_id}: {r.check_name} - {r.message}")

        failing = [i for i, rs in report.items() if not all(r.passed for r in rs)]
        if failing:
            logger.warning(
                f"{len(failing)} instance(s) failed pre-checks and will still be "
                f"migrated if confirmed: {', '.join(failing)}"
            )
        return report
