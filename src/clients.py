"""
AWS client for EC2 placement and License Manager conversion calls.
"""

import logging
import random
import time
from typing import Dict, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import (
    ClientError,
    ConnectionClosedError,
    EndpointConnectionError,
    ReadTimeoutError,
)

logger = logging.getLogger(__name__)

CONNECTION_ERRORS = (EndpointConnectionError, ConnectionClosedError, ReadTimeoutError)


class Ec2TenancyClient:
    """Gateway to the EC2, License Manager and STS APIs for one region."""

    RETRYABLE_ERROR_CODES = {
        "RequestLimitExceeded",
        "Throttling",
        "ThrottlingException",
        "TooManyRequestsException",
        "RateExceeded",
        "ServiceUnavailable",
        "InternalError",
        "Unavailable",
    }

    def __init__(
        self,
        region: Optional[str] = None,
        profile: Optional[str] = None,
        timeout_s: int = 60,
        max_retries: int = 5,
        base_delay: float = 2.0,
    ):
        """
        Initialize the AWS clients.

        Args:
            region: AWS region (None uses the SDK's default resolution)
            profile: Named AWS profile (None uses the default credential chain)
            timeout_s: Connect/read timeout in seconds
            max_retries: Maximum number of retries for throttling/transient errors
            base_delay: Base delay for exponential backoff
        """
        self.timeout_s = timeout_s
        self.max_retries = max_retries
        self.base_delay = base_delay

        session = boto3.session.Session(profile_name=profile, region_name=region)
        self.region = session.region_name
        # SDK retries are disabled; _call_with_retry owns backoff.
        sdk_config = Config(
            connect_timeout=timeout_s,
            read_timeout=timeout_s,
            retries={"total_max_attempts": 1},
        )
        self.ec2 = session.client("ec2", config=sdk_config)
        self.license_manager = session.client("license-manager", config=sdk_config)
        self.sts = session.client("sts", config=sdk_config)
        self._account_id: Optional[str] = None

    def _call_with_retry(self, client, operation: str, **kwargs) -> Dict:
        """
        Invoke an SDK operation, retrying throttling and transient errors.

        Args:
            client: boto3 client to call
            operation: Method name on the client (e.g. 'stop_instances')
            **kwargs: Operation parameters

        Returns:
            The operation's response dictionary

        Raises:
            ClientError: For non-retryable API errors
            RuntimeError: If max retries exceeded
        """
        last_error = None

        for attempt in range(self.max_retries + 1):
            try:
                return getattr(client, operation)(**kwargs)
            except ClientError as e:
                code = e.response.get("Error", {}).get("Code", "")
                if code not in self.RETRYABLE_ERROR_CODES:
                    raise
                delay = self._calculate_delay(attempt, code)
                logger.warning(
                    f"Retryable error {code} on {operation}, attempt {attempt + 1}/{self.max_retries + 1}, waiting {delay:.1f}s..."
                )
                last_error = f"{code}: {e}"
                time.sleep(delay)
            except CONNECTION_ERRORS as e:
                delay = self._calculate_delay(attempt)
                logger.warning(
                    f"Connection error on {operation}: {e}, attempt {attempt + 1}/{self.max_retries + 1}, waiting {delay:.1f}s..."
                )
                last_error = str(e)
                time.sleep(delay)

        raise RuntimeError(
            f"{operation}: max retries exceeded. Last error: {last_error}"
        )

    def _calculate_delay(self, attempt: int, error_code: Optional[str] = None) -> float:
        """
        Calculate delay with exponential backoff and jitter.

        Args:
            attempt: Current attempt number
            error_code: Optional AWS error code of the failed attempt

        Returns:
            Delay in seconds
        """
        base = self.base_delay
        if error_code == "RequestLimitExceeded":
            # EC2 refills its request token bucket slowly
            base = max(base, 5.0)

        delay = base * (2**attempt)
        jitter = delay * 0.2 * random.uniform(-0.5, 0.5)
        return min(delay + jitter, 60.0)

    def describe_instance(self, instance_id: str) -> Dict:
        """
        Describe a single instance.

        Args:
            instance_id: EC2 instance ID

        Returns:
            Dict with instance_id, state, placement{host_id, tenancy},
            usage_operation and platform

        Raises:
            RuntimeError: If the instance is not found
        """
        resp = self._call_with_retry(
            self.ec2, "describe_instances", InstanceIds=[instance_id]
        )
        for reservation in resp.get("Reservations", []):
            for item in reservation.get("Instances", []):
                if item.get("InstanceId") != instance_id:
                    continue
                placement = item.get("Placement", {})
                return {
                    "instance_id": instance_id,
                    "state": str(item.get("State", {}).get("Name", "unknown")).lower(),
                    "placement": {
                        "host_id": placement.get("HostId"),
                        "tenancy": placement.get("Tenancy"),
                    },
                    "usage_operation": item.get("UsageOperation"),
                    "platform": item.get("PlatformDetails") or item.get("Platform"),
                }
        raise RuntimeError(f"Instance {instance_id} not found")

    def stop_instance(self, instance_id: str, force: bool = False) -> None:
        """Request a stop; force=True asks the hypervisor to stop it hard."""
        self._call_with_retry(
            self.ec2, "stop_instances", InstanceIds=[instance_id], Force=force
        )

    def start_instance(self, instance_id: str) -> None:
        self._call_with_retry(self.ec2, "start_instances", InstanceIds=[instance_id])

    def modify_placement(self, instance_id: str, tenancy: str = "default") -> bool:
        """
        Change an instance's tenancy.

        Args:
            instance_id: EC2 instance ID (must be stopped)
            tenancy: Target tenancy

        Returns:
            True if EC2 accepted the change
        """
        resp = self._call_with_retry(
            self.ec2,
            "modify_instance_placement",
            InstanceId=instance_id,
            Tenancy=tenancy,
        )
        return bool(resp.get("Return", False))

    @property
    def account_id(self) -> str:
        if self._account_id is None:
            identity = self._call_with_retry(self.sts, "get_caller_identity")
            self._account_id = identity["Account"]
        return self._account_id

    def instance_arn(self, instance_id: str) -> str:
        return f"arn:aws:ec2:{self.region}:{self.account_id}:instance/{instance_id}"

    def create_conversion_task(
        self,
        instance_id: str,
        source_usage_operation: str,
        destination_usage_operation: str,
    ) -> str:
        """
        Start a License Manager conversion of the instance's usage operation.

        Returns:
            License conversion task ID

        Raises:
            RuntimeError: If the response carries no task ID
        """
        resp = self._call_with_retry(
            self.license_manager,
            "create_license_conversion_task_for_resource",
            ResourceArn=self.instance_arn(instance_id),
            SourceLicenseContext={"UsageOperation": source_usage_operation},
            DestinationLicenseContext={"UsageOperation": destination_usage_operation},
        )
        task_id = resp.get("LicenseConversionTaskId")
        if not task_id:
            raise RuntimeError(f"Conversion task returned unexpected response: {resp}")
        return task_id

    def get_conversion_task(self, task_id: str) -> Dict:
        """
        Get status of a license conversion task.

        Returns:
            Dict with 'status' (lowercase: in_progress, succeeded, failed)
            and 'status_message'
        """
        resp = self._call_with_retry(
            self.license_manager,
            "get_license_conversion_task",
            LicenseConversionTaskId=task_id,
        )
        return {
            "status": str(resp.get("Status", "unknown")).lower(),
            "status_message": resp.get("StatusMessage", ""),
        }
