"""
Per-instance migration state machine.

Drives one instance through stop -> modify placement -> license conversion ->
start. Every gateway call goes through _call(), which turns exceptions into a
transport-error CallResult; only those end the run as ERRORED.
"""

import logging
import random
import time
from typing import Callable, Optional

from config import MigratorConfig
from log_channel import LogChannel
from models import CallOutcome, CallResult, InstanceTask, MigrationResult, Outcome, Phase

CONVERSION_TERMINAL_STATUSES = {"succeeded", "failed"}

PLACEMENT_REJECTED = "placement modification rejected"
CONVERSION_FAILED = "license/billing conversion failed"


class InstanceMigration:
    """Runs the migration lifecycle for a single instance."""

    def __init__(
        self,
        instance_id: str,
        api,
        channel: LogChannel,
        config: MigratorConfig,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Args:
            instance_id: EC2 instance ID to migrate
            api: Gateway (see clients.Ec2TenancyClient)
            channel: Channel receiving this run's LogEvents
            config: Poll intervals, thresholds and usage operation codes
            clock: Monotonic time source (seconds)
            sleep: Sleep function used between polls
        """
        self.api = api
        self.channel = channel
        self.config = config
        self.clock = clock
        self.sleep = sleep
        self.task = InstanceTask(instance_id=instance_id)

    @property
    def instance_id(self) -> str:
        return self.task.instance_id

    def _emit(self, message: str, level: int = logging.INFO) -> None:
        self.channel.emit(self.instance_id, self.task.step, message, level=level)

    def _transition(self, phase: Phase, message: str, level: int = logging.INFO) -> None:
        self.task.phase = phase
        self.task.step += 1
        self._emit(message, level=level)

    def _call(self, fn, *args, **kwargs) -> CallResult:
        try:
            return CallResult.ok(fn(*args, **kwargs))
        except Exception as e:
            return CallResult.transport_error(str(e))

    def run(self) -> MigrationResult:
        """
        Execute the full lifecycle.

        Returns:
            Archived MigrationResult (never raises for gateway errors)
        """
        self.task.started_at = time.time()

        for phase_step in (
            self._stop,
            self._modify_placement,
            self._convert_billing,
            self._start,
        ):
            failure = phase_step()
            if failure is not None:
                return self._finish(failure)

        return self._finish(CallResult.ok())

    def _finish(self, result: CallResult) -> MigrationResult:
        task = self.task
        task.finished_at = time.time()
        if result.outcome is CallOutcome.OK:
            task.outcome = Outcome.SUCCESS
            self._transition(Phase.RUNNING, "Migration COMPLETED, instance running")
            return task.archive()

        task.failed_phase = task.phase
        task.message = result.message
        if result.outcome is CallOutcome.DEFINITE_FAILURE:
            task.outcome = Outcome.FAILED
            self._transition(
                Phase.FAILED,
                f"Migration FAILED during {task.phase.value}: {result.message}",
                level=logging.ERROR,
            )
        else:
            task.outcome = Outcome.ERRORED
            self._transition(
                Phase.ERRORED,
                f"Migration ERRORED during {task.phase.value}: {result.message}",
                level=logging.ERROR,
            )
        return task.archive()

    def _describe_state(self) -> CallResult:
        result = self._call(self.api.describe_instance, self.instance_id)
        if result.is_ok:
            state = str(result.value.get("state", "unknown")).lower()
            self.task.last_state = state
            return CallResult.ok(state)
        return result

    def _stop(self) -> Optional[CallResult]:
        """PENDING -> STOPPING -> STOPPED, forcing the stop when it stalls."""
        self._transition(Phase.STOPPING, "Stop initiated")
        result = self._call(self.api.stop_instance, self.instance_id)
        if not result.is_ok:
            return result

        threshold = self.config.stop_escalation_threshold
        escalation_started = self.clock()
        while True:
            observed = self._describe_state()
            if not observed.is_ok:
                return observed
            self.task.stop_polls += 1
            if observed.value == "stopped":
                break
            self._emit(
                f"Waiting for stop (state={observed.value}, poll {self.task.stop_polls})",
                level=logging.DEBUG,
            )

            elapsed = self.clock() - escalation_started
            if elapsed > threshold:
                self.task.forced_stops += 1
                self._emit(
                    f"Stop not complete after {elapsed:.0f}s, issuing forced stop "
                    f"(#{self.task.forced_stops})",
                    level=logging.WARNING,
                )
                result = self._call(self.api.stop_instance, self.instance_id, force=True)
                if not result.is_ok:
                    return result
                escalation_started = self.clock()

            self.sleep(self.config.stop_poll_interval)

        self._transition(
            Phase.STOPPED, f"Instance stopped after {self.task.stop_polls} poll(s)"
        )
        return None

    def _jitter(self) -> None:
        low = self.config.jitter_min_ms
        high = max(self.config.jitter_max_ms, low)
        delay_ms = random.uniform(low, high)
        if delay_ms > 0:
            self.sleep(delay_ms / 1000.0)

    def _modify_placement(self) -> Optional[CallResult]:
        """STOPPED -> MODIFYING_PLACEMENT."""
        self._jitter()
        tenancy = self.config.target_tenancy
        self._transition(
            Phase.MODIFYING_PLACEMENT, f"Modifying placement to tenancy={tenancy}"
        )
        result = self._call(self.api.modify_placement, self.instance_id, tenancy)
        if not result.is_ok:
            return result
        if result.value is not True:
            return CallResult.definite_failure(PLACEMENT_REJECTED)
        return None

    def _convert_billing(self) -> Optional[CallResult]:
        """MODIFYING_PLACEMENT -> CONVERTING_BILLING, polling until terminal."""
        source = self.config.source_usage_operation
        destination = self.config.destination_usage_operation
        self._transition(
            Phase.CONVERTING_BILLING,
            f"Converting usage operation {source} -> {destination}",
        )
        result = self._call(
            self.api.create_conversion_task, self.instance_id, source, destination
        )
        if not result.is_ok:
            return result
        task_id = result.value
        self.task.conversion_task_id = task_id
        self._emit(f"Conversion task created: {task_id}")

        while True:
            result = self._call(self.api.get_conversion_task, task_id)
            if not result.is_ok:
                return result
            self.task.conversion_polls += 1
            status = str(result.value.get("status", "unknown")).lower()
            if status in CONVERSION_TERMINAL_STATUSES:
                break
            self._emit(
                f"Conversion {task_id} status={status} (poll {self.task.conversion_polls})",
                level=logging.DEBUG,
            )
            self.sleep(self.config.conversion_poll_interval)

        if status == "failed":
            detail = result.value.get("status_message")
            reason = f"{CONVERSION_FAILED}: {detail}" if detail else CONVERSION_FAILED
            return CallResult.definite_failure(reason)
        return None

    def _start(self) -> Optional[CallResult]:
        """CONVERTING_BILLING -> STARTING, polling until running."""
        self._transition(Phase.STARTING, "Start initiated")
        result = self._call(self.api.start_instance, self.instance_id)
        if not result.is_ok:
            return result

        while True:
            observed = self._describe_state()
            if not observed.is_ok:
                return observed
            self.task.start_polls += 1
            if observed.value == "running":
                return None
            self._emit(
                f"Waiting for start (state={observed.value}, poll {self.task.start_polls})",
                level=logging.DEBUG,
            )
            self.sleep(self.config.start_poll_interval)
