"""
Fleet orchestration for EC2 tenancy migrations.

Runs one InstanceMigration per input ID on a bounded thread pool. The
orchestrating thread is the only writer to the console: it drains the
LogChannel, accounts completed runs and prints periodic progress.
"""

import logging
import random
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence

from config import MigratorConfig
from instance_migration import InstanceMigration
from log_channel import LogChannel, ProgressCounter
from log_utils import format_duration
from models import LogEvent, MigrationResult, Outcome, Phase, RunSummary

logger = logging.getLogger(__name__)


class FleetMigrator:
    """Migrates a fixed batch of instances with bounded concurrency."""

    def __init__(
        self,
        api,
        config: MigratorConfig,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        worker_sleep: Callable[[float], None] = time.sleep,
        worker_clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the fleet migrator.

        Args:
            api: Gateway shared by all workers (see clients.Ec2TenancyClient)
            config: Migration configuration
            clock: Monotonic time source for progress reporting
            sleep: Sleep used by the orchestrating thread
            worker_sleep: Sleep used inside each instance's state machine
            worker_clock: Clock used inside each instance's state machine
        """
        self.api = api
        self.config = config
        self.clock = clock
        self.sleep = sleep
        self.worker_sleep = worker_sleep
        self.worker_clock = worker_clock

        self.channel = LogChannel()
        self.progress = ProgressCounter()

        self._last_progress_report: Optional[float] = None
        self._active = 0
        self._active_lock = threading.Lock()
        self._tokens: Optional[threading.BoundedSemaphore] = None
        self.peak_active = 0

        self.summary = RunSummary()
        self._ids: List[str] = []
        self._pending: Dict[Future, int] = {}

    def _write_event(self, event: LogEvent) -> None:
        logger.log(event.level, event.format())

    def _drain(self) -> int:
        return self.channel.drain(self._write_event)

    def _poll_completions(self) -> None:
        """Drain events, account finished runs and report progress if due."""
        self._drain()
        for future in [f for f in self._pending if f.done()]:
            index = self._pending.pop(future)
            self._account(index, self._ids[index], future)
        self._maybe_report_progress(len(self._ids))

    def _pause(self, seconds: float) -> None:
        """Sleep on the orchestrating thread while still polling completions."""
        deadline = self.clock() + seconds
        while True:
            self._poll_completions()
            remaining = deadline - self.clock()
            if remaining <= 0:
                return
            self.sleep(min(remaining, self.config.drain_interval))

    def _execute(self, instance_id: str) -> MigrationResult:
        """Worker body: hold one concurrency token for the whole run."""
        with self._tokens:
            with self._active_lock:
                self._active += 1
                self.peak_active = max(self.peak_active, self._active)
            try:
                machine = InstanceMigration(
                    instance_id,
                    self.api,
                    self.channel,
                    self.config,
                    clock=self.worker_clock,
                    sleep=self.worker_sleep,
                )
                return machine.run()
            finally:
                with self._active_lock:
                    self._active -= 1

    def _account(self, index: int, instance_id: str, future: Future) -> bool:
        """
        Record a finished run exactly once.

        Returns:
            True if this call recorded the run, False if already accounted
        """
        if not self.progress.record(index):
            return False

        try:
            result = future.result()
        except Exception as e:
            logger.error(f"Worker for {instance_id} crashed: {e}")
            result = MigrationResult(
                instance_id=instance_id,
                outcome=Outcome.ERRORED,
                phase=Phase.ERRORED,
                message=str(e),
            )
        self.summary.results.append(result)
        return True

    def _maybe_report_progress(self, total: int, force: bool = False) -> None:
        now = self.clock()
        if self._last_progress_report is None:
            self._last_progress_report = now
        if not force and now - self._last_progress_report < self.config.progress_interval:
            return
        self._last_progress_report = now
        done = self.progress.count
        pct = (done / total * 100) if total else 100.0
        logger.info(f"Progress: {done}/{total} completed ({pct:.0f}%)")

    def run(
        self, instance_ids: Sequence[str], concurrency_limit: Optional[int] = None
    ) -> RunSummary:
        """
        Migrate every instance in instance_ids.

        Duplicate IDs are scheduled as independent runs.

        Args:
            instance_ids: Instance IDs in submission order
            concurrency_limit: Maximum concurrent runs (defaults to max_parallel)

        Returns:
            RunSummary with one result per submitted run

        Raises:
            ValueError: If concurrency_limit < 1
        """
        limit = self.config.max_parallel if concurrency_limit is None else concurrency_limit
        if limit < 1:
            raise ValueError(f"concurrency limit must be >= 1, got {limit}")

        ids = list(instance_ids)
        total = len(ids)
        self.summary = RunSummary(total=total, start_time=time.time())
        self.channel = LogChannel()
        self.progress = ProgressCounter()
        self._ids = ids
        self._pending = {}
        self._tokens = threading.BoundedSemaphore(limit)
        self._active = 0
        self.peak_active = 0

        self._print_banner(total, limit)
        self._last_progress_report = self.clock()

        batch = max(self.config.stagger_batch_size, 1)
        futures: Dict[Future, int] = {}

        executor = ThreadPoolExecutor(max_workers=limit, thread_name_prefix="migrate")
        try:
            for index, instance_id in enumerate(ids):
                future = executor.submit(self._execute, instance_id)
                futures[future] = index
                self._pending[future] = index
                logger.debug(f"Submitted {instance_id} ({index + 1}/{total})")

                submitted = index + 1
                if submitted % batch == 0 and submitted < total:
                    delay = random.uniform(
                        self.config.stagger_min_delay, self.config.stagger_max_delay
                    )
                    logger.debug(
                        f"Stagger delay: {delay:.1f}s after {submitted} submission(s)"
                    )
                    self._pause(delay)

            while self._pending:
                self._poll_completions()
                if self._pending:
                    self.sleep(self.config.drain_interval)

            # Second pass: anything the polling loop missed is finalized here.
            for future, index in futures.items():
                future.exception()
                if self._account(index, ids[index], future):
                    logger.warning(f"Late completion accounted for {ids[index]}")
        finally:
            executor.shutdown(wait=True)
            self._drain()

        self._maybe_report_progress(total, force=True)
        self.summary.end_time = time.time()
        self._print_report()
        return self.summary

    def _print_banner(self, total: int, limit: int) -> None:
        logger.info("=" * 70)
        logger.info("EC2 Dedicated Host -> Default Tenancy Migration")
        logger.info("=" * 70)
        logger.info(f"Instances: {total}")
        logger.info(f"Concurrency limit: {limit}")
        logger.info(f"Target tenancy: {self.config.target_tenancy}")
        logger.info(
            f"Usage operation: {self.config.source_usage_operation} -> "
            f"{self.config.destination_usage_operation}"
        )
        logger.info(f"Stop escalation threshold: {self.config.stop_escalation_threshold}s")
        logger.info(f"Start time: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
        logger.info("=" * 70)

    def _print_report(self) -> None:
        """Print timing and outcome report."""
        summary = self.summary
        total_duration = summary.end_time - summary.start_time

        logger.info("")
        logger.info("=" * 70)
        logger.info("MIGRATION REPORT")
        logger.info("=" * 70)

        logger.info("")
        logger.info("TIMING SUMMARY")
        logger.info("-" * 40)
        logger.info(
            f"Start time:      {datetime.fromtimestamp(summary.start_time).strftime('%Y-%m-%d %H:%M:%S')}"
        )
        logger.info(
            f"End time:        {datetime.fromtimestamp(summary.end_time).strftime('%Y-%m-%d %H:%M:%S')}"
        )
        logger.info(f"Total duration:  {format_duration(total_duration)}")

        logger.info("")
        logger.info("STATISTICS")
        logger.info("-" * 40)
        for k, v in summary.to_stats().items():
            logger.info(f"{k:20s}: {v}")
        logger.info(f"{'peak_concurrency':20s}: {self.peak_active}")

        successful = [r for r in summary.results if r.outcome is Outcome.SUCCESS]
        if successful:
            logger.info("")
            logger.info("SUCCESSFUL MIGRATIONS")
            logger.info("-" * 40)
            logger.info(f"{'Instance':<25} {'Duration':<12} {'Forced Stops'}")
            logger.info("-" * 70)
            for r in successful:
                duration_str = (
                    format_duration(r.duration_seconds)
                    if r.duration_seconds is not None
                    else "N/A"
                )
                logger.info(f"{r.instance_id:<25} {duration_str:<12} {r.forced_stops}")

        failures = summary.failures
        if failures:
            logger.info("")
            logger.info("FAILED / ERRORED MIGRATIONS")
            logger.info("-" * 40)
            logger.info(f"{'Instance':<25} {'Outcome':<10} {'Phase':<22} {'Reason'}")
            logger.info("-" * 70)
            for r in failures:
                logger.info(
                    f"{r.instance_id:<25} {r.outcome.value:<10} {(r.failed_phase or r.phase).value:<22} {r.message or 'Unknown'}"
                )

        logger.info("")
        logger.info("=" * 70)
