"""
Data models for the EC2 Tenancy Migrator.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class Phase(Enum):
    """Lifecycle phase of a single instance migration."""

    PENDING = "pending"
    STOPPING = "stopping"
    STOPPED = "stopped"
    MODIFYING_PLACEMENT = "modifying_placement"
    CONVERTING_BILLING = "converting_billing"
    STARTING = "starting"
    RUNNING = "running"
    FAILED = "failed"
    ERRORED = "errored"


class Outcome(Enum):
    """Terminal result of an instance migration."""

    SUCCESS = "success"
    FAILED = "failed"
    ERRORED = "errored"


class CallOutcome(Enum):
    """Classification of a single gateway call."""

    OK = "ok"
    DEFINITE_FAILURE = "definite_failure"
    TRANSPORT_ERROR = "transport_error"


@dataclass(frozen=True)
class CallResult:
    """Result of a gateway call as seen by the state machine."""

    outcome: CallOutcome
    value: Any = None
    message: Optional[str] = None

    @classmethod
    def ok(cls, value: Any = None) -> "CallResult":
        return cls(CallOutcome.OK, value=value)

    @classmethod
    def definite_failure(cls, reason: str) -> "CallResult":
        return cls(CallOutcome.DEFINITE_FAILURE, message=reason)

    @classmethod
    def transport_error(cls, message: str) -> "CallResult":
        return cls(CallOutcome.TRANSPORT_ERROR, message=message)

    @property
    def is_ok(self) -> bool:
        return self.outcome is CallOutcome.OK


@dataclass(frozen=True)
class LogEvent:
    """A timestamped status line produced by one instance's worker."""

    instance_id: str
    step: int
    message: str
    timestamp: datetime = field(default_factory=datetime.now)
    level: int = logging.INFO

    def format(self) -> str:
        ts = self.timestamp.strftime("%H:%M:%S")
        return f"[{ts}] [{self.instance_id}] [step {self.step}] {self.message}"


@dataclass(frozen=True)
class MigrationResult:
    """Archived, immutable result of one instance migration."""

    instance_id: str
    outcome: Outcome
    phase: Phase
    message: Optional[str] = None
    failed_phase: Optional[Phase] = None
    start_time: Optional[float] = None
    end_time: Optional[float] = None
    duration_seconds: Optional[float] = None
    forced_stops: int = 0


@dataclass
class InstanceTask:
    """Mutable working state of one instance migration (owned by its worker)."""

    instance_id: str
    phase: Phase = Phase.PENDING
    step: int = 0
    started_at: Optional[float] = None
    finished_at: Optional[float] = None
    last_state: Optional[str] = None
    stop_polls: int = 0
    forced_stops: int = 0
    conversion_polls: int = 0
    start_polls: int = 0
    conversion_task_id: Optional[str] = None
    outcome: Optional[Outcome] = None
    message: Optional[str] = None
    failed_phase: Optional[Phase] = None

    @property
    def is_terminal(self) -> bool:
        return self.outcome is not None

    def archive(self) -> MigrationResult:
        """Freeze the task into a MigrationResult."""
        duration = None
        if self.started_at is not None and self.finished_at is not None:
            duration = self.finished_at - self.started_at
        return MigrationResult(
            instance_id=self.instance_id,
            outcome=self.outcome or Outcome.ERRORED,
            phase=self.phase,
            message=self.message,
            failed_phase=self.failed_phase,
            start_time=self.started_at,
            end_time=self.finished_at,
            duration_seconds=duration,
            forced_stops=self.forced_stops,
        )


@dataclass
class RunSummary:
    """Aggregate result of one orchestrator run."""

    total: int = 0
    results: List[MigrationResult] = field(default_factory=list)
    start_time: Optional[float] = None
    end_time: Optional[float] = None

    def _count(self, outcome: Outcome) -> int:
        return sum(1 for r in self.results if r.outcome is outcome)

    @property
    def succeeded(self) -> int:
        return self._count(Outcome.SUCCESS)

    @property
    def failed(self) -> int:
        return self._count(Outcome.FAILED)

    @property
    def errored(self) -> int:
        return self._count(Outcome.ERRORED)

    @property
    def failures(self) -> List[MigrationResult]:
        """Failed and errored results, each carrying its reason."""
        return [r for r in self.results if r.outcome is not Outcome.SUCCESS]

    def to_stats(self) -> Dict[str, int]:
        return {
            "total": self.total,
            "completed": len(self.results),
            "succeeded": self.succeeded,
            "failed": self.failed,
            "errored": self.errored,
        }
