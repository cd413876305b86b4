"""Protocols (interfaces) for the collaborators of the rule engine."""

from datetime import datetime
from typing import Iterable, Protocol, runtime_checkable

from src.automation.domain.models import (
    CommandRequest,
    ExecutionLogEntry,
    Rule,
    RuleRuntimeState,
    ScheduleRule,
)


@runtime_checkable
class LatestValueProvider(Protocol):
    """Read access to the most recent value of any sensor."""

    def get_latest(self, sensor_id: str) -> float | None:
        """Return the latest value, or None if the sensor never reported."""
        ...

    def get_many(self, sensor_ids: Iterable[str]) -> dict[str, float]:
        """Latest values for several sensors. Sensors without a value are omitted."""
        ...


@runtime_checkable
class RuleProvider(Protocol):
    """Read side of the rule configuration store."""

    def list_active_rules(self, owner_id: str) -> list[Rule]:
        """Active rules of one owner (definitions only, runtime state may be stale)."""
        ...

    def get_rule(self, rule_id: int) -> Rule | None:
        """Single rule by id."""
        ...


@runtime_checkable
class ScheduleStore(Protocol):
    """Schedule bookkeeping, written only by the schedule evaluator."""

    def list_scheduled_rules(self) -> list[Rule]:
        """All rules that carry a schedule, active or not."""
        ...

    def mark_run(self, rule_id: int, last_run_at: datetime, next_run_at: datetime | None) -> None:
        """Persist schedule bookkeeping after a run."""
        ...

    def set_next_run(self, rule_id: int, next_run_at: datetime | None) -> None:
        """Persist the next expected run without recording a run."""
        ...


@runtime_checkable
class RuntimeStateStore(Protocol):
    """Hot per-rule state. Callers serialize access per rule id."""

    def load_state(self, rule_id: int) -> RuleRuntimeState:
        ...

    def save_hysteresis_state(self, rule_id: int, state: RuleRuntimeState) -> None:
        """Persist ``current_state`` and ``last_state_change_at``."""
        ...

    def record_trigger(self, rule_id: int, triggered_at: datetime) -> RuleRuntimeState:
        """Increment ``trigger_count`` and set ``last_triggered_at``; return the new state."""
        ...


@runtime_checkable
class CommandQueue(Protocol):
    """Fire-and-forget queue of actuator commands."""

    def submit(self, request: CommandRequest) -> str:
        """
        Enqueue a pending command.

        Returns:
            Identifier of the queued command

        Raises:
            DispatchError: if the queue rejects the command
        """
        ...


@runtime_checkable
class ExecutionLogSink(Protocol):
    """Append-only store of execution log entries."""

    def append(self, entry: ExecutionLogEntry) -> ExecutionLogEntry:
        """Store an entry and return it (with its id, if the sink assigns one)."""
        ...
