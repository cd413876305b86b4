"""Execution log sinks."""

import itertools
import threading

from src.automation.domain.models import ExecutionLogEntry, ExecutionStatus
from src.automation.domain.protocols import ExecutionLogSink


class InMemoryExecutionLogSink(ExecutionLogSink):
    """Simple in-memory execution log for testing and embedded use."""

    def __init__(self):
        self.entries: list[ExecutionLogEntry] = []
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def append(self, entry: ExecutionLogEntry) -> ExecutionLogEntry:
        """Store an entry, assigning it a sequential id."""
        with self._lock:
            stored = ExecutionLogEntry(
                id=next(self._ids),
                rule_id=entry.rule_id,
                executed_at=entry.executed_at,
                status=entry.status,
                sensor_id=entry.sensor_id,
                sensor_value=entry.sensor_value,
                command_id=entry.command_id,
                error_message=entry.error_message,
            )
            self.entries.append(stored)
        return stored

    def for_rule(self, rule_id: int) -> list[ExecutionLogEntry]:
        """Entries of one rule, newest first."""
        return sorted((e for e in self.entries if e.rule_id == rule_id), key=lambda e: e.id, reverse=True)

    def with_status(self, status: ExecutionStatus) -> list[ExecutionLogEntry]:
        return [e for e in self.entries if e.status == status]

    def clear(self):
        """Clear all stored entries."""
        self.entries.clear()

    def __len__(self):
        return len(self.entries)
