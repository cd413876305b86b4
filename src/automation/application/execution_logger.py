"""Audit trail of rule evaluation outcomes."""

from loguru import logger

from src.automation.domain.models import EvaluationContext, ExecutionLogEntry, ExecutionStatus
from src.automation.domain.protocols import ExecutionLogSink


class ExecutionLogger:
    """Write one immutable entry per conclusive outcome to the log sink."""

    def __init__(self, sink: ExecutionLogSink):
        self.sink = sink

    def log(
        self,
        rule_id: int,
        context: EvaluationContext,
        status: ExecutionStatus,
        error: str | None = None,
        command_id: str | None = None,
    ) -> ExecutionLogEntry:
        entry = ExecutionLogEntry(
            rule_id=rule_id,
            executed_at=context.at,
            status=status,
            sensor_id=context.sensor_id,
            sensor_value=context.sensor_value,
            command_id=command_id,
            error_message=error,
        )
        stored = self.sink.append(entry)

        message = f"Rule {rule_id} [{context.source.value}] -> {status.value}"
        if error:
            message += f": {error}"
        if status == ExecutionStatus.FAILED:
            logger.warning(message)
        else:
            logger.debug(message)
        return stored

    def success(self, rule_id: int, context: EvaluationContext, command_id: str | None = None) -> ExecutionLogEntry:
        return self.log(rule_id, context, ExecutionStatus.SUCCESS, command_id=command_id)

    def failed(self, rule_id: int, context: EvaluationContext, error: str) -> ExecutionLogEntry:
        return self.log(rule_id, context, ExecutionStatus.FAILED, error=error)

    def skipped(self, rule_id: int, context: EvaluationContext, reason: str) -> ExecutionLogEntry:
        return self.log(rule_id, context, ExecutionStatus.SKIPPED, error=reason)
