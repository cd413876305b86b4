"""RuleEngine application service: sensor readings and clock ticks in, commands out."""

from datetime import datetime
from typing import Callable

from loguru import logger

from src.automation.application.action_dispatcher import ActionDispatcher
from src.automation.application.condition_evaluator import ConditionEvaluator
from src.automation.application.execution_logger import ExecutionLogger
from src.automation.application.hysteresis_gate import HysteresisGate
from src.automation.application.priority_resolver import PriorityResolver
from src.automation.application.schedule_evaluator import ScheduleEvaluator
from src.automation.domain.clock import ensure_utc, utcnow
from src.automation.domain.exceptions import LockTimeoutError
from src.automation.domain.models import (
    ActuatorState,
    EngineSettings,
    EvaluationContext,
    EvaluationReport,
    MatchResult,
    Rule,
    SensorReading,
    TriggerSource,
)
from src.automation.domain.protocols import (
    CommandQueue,
    ExecutionLogSink,
    LatestValueProvider,
    RuleProvider,
    RuntimeStateStore,
    ScheduleStore,
)
from src.automation.infrastructure.rule_lock import KeyedLockRegistry


class RuleEngine:
    """
    Evaluate automation rules.

    Sensor path: ConditionEvaluator -> PriorityResolver -> HysteresisGate ->
    ActionDispatcher -> ExecutionLogger, invoked synchronously once per reading.
    Schedule path: ScheduleEvaluator -> HysteresisGate -> ActionDispatcher ->
    ExecutionLogger, invoked on each clock tick. A failure while processing one
    rule is logged against that rule and never aborts its siblings.
    """

    def __init__(
        self,
        rule_provider: RuleProvider,
        latest_values: LatestValueProvider,
        state_store: RuntimeStateStore,
        command_queue: CommandQueue,
        log_sink: ExecutionLogSink,
        schedule_store: ScheduleStore | None = None,
        settings: EngineSettings | None = None,
        locks: KeyedLockRegistry | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize the engine.

        Args:
            rule_provider: Read access to rule definitions per owner
            latest_values: Most recent value of any sensor
            state_store: Per-rule runtime state (hysteresis and counters)
            command_queue: Where actuator commands are submitted
            log_sink: Where execution log entries are appended
            schedule_store: Schedule bookkeeping (required for ``handle_tick``)
            settings: Timeouts and audit behaviour
            locks: Per-rule lock registry, shared with anything else mutating runtime state
            clock: Source of "now" for ticks without an explicit time
        """
        self.settings = settings or EngineSettings()
        self.rule_provider = rule_provider
        self.latest_values = latest_values
        self.schedule_store = schedule_store
        self.clock = clock
        self.locks = locks or KeyedLockRegistry(default_timeout=self.settings.lock_timeout_seconds)

        self.evaluator = ConditionEvaluator()
        self.resolver = PriorityResolver()
        self.execution_logger = ExecutionLogger(log_sink)
        self.gate = HysteresisGate(state_store, self.locks, lock_timeout=self.settings.lock_timeout_seconds)
        self.dispatcher = ActionDispatcher(
            command_queue,
            state_store,
            self.locks,
            self.execution_logger,
            timeout=self.settings.dispatch_timeout_seconds,
            lock_timeout=self.settings.lock_timeout_seconds,
            max_workers=self.settings.dispatch_workers,
            settle_timeout=self.settings.dispatch_settle_timeout_seconds,
        )
        self.schedule_evaluator = (
            ScheduleEvaluator(schedule_store, self.settings.tick_interval_seconds) if schedule_store else None
        )

        logger.info(
            f"Initialized RuleEngine (lock_timeout={self.settings.lock_timeout_seconds}s, "
            f"dispatch_timeout={self.settings.dispatch_timeout_seconds}s, "
            f"tick_interval={self.settings.tick_interval_seconds}s)"
        )

    def handle_reading(self, reading: SensorReading) -> EvaluationReport:
        """Evaluate the owner's active rules against a new reading and fire at most one."""
        context = EvaluationContext(
            source=TriggerSource.SENSOR,
            at=ensure_utc(reading.timestamp),
            sensor_id=reading.sensor_id,
            sensor_value=reading.value,
        )
        report = EvaluationReport(context=context)

        if reading.owner_id is None:
            logger.debug(f"Reading from unowned sensor {reading.sensor_id} ignored")
            report.skipped_reason = "sensor has no owner"
            return report

        with logger.contextualize(owner_id=reading.owner_id, sensor_id=reading.sensor_id):
            rules = [r for r in self.rule_provider.list_active_rules(reading.owner_id) if r.is_active]
            if not rules:
                return report

            values = self._snapshot(rules, reading)
            matches = self._evaluate_all(rules, values, context)
            report.matched_rule_ids = [m.rule.id for m in matches if m.matched]

            winner = self.resolver.resolve(matches)
            if winner is None:
                logger.debug(f"No rule matched {reading.sensor_id}={reading.value}")
                return report

            report.selected_rule_id = winner.id
            if self.settings.audit_unselected_matches:
                for loser in self.resolver.losers(matches, winner):
                    self.execution_logger.skipped(loser.id, context, f"not selected: rule {winner.id} has precedence")

            self._fire(winner, context, values, report)
        return report

    def handle_tick(self, now: datetime | None = None) -> list[EvaluationReport]:
        """Run every schedule due at ``now``."""
        if self.schedule_evaluator is None:
            raise RuntimeError("RuleEngine was created without a schedule store")

        now = ensure_utc(now or self.clock())
        reports = []
        with self.schedule_evaluator.tick_lock:
            for due in self.schedule_evaluator.due_schedules(now):
                rule = due.rule
                context = EvaluationContext(source=TriggerSource.SCHEDULE, at=now)
                report = EvaluationReport(context=context, matched_rule_ids=[rule.id], selected_rule_id=rule.id)
                with logger.contextualize(owner_id=rule.owner_id):
                    try:
                        values = self.latest_values.get_many(rule.sensor_ids()) if rule.hysteresis else {}
                        self._fire(rule, context, values, report)
                    except Exception as e:
                        logger.exception(f"Scheduled run of rule {rule.id} failed: {e}")
                        report.error = str(e)
                    try:
                        self.schedule_evaluator.mark_run(rule, now)
                    except Exception as e:
                        logger.exception(f"Failed to update schedule bookkeeping of rule {rule.id}: {e}")
                reports.append(report)
        if not reports:
            logger.debug(f"Schedule tick at {now.isoformat()}: no rule due")
        return reports

    def _snapshot(self, rules: list[Rule], reading: SensorReading) -> dict[str, float]:
        """The triggering value plus the latest known value of every other referenced sensor."""
        referenced = {sensor_id for rule in rules for sensor_id in rule.sensor_ids()}
        referenced.discard(reading.sensor_id)
        values = self.latest_values.get_many(referenced) if referenced else {}
        values[reading.sensor_id] = reading.value
        return values

    def _evaluate_all(
        self, rules: list[Rule], values: dict[str, float], context: EvaluationContext
    ) -> list[MatchResult]:
        matches = []
        for rule in rules:
            try:
                matches.append(self.evaluator.evaluate(rule, values))
            except Exception as e:
                logger.exception(f"Error evaluating conditions of rule {rule.id}: {e}")
                self.execution_logger.failed(rule.id, context, f"condition evaluation error: {e}")
        return matches

    def _hysteresis_input(self, rule: Rule, context: EvaluationContext, values: dict[str, float]) -> float | None:
        """The triggering value if the rule watches that sensor, else the rule's first sensor."""
        sensor_ids = rule.sensor_ids()
        if context.sensor_id is not None and context.sensor_id in sensor_ids:
            return context.sensor_value
        if not sensor_ids:
            return None
        return values.get(sensor_ids[0])

    def _fire(self, rule: Rule, context: EvaluationContext, values: dict[str, float], report: EvaluationReport) -> None:
        with logger.contextualize(rule_id=rule.id):
            try:
                invert = False
                if rule.hysteresis is not None:
                    value = self._hysteresis_input(rule, context, values)
                    if value is None:
                        report.skipped_reason = "no value for the hysteresis sensor"
                        self.execution_logger.skipped(rule.id, context, report.skipped_reason)
                        return

                    decision = self.gate.evaluate(rule, value, context.at)
                    report.decision = decision
                    if decision.suppressed:
                        report.skipped_reason = decision.reason
                        self.execution_logger.skipped(rule.id, context, decision.reason)
                        return
                    if not decision.transitioned:
                        logger.debug(f"Rule {rule.id}: {decision.reason}")
                        return
                    invert = decision.new_state == ActuatorState.OFF

                report.outcomes = self.dispatcher.dispatch(rule, context, invert=invert)
            except LockTimeoutError as e:
                report.skipped_reason = e.message
                self.execution_logger.skipped(rule.id, context, e.message)
            except Exception as e:
                logger.exception(f"Unexpected error firing rule {rule.id}: {e}")
                report.error = str(e)
                self.execution_logger.failed(rule.id, context, f"{type(e).__name__}: {e}")

    def close(self) -> None:
        self.dispatcher.close()
