"""Domain models for the automation rule engine."""

from dataclasses import dataclass, field, replace
from datetime import datetime, time
from enum import Enum


class ConditionOperator(str, Enum):
    """Comparison operator of a single condition."""

    GT = "gt"
    LT = "lt"
    GTE = "gte"
    LTE = "lte"
    EQ = "eq"
    NEQ = "neq"
    BETWEEN = "between"


class ActionType(str, Enum):
    """Command type sent to an actuator."""

    ON = "on"
    OFF = "off"
    SET_VALUE = "set_value"


class ActuatorState(str, Enum):
    """Hysteresis state of a rule."""

    ON = "on"
    OFF = "off"
    UNKNOWN = "unknown"


class ScheduleType(str, Enum):
    """Recurrence of a schedule rule."""

    ONCE = "once"
    DAILY = "daily"
    WEEKLY = "weekly"
    CRON = "cron"


class ExecutionStatus(str, Enum):
    """Outcome of an evaluation attempt."""

    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


class TriggerSource(str, Enum):
    """What started an evaluation."""

    SENSOR = "sensor"
    SCHEDULE = "schedule"


@dataclass(frozen=True)
class Condition:
    """Threshold comparison against the latest value of one sensor."""

    sensor_id: str
    operator: ConditionOperator
    value: float
    value_max: float | None = None  # only for BETWEEN
    condition_order: int = 0


@dataclass(frozen=True)
class ConditionGroup:
    """AND-combined conditions. Groups of a rule are OR-combined."""

    conditions: list[Condition] = field(default_factory=list)
    group_order: int = 0

    def ordered_conditions(self) -> list[Condition]:
        return sorted(self.conditions, key=lambda c: c.condition_order)


@dataclass(frozen=True)
class Action:
    """Command to issue to one actuator when a rule fires."""

    actuator_id: str
    action_type: ActionType
    action_value: int | None = None  # 0-100, required for SET_VALUE
    action_order: int = 0


@dataclass(frozen=True)
class HysteresisConfig:
    """
    Dual-threshold debouncing.

    Direction is taken from the threshold ordering: with ``on_threshold <
    off_threshold`` the rule turns ON at or below ``on_threshold`` (heating);
    with ``on_threshold > off_threshold`` it turns ON at or above it (cooling).
    """

    on_threshold: float
    off_threshold: float
    min_state_change_interval_seconds: int = 60

    @property
    def activates_below(self) -> bool:
        return self.on_threshold < self.off_threshold

    def wants_on(self, value: float) -> bool:
        if self.activates_below:
            return value <= self.on_threshold
        return value >= self.on_threshold

    def wants_off(self, value: float) -> bool:
        if self.activates_below:
            return value >= self.off_threshold
        return value <= self.off_threshold


@dataclass
class RuleRuntimeState:
    """Mutable per-rule state. Only the hysteresis gate and the dispatcher write it."""

    current_state: ActuatorState = ActuatorState.UNKNOWN
    last_state_change_at: datetime | None = None
    trigger_count: int = 0
    last_triggered_at: datetime | None = None

    def copy(self) -> "RuleRuntimeState":
        return replace(self)


@dataclass
class ScheduleRule:
    """Time-based trigger attached one-to-one to a rule."""

    schedule_type: ScheduleType
    time_of_day: time
    timezone: str = "UTC"
    days_of_week: list[int] | None = None  # 0 = Sunday ... 6 = Saturday
    cron_expression: str | None = None
    created_at: datetime | None = None
    next_run_at: datetime | None = None
    last_run_at: datetime | None = None


@dataclass
class Rule:
    """A rule aggregate: conditions, actions, optional schedule and hysteresis."""

    id: int
    owner_id: str
    name: str
    created_at: datetime
    priority: int = 0
    is_active: bool = True
    description: str | None = None
    condition_groups: list[ConditionGroup] = field(default_factory=list)
    actions: list[Action] = field(default_factory=list)
    hysteresis: HysteresisConfig | None = None
    schedule: ScheduleRule | None = None
    state: RuleRuntimeState = field(default_factory=RuleRuntimeState)

    def ordered_groups(self) -> list[ConditionGroup]:
        return sorted(self.condition_groups, key=lambda g: g.group_order)

    def ordered_actions(self) -> list[Action]:
        return sorted(self.actions, key=lambda a: a.action_order)

    def sensor_ids(self) -> list[str]:
        """Sensors referenced by the rule's conditions, in evaluation order, without duplicates."""
        seen: dict[str, None] = {}
        for group in self.ordered_groups():
            for condition in group.ordered_conditions():
                seen.setdefault(condition.sensor_id, None)
        return list(seen)


@dataclass(frozen=True)
class SensorReading:
    """A new reading entering the engine."""

    sensor_id: str
    value: float
    timestamp: datetime
    owner_id: str | None = None


@dataclass(frozen=True)
class MatchResult:
    """Outcome of evaluating one rule's conditions."""

    rule: Rule
    matched: bool
    reason: str
    group_index: int | None = None


@dataclass(frozen=True)
class HysteresisDecision:
    """Outcome of one pass through the hysteresis gate."""

    transitioned: bool
    previous_state: ActuatorState
    new_state: ActuatorState
    suppressed: bool = False
    reason: str = ""


@dataclass(frozen=True)
class CommandRequest:
    """Command handed to the external command queue (always submitted as pending)."""

    actuator_id: str
    command_type: ActionType
    value: int | None = None
    status: str = "pending"
    rule_id: int | None = None


@dataclass(frozen=True)
class DispatchOutcome:
    """Result of submitting one command."""

    request: CommandRequest
    command_id: str | None = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class EvaluationContext:
    """What triggered an evaluation, carried into the execution log."""

    source: TriggerSource
    at: datetime
    sensor_id: str | None = None
    sensor_value: float | None = None


@dataclass(frozen=True)
class ExecutionLogEntry:
    """Immutable audit record of one evaluation outcome."""

    rule_id: int
    executed_at: datetime
    status: ExecutionStatus
    sensor_id: str | None = None
    sensor_value: float | None = None
    command_id: str | None = None
    error_message: str | None = None
    id: int | None = None


@dataclass(frozen=True)
class EngineSettings:
    """Tunables of the rule engine."""

    lock_timeout_seconds: float = 2.0
    dispatch_timeout_seconds: float = 5.0
    dispatch_settle_timeout_seconds: float = 10.0  # wait for a timed-out command before the next one
    tick_interval_seconds: float = 60.0
    dispatch_workers: int = 4
    audit_unselected_matches: bool = False  # log matching-but-outranked rules as skipped


@dataclass
class EvaluationReport:
    """What happened while handling one reading or one scheduled run."""

    context: EvaluationContext
    matched_rule_ids: list[int] = field(default_factory=list)
    selected_rule_id: int | None = None
    decision: HysteresisDecision | None = None
    outcomes: list[DispatchOutcome] = field(default_factory=list)
    skipped_reason: str | None = None
    error: str | None = None

    @property
    def fired(self) -> bool:
        return any(o.succeeded for o in self.outcomes)
