"""Domain layer for the automation rule engine."""

from src.automation.domain.exceptions import (
    AutomationException,
    DispatchError,
    DispatchTimeoutError,
    LockTimeoutError,
    RuleConfigurationError,
    RuleNotFoundError,
)
from src.automation.domain.models import (
    Action,
    ActionType,
    ActuatorState,
    CommandRequest,
    Condition,
    ConditionGroup,
    ConditionOperator,
    EngineSettings,
    EvaluationContext,
    EvaluationReport,
    ExecutionLogEntry,
    ExecutionStatus,
    HysteresisConfig,
    Rule,
    RuleRuntimeState,
    ScheduleRule,
    ScheduleType,
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

__all__ = [
    "AutomationException",
    "DispatchError",
    "DispatchTimeoutError",
    "LockTimeoutError",
    "RuleConfigurationError",
    "RuleNotFoundError",
    "Action",
    "ActionType",
    "ActuatorState",
    "CommandRequest",
    "Condition",
    "ConditionGroup",
    "ConditionOperator",
    "EngineSettings",
    "EvaluationContext",
    "EvaluationReport",
    "ExecutionLogEntry",
    "ExecutionStatus",
    "HysteresisConfig",
    "Rule",
    "RuleRuntimeState",
    "ScheduleRule",
    "ScheduleType",
    "SensorReading",
    "TriggerSource",
    "CommandQueue",
    "ExecutionLogSink",
    "LatestValueProvider",
    "RuleProvider",
    "RuntimeStateStore",
    "ScheduleStore",
]
