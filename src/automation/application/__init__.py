"""Application layer for the automation rule engine."""

from src.automation.application.action_dispatcher import ActionDispatcher
from src.automation.application.condition_evaluator import ConditionEvaluator
from src.automation.application.execution_logger import ExecutionLogger
from src.automation.application.hysteresis_gate import HysteresisGate
from src.automation.application.priority_resolver import PriorityResolver
from src.automation.application.rule_engine import RuleEngine
from src.automation.application.rule_validator import validate_rule
from src.automation.application.schedule_evaluator import ScheduleEvaluator

__all__ = [
    "ActionDispatcher",
    "ConditionEvaluator",
    "ExecutionLogger",
    "HysteresisGate",
    "PriorityResolver",
    "RuleEngine",
    "ScheduleEvaluator",
    "validate_rule",
]
