"""Save-time validation of rule aggregates."""

from dataclasses import replace
from datetime import datetime

from src.automation.domain.exceptions import RuleConfigurationError
from src.automation.domain.models import (
    Action,
    ActionType,
    Condition,
    ConditionOperator,
    HysteresisConfig,
    Rule,
    ScheduleRule,
    ScheduleType,
)
from src.automation.infrastructure.triggers import build_trigger

MIN_PRIORITY = 0
MAX_PRIORITY = 1000
MIN_STATE_CHANGE_INTERVAL_SECONDS = 10


def condition_errors(condition: Condition) -> list[str]:
    errors = []
    if not condition.sensor_id:
        errors.append("Sensor is required")
    if condition.operator == ConditionOperator.BETWEEN:
        if condition.value_max is None:
            errors.append("Maximum value is required for BETWEEN operator")
        elif condition.value_max <= condition.value:
            errors.append("Maximum value must be greater than minimum value")
    if condition.condition_order < 0:
        errors.append("Condition order must be non-negative")
    return errors


def action_errors(action: Action) -> list[str]:
    errors = []
    if not action.actuator_id:
        errors.append("Actuator is required")
    if action.action_type == ActionType.SET_VALUE and action.action_value is None:
        errors.append("Value is required for Set Value action")
    if action.action_value is not None and not 0 <= action.action_value <= 100:
        errors.append("Value must be between 0 and 100")
    if action.action_order < 0:
        errors.append("Action order must be non-negative")
    return errors


def hysteresis_errors(config: HysteresisConfig) -> list[str]:
    errors = []
    if config.on_threshold is None or config.off_threshold is None:
        errors.append("Hysteresis requires both ON and OFF thresholds")
    elif config.on_threshold == config.off_threshold:
        errors.append("Hysteresis ON and OFF thresholds must differ")
    if config.min_state_change_interval_seconds < MIN_STATE_CHANGE_INTERVAL_SECONDS:
        errors.append(f"Minimum state change interval must be at least {MIN_STATE_CHANGE_INTERVAL_SECONDS} seconds")
    return errors


def schedule_errors(schedule: ScheduleRule, created_at: datetime | None = None) -> list[str]:
    """Problems with a schedule. ``created_at`` stands in for a once-schedule not yet stamped."""
    errors = []
    if schedule.schedule_type == ScheduleType.WEEKLY:
        if not schedule.days_of_week:
            errors.append("At least one day of week is required for weekly schedule")
    if schedule.days_of_week and any(not 0 <= d <= 6 for d in schedule.days_of_week):
        errors.append("Days of week must be between 0 (Sunday) and 6 (Saturday)")
    if schedule.schedule_type == ScheduleType.CRON and not schedule.cron_expression:
        errors.append("Cron expression is required for cron schedule")
    if errors:
        return errors

    if schedule.created_at is None and created_at is not None:
        schedule = replace(schedule, created_at=created_at)
    try:
        build_trigger(schedule)
    except ValueError as e:
        errors.append(str(e))
    return errors


def validate_rule(rule: Rule) -> None:
    """
    Check a rule aggregate before it is persisted.

    Raises:
        RuleConfigurationError: listing every problem found
    """
    errors: list[str] = []

    if not rule.name or not rule.name.strip():
        errors.append("Rule name is required")
    if not MIN_PRIORITY <= rule.priority <= MAX_PRIORITY:
        errors.append(f"Priority must be between {MIN_PRIORITY} and {MAX_PRIORITY}")

    group_orders = [g.group_order for g in rule.condition_groups]
    if len(group_orders) != len(set(group_orders)):
        errors.append("Condition group order must be unique within a rule")
    for group in rule.condition_groups:
        if not group.conditions:
            errors.append(f"Condition group {group.group_order} has no conditions")
        condition_orders = [c.condition_order for c in group.conditions]
        if len(condition_orders) != len(set(condition_orders)):
            errors.append(f"Condition order must be unique within group {group.group_order}")
        for condition in group.conditions:
            errors.extend(condition_errors(condition))

    if not rule.actions:
        errors.append("At least one action is required")
    actuators = [a.actuator_id for a in rule.actions]
    if len(actuators) != len(set(actuators)):
        errors.append("An actuator can appear only once among a rule's actions")
    for action in rule.actions:
        errors.extend(action_errors(action))

    if not rule.condition_groups and rule.schedule is None:
        errors.append("A rule needs at least one condition group or a schedule")

    if rule.hysteresis is not None:
        errors.extend(hysteresis_errors(rule.hysteresis))
    if rule.schedule is not None:
        errors.extend(schedule_errors(rule.schedule, rule.created_at))

    if errors:
        raise RuleConfigurationError(errors, rule_name=rule.name)
