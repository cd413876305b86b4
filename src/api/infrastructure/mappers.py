"""Conversion between ORM rows and automation domain aggregates."""

from src.api.domain import models as orm
from src.automation.domain.clock import ensure_utc
from src.automation.domain.models import (
    Action,
    ActionType,
    ActuatorState,
    Condition,
    ConditionGroup,
    ConditionOperator,
    ExecutionLogEntry,
    ExecutionStatus,
    HysteresisConfig,
    Rule,
    RuleRuntimeState,
    ScheduleRule,
    ScheduleType,
)


def runtime_state_from_orm(row: orm.AutomationRule) -> RuleRuntimeState:
    return RuleRuntimeState(
        current_state=ActuatorState(row.current_actuator_state or ActuatorState.UNKNOWN.value),
        last_state_change_at=ensure_utc(row.last_state_change_at),
        trigger_count=row.trigger_count or 0,
        last_triggered_at=ensure_utc(row.last_triggered_at),
    )


def schedule_from_orm(row: orm.ScheduleRule, rule_created_at=None) -> ScheduleRule:
    return ScheduleRule(
        schedule_type=ScheduleType(row.schedule_type),
        time_of_day=row.time_of_day,
        timezone=row.timezone,
        days_of_week=list(row.days_of_week) if row.days_of_week is not None else None,
        cron_expression=row.cron_expression,
        created_at=ensure_utc(row.created_at) or ensure_utc(rule_created_at),
        next_run_at=ensure_utc(row.next_run_at),
        last_run_at=ensure_utc(row.last_run_at),
    )


def rule_from_orm(row: orm.AutomationRule) -> Rule:
    """
    Build a detached rule aggregate from a fully loaded ORM row.

    Groups, conditions, actions and schedule must already be loaded
    (``selectinload``) when the row comes from an async session.
    """
    hysteresis = None
    if row.on_threshold is not None and row.off_threshold is not None:
        hysteresis = HysteresisConfig(
            on_threshold=row.on_threshold,
            off_threshold=row.off_threshold,
            min_state_change_interval_seconds=row.min_state_change_interval_seconds,
        )

    created_at = ensure_utc(row.created_at)
    return Rule(
        id=row.id,
        owner_id=row.owner_id,
        name=row.name,
        created_at=created_at,
        priority=row.priority,
        is_active=row.is_active,
        description=row.description,
        condition_groups=[
            ConditionGroup(
                conditions=[
                    Condition(
                        sensor_id=c.sensor_id,
                        operator=ConditionOperator(c.operator),
                        value=c.value,
                        value_max=c.value_max,
                        condition_order=c.condition_order,
                    )
                    for c in g.conditions
                ],
                group_order=g.group_order,
            )
            for g in row.condition_groups
        ],
        actions=[
            Action(
                actuator_id=a.actuator_id,
                action_type=ActionType(a.action_type),
                action_value=a.action_value,
                action_order=a.action_order,
            )
            for a in row.actions
        ],
        hysteresis=hysteresis,
        schedule=schedule_from_orm(row.schedule, created_at) if row.schedule is not None else None,
        state=runtime_state_from_orm(row),
    )


def condition_groups_to_orm(rule: Rule) -> list[orm.RuleConditionGroup]:
    return [
        orm.RuleConditionGroup(
            group_order=group.group_order,
            conditions=[
                orm.RuleCondition(
                    sensor_id=c.sensor_id,
                    operator=c.operator.value,
                    value=c.value,
                    value_max=c.value_max,
                    condition_order=c.condition_order,
                )
                for c in group.conditions
            ],
        )
        for group in rule.condition_groups
    ]


def actions_to_orm(rule: Rule) -> list[orm.RuleAction]:
    return [
        orm.RuleAction(
            actuator_id=a.actuator_id,
            action_type=a.action_type.value,
            action_value=a.action_value,
            action_order=a.action_order,
        )
        for a in rule.actions
    ]


def schedule_to_orm(schedule: ScheduleRule) -> orm.ScheduleRule:
    row = orm.ScheduleRule(
        schedule_type=schedule.schedule_type.value,
        time_of_day=schedule.time_of_day,
        timezone=schedule.timezone,
        days_of_week=list(schedule.days_of_week) if schedule.days_of_week is not None else None,
        cron_expression=schedule.cron_expression,
        next_run_at=schedule.next_run_at,
        last_run_at=schedule.last_run_at,
    )
    if schedule.created_at is not None:
        row.created_at = schedule.created_at
    return row


def apply_hysteresis(row: orm.AutomationRule, hysteresis: HysteresisConfig | None, default_interval: int) -> None:
    if hysteresis is None:
        row.on_threshold = None
        row.off_threshold = None
        row.min_state_change_interval_seconds = default_interval
    else:
        row.on_threshold = hysteresis.on_threshold
        row.off_threshold = hysteresis.off_threshold
        row.min_state_change_interval_seconds = hysteresis.min_state_change_interval_seconds


def rule_to_orm(rule: Rule, default_interval: int = 60) -> orm.AutomationRule:
    """New ORM row (with children) for a rule that has not been persisted yet."""
    row = orm.AutomationRule(
        owner_id=rule.owner_id,
        name=rule.name,
        description=rule.description,
        priority=rule.priority,
        is_active=rule.is_active,
        created_at=rule.created_at,
        current_actuator_state=rule.state.current_state.value,
        last_state_change_at=rule.state.last_state_change_at,
        trigger_count=rule.state.trigger_count,
        last_triggered_at=rule.state.last_triggered_at,
        condition_groups=condition_groups_to_orm(rule),
        actions=actions_to_orm(rule),
    )
    apply_hysteresis(row, rule.hysteresis, default_interval)
    if rule.schedule is not None:
        row.schedule = schedule_to_orm(rule.schedule)
    return row


def log_entry_from_orm(row: orm.RuleExecutionLog) -> ExecutionLogEntry:
    return ExecutionLogEntry(
        id=row.id,
        rule_id=row.rule_id,
        executed_at=ensure_utc(row.executed_at),
        status=ExecutionStatus(row.execution_status),
        sensor_id=row.sensor_id,
        sensor_value=row.sensor_value,
        command_id=row.command_id,
        error_message=row.error_message,
    )


def log_entry_to_orm(entry: ExecutionLogEntry) -> orm.RuleExecutionLog:
    return orm.RuleExecutionLog(
        rule_id=entry.rule_id,
        sensor_id=entry.sensor_id,
        sensor_value=entry.sensor_value,
        executed_at=entry.executed_at,
        command_id=entry.command_id,
        execution_status=entry.status.value,
        error_message=entry.error_message,
    )
