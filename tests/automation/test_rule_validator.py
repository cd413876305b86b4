"""Tests for rule validation on save."""

from datetime import time

import pytest

from src.automation.application.rule_validator import validate_rule
from src.automation.domain.exceptions import RuleConfigurationError
from src.automation.domain.models import (
    Action,
    ActionType,
    Condition,
    ConditionGroup,
    ConditionOperator,
    HysteresisConfig,
    ScheduleRule,
    ScheduleType,
)


def errors_of(rule) -> list[str]:
    with pytest.raises(RuleConfigurationError) as exc_info:
        validate_rule(rule)
    return exc_info.value.errors


class TestValidateRule:
    def test_valid_rule_passes(self, make_rule, group):
        validate_rule(make_rule(groups=[group(("temp", "between", 20, 25))]))

    def test_between_needs_ordered_bounds(self, make_rule, group):
        assert "Maximum value is required for BETWEEN operator" in errors_of(
            make_rule(groups=[group(("temp", "between", 20))])
        )
        assert "Maximum value must be greater than minimum value" in errors_of(
            make_rule(groups=[group(("temp", "between", 25, 20))])
        )

    def test_priority_range(self, make_rule, group):
        assert "Priority must be between 0 and 1000" in errors_of(make_rule(groups=[group(("t", "gt", 1))], priority=1001))

    def test_needs_groups_or_schedule(self, make_rule):
        assert "A rule needs at least one condition group or a schedule" in errors_of(make_rule(groups=[]))

    def test_needs_actions(self, make_rule, group):
        assert "At least one action is required" in errors_of(make_rule(groups=[group(("t", "gt", 1))], actions=[]))

    def test_action_value_rules(self, make_rule, group):
        errors = errors_of(
            make_rule(
                groups=[group(("t", "gt", 1))],
                actions=[
                    Action("fan", ActionType.SET_VALUE),
                    Action("vent", ActionType.SET_VALUE, 150),
                ],
            )
        )

        assert "Value is required for Set Value action" in errors
        assert "Value must be between 0 and 100" in errors

    def test_duplicate_actuator(self, make_rule, group):
        errors = errors_of(
            make_rule(
                groups=[group(("t", "gt", 1))],
                actions=[Action("fan", ActionType.ON), Action("fan", ActionType.OFF, action_order=1)],
            )
        )

        assert "An actuator can appear only once among a rule's actions" in errors

    def test_duplicate_orders(self, make_rule):
        condition = Condition("t", ConditionOperator.GT, 1)
        rule = make_rule(
            groups=[
                ConditionGroup([condition, condition], group_order=0),
                ConditionGroup([condition], group_order=0),
            ]
        )

        errors = errors_of(rule)

        assert "Condition group order must be unique within a rule" in errors
        assert "Condition order must be unique within group 0" in errors

    def test_empty_group(self, make_rule):
        assert "Condition group 0 has no conditions" in errors_of(make_rule(groups=[ConditionGroup([])]))

    def test_hysteresis_rules(self, make_rule, group):
        errors = errors_of(
            make_rule(
                groups=[group(("t", "gt", 1))],
                hysteresis=HysteresisConfig(on_threshold=20, off_threshold=20, min_state_change_interval_seconds=5),
            )
        )

        assert "Hysteresis ON and OFF thresholds must differ" in errors
        assert "Minimum state change interval must be at least 10 seconds" in errors

    @pytest.mark.parametrize(
        "schedule, message",
        [
            (
                ScheduleRule(schedule_type=ScheduleType.WEEKLY, time_of_day=time(7)),
                "At least one day of week is required for weekly schedule",
            ),
            (
                ScheduleRule(schedule_type=ScheduleType.WEEKLY, time_of_day=time(7), days_of_week=[7]),
                "Days of week must be between 0 (Sunday) and 6 (Saturday)",
            ),
            (
                ScheduleRule(schedule_type=ScheduleType.CRON, time_of_day=time(7)),
                "Cron expression is required for cron schedule",
            ),
            (
                ScheduleRule(schedule_type=ScheduleType.DAILY, time_of_day=time(7), timezone="Mars/Olympus"),
                "Unknown timezone 'Mars/Olympus'",
            ),
        ],
    )
    def test_schedule_rules(self, make_rule, schedule, message):
        assert message in errors_of(make_rule(schedule=schedule))

    def test_invalid_cron_expression(self, make_rule):
        schedule = ScheduleRule(schedule_type=ScheduleType.CRON, time_of_day=time(7), cron_expression="61 * * * *")

        assert errors_of(make_rule(schedule=schedule))

    @pytest.mark.parametrize("expression", ["0 7 * * 0-6", "0 7 * * 0-3", "30 6 * * 0,6"])
    def test_cron_ranges_starting_on_sunday_are_accepted(self, make_rule, expression):
        schedule = ScheduleRule(schedule_type=ScheduleType.CRON, time_of_day=time(7), cron_expression=expression)

        validate_rule(make_rule(schedule=schedule))

    def test_once_schedule_uses_rule_creation_date(self, make_rule):
        validate_rule(make_rule(schedule=ScheduleRule(schedule_type=ScheduleType.ONCE, time_of_day=time(9))))

    def test_all_errors_reported_together(self, make_rule):
        rule = make_rule(name=" ", groups=[], actions=[], priority=-1)

        error = pytest.raises(RuleConfigurationError, validate_rule, rule).value

        assert len(error.errors) == 4
        assert error.details["rule_name"] == " "
