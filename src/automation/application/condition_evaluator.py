"""Evaluation of a rule's condition groups against latest sensor values."""

from typing import Callable, Mapping

from loguru import logger

from src.automation.domain.models import Condition, ConditionOperator, MatchResult, Rule

_COMPARATORS: dict[ConditionOperator, Callable[[float, Condition], bool]] = {
    ConditionOperator.GT: lambda v, c: v > c.value,
    ConditionOperator.LT: lambda v, c: v < c.value,
    ConditionOperator.GTE: lambda v, c: v >= c.value,
    ConditionOperator.LTE: lambda v, c: v <= c.value,
    ConditionOperator.EQ: lambda v, c: v == c.value,
    ConditionOperator.NEQ: lambda v, c: v != c.value,
    ConditionOperator.BETWEEN: lambda v, c: c.value_max is not None and c.value <= v <= c.value_max,
}


def condition_satisfied(condition: Condition, values: Mapping[str, float]) -> bool:
    """A condition whose sensor has no value is never satisfied, whatever the operator."""
    value = values.get(condition.sensor_id)
    if value is None:
        return False
    return _COMPARATORS[condition.operator](float(value), condition)


def describe_condition(condition: Condition) -> str:
    if condition.operator == ConditionOperator.BETWEEN:
        return f"{condition.sensor_id} between {condition.value} and {condition.value_max}"
    return f"{condition.sensor_id} {condition.operator.value} {condition.value}"


class ConditionEvaluator:
    """
    Pure evaluation of condition groups.

    Groups are tried in ``group_order``; conditions inside a group are ANDed and
    the first fully satisfied group short-circuits with a match.
    """

    def evaluate(self, rule: Rule, latest_values: Mapping[str, float]) -> MatchResult:
        groups = rule.ordered_groups()
        if not groups:
            return MatchResult(rule=rule, matched=False, reason="rule has no condition groups")

        failed: list[str] = []
        for index, group in enumerate(groups):
            unsatisfied = self._first_unsatisfied(group.ordered_conditions(), latest_values)
            if unsatisfied is None:
                reason = f"group {index} satisfied"
                logger.debug(f"Rule {rule.id} matched: {reason}")
                return MatchResult(rule=rule, matched=True, reason=reason, group_index=index)
            failed.append(f"group {index}: {self._explain(unsatisfied, latest_values)}")

        return MatchResult(rule=rule, matched=False, reason="; ".join(failed))

    def _first_unsatisfied(self, conditions: list[Condition], values: Mapping[str, float]) -> Condition | None:
        for condition in conditions:
            if not condition_satisfied(condition, values):
                return condition
        return None

    def _explain(self, condition: Condition, values: Mapping[str, float]) -> str:
        value = values.get(condition.sensor_id)
        if value is None:
            return f"no value for {condition.sensor_id}"
        return f"{describe_condition(condition)} is false (value={value})"
