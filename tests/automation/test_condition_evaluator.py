"""Tests for condition group evaluation."""

import pytest

from src.automation.application.condition_evaluator import ConditionEvaluator, condition_satisfied
from src.automation.domain.models import Condition, ConditionOperator


@pytest.fixture
def evaluator():
    return ConditionEvaluator()


class TestConditionSatisfied:
    @pytest.mark.parametrize(
        "operator, threshold, value, expected",
        [
            ("gt", 30, 31, True),
            ("gt", 30, 30, False),
            ("lt", 30, 29, True),
            ("gte", 30, 30, True),
            ("lte", 30, 30.1, False),
            ("eq", 30, 30, True),
            ("neq", 30, 30, False),
            ("neq", 30, 29, True),
        ],
    )
    def test_operators(self, operator, threshold, value, expected):
        condition = Condition("temp", ConditionOperator(operator), threshold)

        assert condition_satisfied(condition, {"temp": value}) is expected

    def test_between_is_inclusive(self):
        condition = Condition("temp", ConditionOperator.BETWEEN, 20, value_max=25)

        assert condition_satisfied(condition, {"temp": 20})
        assert condition_satisfied(condition, {"temp": 25})
        assert not condition_satisfied(condition, {"temp": 25.01})

    @pytest.mark.parametrize("operator", [op for op in ConditionOperator])
    def test_missing_value_never_satisfies(self, operator):
        condition = Condition("temp", operator, 30, value_max=40)

        assert not condition_satisfied(condition, {"humidity": 55})


class TestConditionEvaluator:
    def test_first_group_satisfied_matches_regardless_of_second(self, evaluator, make_rule, group):
        rule = make_rule(
            groups=[
                group(("temp", "gt", 30), ("humidity", "lt", 60), order=0),
                group(("co2", "gt", 1200), order=1),
            ]
        )

        result = evaluator.evaluate(rule, {"temp": 32, "humidity": 55})

        assert result.matched
        assert result.group_index == 0

    def test_groups_are_ored_and_conditions_anded(self, evaluator, make_rule, group):
        rule = make_rule(
            groups=[
                group(("a", "gt", 0), ("b", "gt", 0), order=0),
                group(("c", "gt", 0), order=1),
            ]
        )

        for a in (-1, 1):
            for b in (-1, 1):
                for c in (-1, 1):
                    expected = (a > 0 and b > 0) or c > 0
                    assert evaluator.evaluate(rule, {"a": a, "b": b, "c": c}).matched is expected

    def test_partial_group_does_not_match(self, evaluator, make_rule, group):
        rule = make_rule(groups=[group(("temp", "gt", 30), ("humidity", "lt", 60))])

        result = evaluator.evaluate(rule, {"temp": 32, "humidity": 65})

        assert not result.matched
        assert "humidity lt 60" in result.reason

    def test_missing_sensor_is_reported(self, evaluator, make_rule, group):
        rule = make_rule(groups=[group(("temp", "neq", 30))])

        result = evaluator.evaluate(rule, {})

        assert not result.matched
        assert "no value for temp" in result.reason

    def test_rule_without_groups_never_matches(self, evaluator, make_rule):
        assert not evaluator.evaluate(make_rule(groups=[]), {"temp": 40}).matched
