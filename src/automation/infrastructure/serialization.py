"""Serialization of rule aggregates to plain JSON-compatible data."""

import json
from typing import Any

from pydantic import TypeAdapter

from src.automation.domain.models import Rule

_rule_adapter = TypeAdapter(Rule)


def rule_to_dict(rule: Rule) -> dict[str, Any]:
    """Dump a rule aggregate, runtime state and schedule bookkeeping included."""
    return _rule_adapter.dump_python(rule, mode="json")


def rule_from_dict(data: dict[str, Any]) -> Rule:
    """
    Rebuild a rule aggregate.

    Raises:
        pydantic.ValidationError: if ``data`` does not describe a rule
    """
    return _rule_adapter.validate_python(data)


def rule_to_json(rule: Rule) -> str:
    return json.dumps(rule_to_dict(rule))


def rule_from_json(payload: str | bytes) -> Rule:
    return _rule_adapter.validate_json(payload)


def rules_to_json(rules: list[Rule]) -> str:
    return json.dumps([rule_to_dict(r) for r in rules])


def rules_from_json(payload: str | bytes) -> list[Rule]:
    return [rule_from_dict(item) for item in json.loads(payload)]
