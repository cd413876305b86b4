"""Greenhouse automation rule engine package."""

from src.automation.application import RuleEngine
from src.automation.domain import EngineSettings, ExecutionStatus, Rule, SensorReading
from src.automation.infrastructure import (
    CachedRuleProvider,
    InMemoryCommandQueue,
    InMemoryExecutionLogSink,
    InMemoryLatestValues,
    InMemoryRuleStore,
)

__all__ = [
    "RuleEngine",
    "EngineSettings",
    "ExecutionStatus",
    "Rule",
    "SensorReading",
    "CachedRuleProvider",
    "InMemoryCommandQueue",
    "InMemoryExecutionLogSink",
    "InMemoryLatestValues",
    "InMemoryRuleStore",
]
