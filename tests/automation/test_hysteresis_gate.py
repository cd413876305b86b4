"""Tests for the hysteresis state machine."""

import threading
from datetime import datetime, timedelta, timezone

import pytest

from src.automation.application.hysteresis_gate import HysteresisGate
from src.automation.domain.exceptions import LockTimeoutError
from src.automation.domain.models import ActuatorState, HysteresisConfig
from src.automation.infrastructure.rule_lock import KeyedLockRegistry

T0 = datetime(2026, 10, 19, 6, 0, tzinfo=timezone.utc)


@pytest.fixture
def locks():
    return KeyedLockRegistry(default_timeout=0.1)


@pytest.fixture
def gate(store, locks):
    return HysteresisGate(store, locks, lock_timeout=0.1)


@pytest.fixture
def heating_rule(store, make_rule, group):
    return store.save(
        make_rule(
            "heater",
            groups=[group(("temp", "gte", -50))],
            hysteresis=HysteresisConfig(on_threshold=15, off_threshold=18, min_state_change_interval_seconds=60),
        )
    )


class TestHysteresisGate:
    def test_dwell_time_suppresses_early_transition(self, gate, store, heating_rule):
        on = gate.evaluate(heating_rule, 14, T0)
        assert on.transitioned
        assert (on.previous_state, on.new_state) == (ActuatorState.UNKNOWN, ActuatorState.ON)

        early = gate.evaluate(heating_rule, 19, T0 + timedelta(seconds=30))
        assert early.suppressed
        assert not early.transitioned
        assert store.load_state(heating_rule.id).current_state == ActuatorState.ON

        off = gate.evaluate(heating_rule, 19, T0 + timedelta(seconds=61))
        assert off.transitioned
        assert off.new_state == ActuatorState.OFF

        state = store.load_state(heating_rule.id)
        assert state.current_state == ActuatorState.OFF
        assert state.last_state_change_at == T0 + timedelta(seconds=61)

    def test_values_inside_deadband_never_change_state(self, gate, store, heating_rule):
        gate.evaluate(heating_rule, 14, T0)
        before = store.load_state(heating_rule.id)

        for offset, value in enumerate([15.5, 16, 17.9, 16.2, 15.1], start=1):
            decision = gate.evaluate(heating_rule, value, T0 + timedelta(minutes=offset * 5))
            assert not decision.transitioned
            assert not decision.suppressed

        after = store.load_state(heating_rule.id)
        assert after.current_state == before.current_state
        assert after.last_state_change_at == before.last_state_change_at

    def test_repeated_on_values_are_idempotent(self, gate, store, heating_rule):
        gate.evaluate(heating_rule, 14, T0)

        decision = gate.evaluate(heating_rule, 10, T0 + timedelta(minutes=10))

        assert not decision.transitioned
        assert store.load_state(heating_rule.id).last_state_change_at == T0

    def test_unknown_state_stays_unknown_until_on_threshold(self, gate, store, heating_rule):
        decision = gate.evaluate(heating_rule, 20, T0)

        assert not decision.transitioned
        assert store.load_state(heating_rule.id).current_state == ActuatorState.UNKNOWN

    def test_cooling_rule(self, gate, store, make_rule, group):
        rule = store.save(
            make_rule(
                "vent",
                groups=[group(("temp", "gte", -50))],
                hysteresis=HysteresisConfig(on_threshold=30, off_threshold=25, min_state_change_interval_seconds=10),
            )
        )

        assert gate.evaluate(rule, 31, T0).new_state == ActuatorState.ON
        assert gate.evaluate(rule, 24, T0 + timedelta(seconds=20)).new_state == ActuatorState.OFF

    def test_busy_lock_raises_timeout(self, gate, locks, heating_rule):
        held = threading.Event()
        release = threading.Event()

        def hold():
            with locks.acquire(heating_rule.id):
                held.set()
                release.wait(timeout=2)

        worker = threading.Thread(target=hold)
        worker.start()
        try:
            assert held.wait(timeout=1)
            with pytest.raises(LockTimeoutError):
                gate.evaluate(heating_rule, 14, T0)
        finally:
            release.set()
            worker.join()

    def test_concurrent_evaluations_transition_once(self, store, make_rule, group):
        rule = store.save(
            make_rule(
                "heater",
                groups=[group(("temp", "gte", -50))],
                hysteresis=HysteresisConfig(on_threshold=15, off_threshold=18, min_state_change_interval_seconds=60),
            )
        )
        gate = HysteresisGate(store, KeyedLockRegistry(), lock_timeout=5)
        decisions = []

        def evaluate():
            decisions.append(gate.evaluate(rule, 14, T0))

        threads = [threading.Thread(target=evaluate) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sum(d.transitioned for d in decisions) == 1
