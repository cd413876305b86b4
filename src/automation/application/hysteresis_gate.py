"""Hysteresis state machine guarding rules with ON/OFF thresholds."""

from datetime import datetime, timedelta

from loguru import logger

from src.automation.domain.models import ActuatorState, HysteresisConfig, HysteresisDecision, Rule
from src.automation.domain.protocols import RuntimeStateStore
from src.automation.infrastructure.rule_lock import KeyedLockRegistry


class HysteresisGate:
    """
    Debounce a rule's raw trigger into ON/OFF transitions.

    ``OFF``/``UNKNOWN`` -> ``ON`` when the value reaches the ON threshold,
    ``ON`` -> ``OFF`` when it reaches the OFF threshold. Any transition is
    suppressed while ``now - last_state_change_at`` is below the rule's
    minimum interval. The read-modify-write runs under the rule's lock.
    """

    def __init__(self, state_store: RuntimeStateStore, locks: KeyedLockRegistry, lock_timeout: float = 2.0):
        self.state_store = state_store
        self.locks = locks
        self.lock_timeout = lock_timeout

    @staticmethod
    def target_state(config: HysteresisConfig, current: ActuatorState, value: float) -> ActuatorState | None:
        """State the value asks for, or None if it stays where it is."""
        if current in (ActuatorState.OFF, ActuatorState.UNKNOWN) and config.wants_on(value):
            return ActuatorState.ON
        if current == ActuatorState.ON and config.wants_off(value):
            return ActuatorState.OFF
        return None

    def evaluate(self, rule: Rule, value: float, now: datetime) -> HysteresisDecision:
        """
        Apply one evaluation cycle.

        Raises:
            LockTimeoutError: if the rule's lock is busy for longer than the timeout
        """
        config = rule.hysteresis
        if config is None:
            raise ValueError(f"Rule {rule.id} has no hysteresis configuration")

        with self.locks.acquire(rule.id, timeout=self.lock_timeout):
            state = self.state_store.load_state(rule.id)
            current = state.current_state
            target = self.target_state(config, current, value)

            if target is None:
                return HysteresisDecision(
                    transitioned=False,
                    previous_state=current,
                    new_state=current,
                    reason=f"value {value} requires no change from {current.value}",
                )

            dwell = timedelta(seconds=config.min_state_change_interval_seconds)
            if state.last_state_change_at is not None and now - state.last_state_change_at < dwell:
                elapsed = (now - state.last_state_change_at).total_seconds()
                reason = (
                    f"transition {current.value}->{target.value} suppressed: "
                    f"{elapsed:.0f}s since last change, minimum {config.min_state_change_interval_seconds}s"
                )
                logger.info(f"Rule {rule.id}: {reason}")
                return HysteresisDecision(
                    transitioned=False,
                    previous_state=current,
                    new_state=current,
                    suppressed=True,
                    reason=reason,
                )

            state.current_state = target
            state.last_state_change_at = now
            self.state_store.save_hysteresis_state(rule.id, state)

        logger.info(f"Rule {rule.id}: state {current.value} -> {target.value} (value={value})")
        return HysteresisDecision(
            transitioned=True,
            previous_state=current,
            new_state=target,
            reason=f"value {value} crossed {target.value.upper()} threshold",
        )
