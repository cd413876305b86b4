"""Submission of a firing rule's actions to the command queue."""

from concurrent.futures import Future, ThreadPoolExecutor, wait
from concurrent.futures import TimeoutError as FutureTimeoutError
from functools import partial

from loguru import logger

from src.automation.application.execution_logger import ExecutionLogger
from src.automation.domain.exceptions import DispatchError, DispatchTimeoutError, LockTimeoutError
from src.automation.domain.models import (
    Action,
    ActionType,
    CommandRequest,
    DispatchOutcome,
    EvaluationContext,
    Rule,
)
from src.automation.domain.protocols import CommandQueue, RuntimeStateStore
from src.automation.infrastructure.rule_lock import KeyedLockRegistry

_INVERSE = {ActionType.ON: ActionType.OFF, ActionType.OFF: ActionType.ON}


def to_request(rule: Rule, action: Action, invert: bool = False) -> CommandRequest:
    """Command for one action. ``invert`` gives the command that undoes it (hysteresis OFF)."""
    if not invert:
        return CommandRequest(
            actuator_id=action.actuator_id,
            command_type=action.action_type,
            value=action.action_value if action.action_type == ActionType.SET_VALUE else None,
            rule_id=rule.id,
        )
    if action.action_type == ActionType.SET_VALUE:
        return CommandRequest(actuator_id=action.actuator_id, command_type=ActionType.SET_VALUE, value=0, rule_id=rule.id)
    return CommandRequest(actuator_id=action.actuator_id, command_type=_INVERSE[action.action_type], rule_id=rule.id)


def _report_late_submission(request: CommandRequest, future: Future) -> None:
    error = future.exception()
    if error is None:
        logger.warning(f"Command for {request.actuator_id} reached the queue after timing out (id {future.result()})")
    else:
        logger.warning(f"Timed-out command for {request.actuator_id} finally failed: {error}")


class ActionDispatcher:
    """
    Turn a rule's actions into pending commands, one at a time in ``action_order``.

    Each submission is bounded by ``timeout``. A timed-out submission may still
    reach the queue, so the next action waits up to ``settle_timeout`` for it to
    land before being submitted; if it never does, the remaining actions are not
    submitted. A failed action is logged and the remaining actions still run.
    The rule's trigger counter moves once per firing, when the first action was
    queued.
    """

    def __init__(
        self,
        command_queue: CommandQueue,
        state_store: RuntimeStateStore,
        locks: KeyedLockRegistry,
        execution_logger: ExecutionLogger,
        timeout: float = 5.0,
        lock_timeout: float = 2.0,
        max_workers: int = 4,
        settle_timeout: float = 10.0,
    ):
        self.command_queue = command_queue
        self.state_store = state_store
        self.locks = locks
        self.execution_logger = execution_logger
        self.timeout = timeout
        self.lock_timeout = lock_timeout
        self.settle_timeout = settle_timeout
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="command-dispatch")

    def build_requests(self, rule: Rule, invert: bool = False) -> list[CommandRequest]:
        return [to_request(rule, action, invert) for action in rule.ordered_actions()]

    def dispatch(self, rule: Rule, context: EvaluationContext, invert: bool = False) -> list[DispatchOutcome]:
        """
        Submit every action of ``rule`` and log each outcome.

        Returns:
            One outcome per action, in submission order
        """
        requests = self.build_requests(rule, invert)
        if not requests:
            self.execution_logger.skipped(rule.id, context, "rule has no actions")
            return []

        outcomes = []
        in_flight: tuple[CommandRequest, Future] | None = None
        stuck: CommandRequest | None = None
        for request in requests:
            if stuck is None and in_flight is not None and not self._settle(*in_flight):
                stuck = in_flight[0]
            if stuck is not None:
                outcome = DispatchOutcome(
                    request=request,
                    error=f"not submitted, command for {stuck.actuator_id} still in flight",
                )
            else:
                outcome, in_flight = self._submit(request)
            outcomes.append(outcome)
            if outcome.succeeded:
                self.execution_logger.success(rule.id, context, command_id=outcome.command_id)
            else:
                self.execution_logger.failed(rule.id, context, outcome.error or "dispatch failed")

        queued = sum(o.succeeded for o in outcomes)
        if outcomes[0].succeeded:
            self._record_trigger(rule, context)
            logger.info(f"Rule {rule.id} '{rule.name}' fired: {queued}/{len(outcomes)} commands queued")
        else:
            logger.warning(
                f"Rule {rule.id} '{rule.name}' matched but its first command was not queued "
                f"({queued}/{len(outcomes)} commands queued)"
            )
        return outcomes

    def _submit(self, request: CommandRequest) -> tuple[DispatchOutcome, tuple[CommandRequest, Future] | None]:
        """Submit one command; the second item is the submission still running after a timeout."""
        future = self._executor.submit(self.command_queue.submit, request)
        try:
            command_id = future.result(timeout=self.timeout)
        except FutureTimeoutError:
            error = DispatchTimeoutError(request.actuator_id, self.timeout)
            logger.warning(error.message)
            future.add_done_callback(partial(_report_late_submission, request))
            return DispatchOutcome(request=request, error=error.message), (request, future)
        except DispatchError as e:
            logger.warning(f"Command queue rejected command for {request.actuator_id}: {e.message}")
            return DispatchOutcome(request=request, error=e.message), None
        except Exception as e:
            logger.error(f"Unexpected error submitting command for {request.actuator_id}: {e}")
            return DispatchOutcome(request=request, error=f"{type(e).__name__}: {e}"), None
        return DispatchOutcome(request=request, command_id=str(command_id)), None

    def _settle(self, request: CommandRequest, future: Future) -> bool:
        """Wait for a timed-out submission to finish so later commands cannot overtake it."""
        wait([future], timeout=self.settle_timeout)
        if not future.done():
            logger.error(
                f"Command for {request.actuator_id} still in flight after {self.settle_timeout}s, "
                f"remaining actions of rule {request.rule_id} not submitted"
            )
            return False
        return True

    def _record_trigger(self, rule: Rule, context: EvaluationContext) -> None:
        try:
            with self.locks.acquire(rule.id, timeout=self.lock_timeout):
                state = self.state_store.record_trigger(rule.id, context.at)
            logger.debug(f"Rule {rule.id} trigger_count={state.trigger_count}")
        except LockTimeoutError as e:
            logger.warning(f"Trigger counter of rule {rule.id} not updated: {e.message}")

    def close(self) -> None:
        self._executor.shutdown(wait=False)
