"""Detection of schedule rules that are due on a clock tick."""

import threading
from dataclasses import dataclass
from datetime import datetime, timedelta

from loguru import logger

from src.automation.domain.clock import ensure_utc
from src.automation.domain.models import Rule, ScheduleRule
from src.automation.domain.protocols import ScheduleStore
from src.automation.infrastructure.triggers import build_trigger, first_fire_at_or_after, next_fire_after


@dataclass(frozen=True)
class DueSchedule:
    """A rule whose schedule has an occurrence inside the current tick window."""

    rule: Rule
    occurrence: datetime


class ScheduleEvaluator:
    """
    Decide which schedules are due at ``now``.

    A schedule is due when one of its occurrences falls in ``(now - tolerance, now]``
    and it has not already run for that occurrence. Missed occurrences older than
    the tolerance are not backfilled. All calendar math happens in the schedule's
    own timezone through its APScheduler trigger.
    """

    def __init__(self, schedule_store: ScheduleStore, tick_interval_seconds: float = 60.0):
        self.schedule_store = schedule_store
        self.tolerance = timedelta(seconds=tick_interval_seconds)
        self._tick_lock = threading.Lock()

    @property
    def tick_lock(self) -> threading.Lock:
        """Held by callers for the duration of a tick so ticks never overlap."""
        return self._tick_lock

    def occurrence_due(self, schedule: ScheduleRule, now: datetime) -> datetime | None:
        """The occurrence that makes ``schedule`` due at ``now``, or None."""
        now = ensure_utc(now)
        trigger = build_trigger(schedule)
        window_start = now - self.tolerance + timedelta(microseconds=1)
        occurrence = first_fire_at_or_after(trigger, window_start)
        if occurrence is None or occurrence > now:
            return None

        last_run = ensure_utc(schedule.last_run_at)
        if last_run is not None and last_run >= occurrence:
            return None
        return occurrence

    def due_schedules(self, now: datetime) -> list[DueSchedule]:
        """Active scheduled rules due at ``now``. Also fills in missing ``next_run_at`` values."""
        due = []
        for rule in self.schedule_store.list_scheduled_rules():
            schedule = rule.schedule
            if schedule is None or not rule.is_active:
                continue
            try:
                occurrence = self.occurrence_due(schedule, now)
            except ValueError as e:
                logger.error(f"Schedule of rule {rule.id} is invalid: {e}")
                continue

            if occurrence is not None:
                due.append(DueSchedule(rule=rule, occurrence=occurrence))
            elif schedule.next_run_at is None:
                self._refresh_next_run(rule, now)

        if due:
            logger.info(f"{len(due)} schedule(s) due at {now.isoformat()}")
        else:
            logger.debug(f"No schedules due at {now.isoformat()}")
        return due

    def compute_next_run(self, schedule: ScheduleRule, after: datetime) -> datetime | None:
        return next_fire_after(build_trigger(schedule), ensure_utc(after))

    def mark_run(self, rule: Rule, now: datetime) -> datetime | None:
        """Record a run at ``now`` and return the recomputed next run."""
        next_run = self.compute_next_run(rule.schedule, now)
        next_run_utc = ensure_utc(next_run)
        self.schedule_store.mark_run(rule.id, ensure_utc(now), next_run_utc)
        rule.schedule.last_run_at = ensure_utc(now)
        rule.schedule.next_run_at = next_run_utc
        return next_run_utc

    def _refresh_next_run(self, rule: Rule, now: datetime) -> None:
        next_run = ensure_utc(self.compute_next_run(rule.schedule, now))
        if next_run is not None:
            self.schedule_store.set_next_run(rule.id, next_run)
            rule.schedule.next_run_at = next_run
