"""Tests for schedule due-detection."""

from datetime import datetime, time, timedelta, timezone

import pytest

from src.automation.application.schedule_evaluator import ScheduleEvaluator
from src.automation.domain.models import ScheduleRule, ScheduleType

# 2026-10-19 is a Monday; Europe/Rome is on CEST (UTC+2) until 2026-10-25
MONDAY_7_ROME = datetime(2026, 10, 19, 5, 0, tzinfo=timezone.utc)


@pytest.fixture
def evaluator(store):
    return ScheduleEvaluator(store, tick_interval_seconds=60)


def weekly_rome():
    return ScheduleRule(
        schedule_type=ScheduleType.WEEKLY,
        time_of_day=time(7, 0),
        timezone="Europe/Rome",
        days_of_week=[1, 3, 5],
    )


class TestOccurrenceDue:
    def test_weekly_due_on_listed_day_in_local_time(self, evaluator):
        occurrence = evaluator.occurrence_due(weekly_rome(), MONDAY_7_ROME + timedelta(seconds=30))

        assert occurrence == MONDAY_7_ROME

    def test_weekly_never_due_on_unlisted_day(self, evaluator):
        tuesday = MONDAY_7_ROME + timedelta(days=1)

        for offset in range(0, 24 * 60, 5):
            assert evaluator.occurrence_due(weekly_rome(), tuesday.replace(hour=0) + timedelta(minutes=offset)) is None

    def test_outside_tolerance_is_not_backfilled(self, evaluator):
        assert evaluator.occurrence_due(weekly_rome(), MONDAY_7_ROME + timedelta(minutes=5)) is None

    def test_not_due_before_occurrence(self, evaluator):
        assert evaluator.occurrence_due(weekly_rome(), MONDAY_7_ROME - timedelta(seconds=1)) is None

    def test_last_run_prevents_second_run(self, evaluator):
        schedule = weekly_rome()
        schedule.last_run_at = MONDAY_7_ROME + timedelta(seconds=5)

        assert evaluator.occurrence_due(schedule, MONDAY_7_ROME + timedelta(seconds=30)) is None

    def test_daily_in_utc(self, evaluator):
        schedule = ScheduleRule(schedule_type=ScheduleType.DAILY, time_of_day=time(18, 30))
        at = datetime(2026, 10, 21, 18, 30, 20, tzinfo=timezone.utc)

        assert evaluator.occurrence_due(schedule, at) == at.replace(second=0)

    def test_once_runs_on_creation_day_only(self, evaluator):
        schedule = ScheduleRule(
            schedule_type=ScheduleType.ONCE,
            time_of_day=time(9, 0),
            created_at=datetime(2026, 10, 19, 6, 0, tzinfo=timezone.utc),
        )
        occurrence = datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc)

        assert evaluator.occurrence_due(schedule, occurrence + timedelta(seconds=10)) == occurrence
        assert evaluator.occurrence_due(schedule, occurrence + timedelta(days=1, seconds=10)) is None

    def test_cron_uses_sunday_as_zero(self, evaluator):
        schedule = ScheduleRule(
            schedule_type=ScheduleType.CRON,
            time_of_day=time(0, 0),
            cron_expression="*/15 6-8 * * 0",
        )
        sunday = datetime(2026, 10, 18, 6, 15, 0, tzinfo=timezone.utc)

        assert evaluator.occurrence_due(schedule, sunday) == sunday
        assert evaluator.occurrence_due(schedule, sunday + timedelta(days=1)) is None


class TestDueSchedules:
    def test_only_active_due_schedules_are_returned(self, evaluator, store, make_rule):
        active = store.save(make_rule("lights", schedule=weekly_rome()))
        store.save(make_rule("disabled", schedule=weekly_rome(), is_active=False))

        due = evaluator.due_schedules(MONDAY_7_ROME + timedelta(seconds=10))

        assert [d.rule.id for d in due] == [active.id]
        assert due[0].occurrence == MONDAY_7_ROME

    def test_not_due_schedule_gets_next_run_filled_in(self, evaluator, store, make_rule):
        rule = store.save(make_rule("lights", schedule=weekly_rome()))

        evaluator.due_schedules(MONDAY_7_ROME + timedelta(hours=3))

        # next listed day is Wednesday
        assert store.get_rule(rule.id).schedule.next_run_at == MONDAY_7_ROME + timedelta(days=2)

    def test_mark_run_records_bookkeeping(self, evaluator, store, make_rule):
        rule = store.save(make_rule("lights", schedule=weekly_rome()))
        now = MONDAY_7_ROME + timedelta(seconds=10)

        next_run = evaluator.mark_run(rule, now)

        assert next_run == MONDAY_7_ROME + timedelta(days=2)
        schedule = store.get_rule(rule.id).schedule
        assert schedule.last_run_at == now
        assert schedule.next_run_at == next_run
        assert evaluator.due_schedules(now + timedelta(seconds=20)) == []

    def test_once_schedule_has_no_next_run_after_firing(self, evaluator, store, make_rule):
        created = datetime(2026, 10, 19, 6, 0, tzinfo=timezone.utc)
        rule = store.save(
            make_rule(
                "flush",
                created_at=created,
                schedule=ScheduleRule(schedule_type=ScheduleType.ONCE, time_of_day=time(9, 0)),
            )
        )

        assert evaluator.mark_run(rule, created.replace(hour=9)) is None
