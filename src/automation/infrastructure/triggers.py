"""APScheduler trigger construction for schedule rules."""

import re
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from apscheduler.triggers.base import BaseTrigger
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.date import DateTrigger

from src.automation.domain.models import ScheduleRule, ScheduleType

# Crontab numbering (0 and 7 are Sunday). APScheduler counts from Monday, so
# numeric weekday terms are expanded to day names before building the trigger.
_WEEKDAY_NAMES = ["sun", "mon", "tue", "wed", "thu", "fri", "sat", "sun"]
_NUMERIC_TERM = re.compile(r"(\*|\d+(?:-\d+)?)(?:/(\d+))?")


def resolve_timezone(name: str) -> ZoneInfo:
    """Resolve an IANA timezone name, raising ValueError if unknown."""
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone '{name}'") from e


def _weekday_number(token: str) -> int:
    number = int(token)
    if number > 7:
        raise ValueError(f"Invalid day of week '{number}'")
    return number


def _expand_weekday_term(term: str) -> list[str]:
    match = _NUMERIC_TERM.fullmatch(term)
    if match is None:
        # names such as "mon-fri" already mean the same thing to APScheduler
        return [term]
    base, step = match.group(1), int(match.group(2) or 1)
    if base == "*":
        if step == 1:
            return [term]
        start, end = 0, 6
    else:
        first, _, last = base.partition("-")
        start = _weekday_number(first)
        end = _weekday_number(last) if last else (6 if match.group(2) else start)
    if step < 1 or start > end:
        raise ValueError(f"Invalid day of week range '{term}'")
    return [_WEEKDAY_NAMES[number] for number in range(start, end + 1, step)]


def _normalize_day_of_week(field: str) -> str:
    names: list[str] = []
    for term in field.split(","):
        for name in _expand_weekday_term(term):
            if name not in names:
                names.append(name)
    return ",".join(names)


def cron_trigger_from_expression(expression: str, tz: ZoneInfo) -> CronTrigger:
    """Build a trigger from a standard 5-field crontab expression."""
    fields = expression.split()
    if len(fields) != 5:
        raise ValueError(f"Cron expression must have 5 fields, got {len(fields)}: '{expression}'")
    minute, hour, day, month, day_of_week = fields
    return CronTrigger(
        minute=minute,
        hour=hour,
        day=day,
        month=month,
        day_of_week=_normalize_day_of_week(day_of_week),
        timezone=tz,
    )


def build_trigger(schedule: ScheduleRule) -> BaseTrigger:
    """
    Translate a schedule rule into an APScheduler trigger in the schedule's timezone.

    Raises:
        ValueError: if the schedule cannot be expressed as a trigger
    """
    tz = resolve_timezone(schedule.timezone)
    at = schedule.time_of_day

    if schedule.schedule_type == ScheduleType.ONCE:
        if schedule.created_at is None:
            raise ValueError("A 'once' schedule needs its creation date")
        created_local = schedule.created_at.astimezone(tz)
        run_date = datetime.combine(created_local.date(), at, tzinfo=tz)
        return DateTrigger(run_date=run_date, timezone=tz)

    if schedule.schedule_type == ScheduleType.DAILY:
        return CronTrigger(hour=at.hour, minute=at.minute, second=at.second, timezone=tz)

    if schedule.schedule_type == ScheduleType.WEEKLY:
        if not schedule.days_of_week:
            raise ValueError("A 'weekly' schedule needs at least one day of week")
        days = ",".join(_WEEKDAY_NAMES[d] for d in sorted(set(schedule.days_of_week)))
        return CronTrigger(day_of_week=days, hour=at.hour, minute=at.minute, second=at.second, timezone=tz)

    if schedule.schedule_type == ScheduleType.CRON:
        if not schedule.cron_expression:
            raise ValueError("A 'cron' schedule needs a cron expression")
        return cron_trigger_from_expression(schedule.cron_expression, tz)

    raise ValueError(f"Unsupported schedule type: {schedule.schedule_type}")


def first_fire_at_or_after(trigger: BaseTrigger, start: datetime) -> datetime | None:
    """First fire time of ``trigger`` that is not earlier than ``start``."""
    fire_time = trigger.get_next_fire_time(None, start)
    # DateTrigger ignores ``now`` and always reports its run date
    if fire_time is not None and fire_time < start:
        return None
    return fire_time


def next_fire_after(trigger: BaseTrigger, moment: datetime) -> datetime | None:
    """First fire time strictly after ``moment``."""
    return first_fire_at_or_after(trigger, moment + timedelta(seconds=1))
