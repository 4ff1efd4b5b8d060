"""
app/services/schedule_calculator.py

Turns an automation's schedule descriptor + "now" into its next execution time.

  ONCE        today at schedule_time; fires immediately when up to
              ONCE_GRACE_MINUTES late, otherwise rolls to tomorrow
  DAILY       today at schedule_time, tomorrow once passed
  WEEKLY      next schedule_day_of_week (0 = Sunday), never the same day
  MONTHLY     schedule_day_of_month this month, next month once passed;
              days missing from a month clamp to its last day
  INTERVAL    now + schedule_interval minutes
  YEARLY,
  CUSTOM_CRON no rule yet -> None

Nothing in here reads the clock or touches the DB: callers pass `now`.
Malformed schedules return None instead of raising, so one bad row can't
break a scheduler tick.
"""

import re
import calendar
import logging
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from app.core.config import settings
from app.models.automation import ScheduleType

logger = logging.getLogger(__name__)

TIME_PATTERN = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")


def scheduler_now() -> datetime:
    """Current wall-clock time in SCHEDULER_TIMEZONE, as a naive datetime (how it is stored)."""
    return datetime.now(ZoneInfo(settings.SCHEDULER_TIMEZONE)).replace(tzinfo=None)


def parse_schedule_time(value) -> tuple[int, int]:
    if not isinstance(value, str):
        raise ValueError(f"schedule_time must be a 'HH:MM' string, got {value!r}")
    match = TIME_PATTERN.match(value.strip())
    if not match:
        raise ValueError(f"schedule_time must be 'HH:MM', got {value!r}")
    return int(match.group(1)), int(match.group(2))


def sunday_based_weekday(moment: datetime) -> int:
    """0 = Sunday ... 6 = Saturday."""
    return (moment.weekday() + 1) % 7


def _require_int(value, name: str, low: int, high: int = None) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    if value < low or (high is not None and value > high):
        raise ValueError(f"{name} out of range: {value}")
    return value


def _at_time(moment: datetime, hour: int, minute: int) -> datetime:
    return moment.replace(hour=hour, minute=minute, second=0, microsecond=0)


def _month_day(year: int, month: int, day: int, hour: int, minute: int, tzinfo) -> datetime:
    last_day = calendar.monthrange(year, month)[1]
    return datetime(year, month, min(day, last_day), hour, minute, tzinfo=tzinfo)


# ---------------------------------------------------------
# PER-KIND RULES
# ---------------------------------------------------------
def _next_once(schedule, now: datetime, grace: timedelta) -> datetime:
    hour, minute = parse_schedule_time(schedule.schedule_time)
    target = _at_time(now, hour, minute)
    if target > now:
        return target
    if now - target <= grace:
        return now
    return target + timedelta(days=1)


def _next_daily(schedule, now: datetime) -> datetime:
    hour, minute = parse_schedule_time(schedule.schedule_time)
    target = _at_time(now, hour, minute)
    if target <= now:
        target += timedelta(days=1)
    return target


def _next_weekly(schedule, now: datetime) -> datetime:
    hour, minute = parse_schedule_time(schedule.schedule_time)
    day_of_week = _require_int(schedule.schedule_day_of_week, "schedule_day_of_week", 0, 6)
    days_ahead = day_of_week - sunday_based_weekday(now)
    if days_ahead <= 0:
        days_ahead += 7
    return _at_time(now + timedelta(days=days_ahead), hour, minute)


def _next_monthly(schedule, now: datetime) -> datetime:
    hour, minute = parse_schedule_time(schedule.schedule_time)
    day = _require_int(schedule.schedule_day_of_month, "schedule_day_of_month", 1, 31)
    target = _month_day(now.year, now.month, day, hour, minute, now.tzinfo)
    if target <= now:
        year, month = (now.year + 1, 1) if now.month == 12 else (now.year, now.month + 1)
        target = _month_day(year, month, day, hour, minute, now.tzinfo)
    return target


def _next_interval(schedule, now: datetime) -> datetime:
    minutes = _require_int(schedule.schedule_interval, "schedule_interval", 1)
    return now + timedelta(minutes=minutes)


# ---------------------------------------------------------
# PUBLIC ENTRY POINT
# ---------------------------------------------------------
def compute_next_execution(schedule, now: datetime, grace_minutes: int = None):
    """
    `schedule` is anything exposing the schedule_* attributes and is_active
    (an Automation row, a pydantic payload, a SimpleNamespace in tests).
    Returns a datetime or None.
    """
    is_active = getattr(schedule, "is_active", True)
    if is_active is not None and not is_active:
        return None

    raw_type = getattr(schedule, "schedule_type", None)
    try:
        kind = ScheduleType(raw_type)
    except ValueError:
        logger.warning(f"⚠️ Unknown schedule type {raw_type!r}, no next execution")
        return None

    if grace_minutes is None:
        grace_minutes = settings.ONCE_GRACE_MINUTES

    try:
        if kind == ScheduleType.ONCE:
            return _next_once(schedule, now, timedelta(minutes=grace_minutes))
        if kind == ScheduleType.DAILY:
            return _next_daily(schedule, now)
        if kind == ScheduleType.WEEKLY:
            return _next_weekly(schedule, now)
        if kind == ScheduleType.MONTHLY:
            return _next_monthly(schedule, now)
        if kind == ScheduleType.INTERVAL:
            return _next_interval(schedule, now)
    except (AttributeError, TypeError, ValueError) as e:
        logger.warning(f"⚠️ Malformed {kind.value} schedule, no next execution: {e}")
        return None

    # YEARLY / CUSTOM_CRON: reserved
    return None
