"""Next-occurrence math for scheduled spawn rules.

All calendar arithmetic happens on the Manila date of the reference instant.
A candidate equal to the reference instant is never returned: occurrences
are strictly in the future.
"""
from datetime import datetime, timedelta
from typing import List, Optional

from .manila_time import localize, parse_time_of_day, to_manila
from .models import Boss, DailySpawn, WeeklySpawn, WEEKDAYS


def next_daily_occurrence(time_of_day: Optional[str], reference: datetime) -> Optional[datetime]:
    """
    Next instant after reference at time_of_day, today or tomorrow.

    Args:
        time_of_day: HH:MM string
        reference: Reference instant

    Returns:
        Aware Manila datetime, or None if time_of_day does not parse
    """
    parsed = parse_time_of_day(time_of_day)
    if parsed is None:
        return None
    hours, minutes = parsed
    local = to_manila(reference)

    target = localize(local.date(), hours, minutes)
    if target <= local:
        target = localize(local.date() + timedelta(days=1), hours, minutes)
    return target


def next_weekly_occurrence(day: Optional[str], time_of_day: Optional[str],
                           reference: datetime) -> Optional[datetime]:
    """
    Next instant after reference falling on weekday `day` at time_of_day.

    Args:
        day: Full English weekday name ("Monday" .. "Sunday")
        time_of_day: HH:MM string
        reference: Reference instant

    Returns:
        Aware Manila datetime, or None if the day or time does not parse
    """
    if day not in WEEKDAYS:
        return None
    parsed = parse_time_of_day(time_of_day)
    if parsed is None:
        return None
    hours, minutes = parsed
    local = to_manila(reference)

    days_ahead = (WEEKDAYS.index(day) - local.weekday()) % 7
    target = localize(local.date() + timedelta(days=days_ahead), hours, minutes)
    if target <= local:
        target = localize(local.date() + timedelta(days=days_ahead + 7), hours, minutes)
    return target


def next_occurrences(boss: Boss, reference: datetime) -> List[datetime]:
    """
    Future occurrences of a scheduled boss, sorted ascending.

    Fixed bosses have no occurrence list and yield []. Candidates that fail
    to parse are dropped, so the result holds zero to two instants.
    """
    spawn = boss.spawn
    if isinstance(spawn, DailySpawn):
        candidates = [
            next_daily_occurrence(spawn.start_time, reference),
            next_daily_occurrence(spawn.end_time, reference),
        ]
    elif isinstance(spawn, WeeklySpawn):
        candidates = [
            next_weekly_occurrence(spawn.start_day, spawn.start_time, reference),
            next_weekly_occurrence(spawn.end_day, spawn.end_time, reference),
        ]
    else:
        return []

    return sorted(c for c in candidates if c is not None)
